"""Pass-through client for the Notion API.

Browsers cannot call the Notion API directly (CORS), so the frontend
posts to `/api/notion-proxy` and this module forwards the request. Only
a small allow-list of path prefixes is reachable and only the caller's
own credentials are sent upstream.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import requests

from ..config import settings

logger = logging.getLogger("prep_tracker.proxy")

ALLOWED_PREFIXES = ("databases", "pages", "databases/query")


def validate_path(raw_path: Optional[str]) -> str:
    """Normalise the requested sub-path and check it against the allow-list.

    Raises `ValueError` with a client-facing message when the path is
    missing or not allowed.
    """
    path = raw_path or ""
    # one leading slash is tolerated; "//x" stays and fails the allow-list
    if path.startswith("/"):
        path = path[1:]
    if not path:
        raise ValueError("Missing Notion API path")
    if not any(path.startswith(prefix) for prefix in ALLOWED_PREFIXES):
        raise ValueError("Path not allowed")
    return path


def forward(path: str, body: Any, authorization: str = "", notion_version: Optional[str] = None) -> requests.Response:
    """POST `body` to the Notion API at `path` and return the raw response.

    Transport errors propagate as `requests.RequestException`.
    """
    url = f"{settings.NOTION_API_BASE}/{path}"
    headers = {
        "Authorization": authorization or "",
        "Notion-Version": notion_version or settings.NOTION_VERSION,
        "Content-Type": "application/json",
    }
    logger.info("notion_proxy POST %s", path)
    return requests.post(url, headers=headers, json=body if body is not None else {})
