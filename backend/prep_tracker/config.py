"""Application settings and validation."""

import os
from pathlib import Path

BASE = Path(__file__).resolve().parent.parent
DEFAULT_JWT_SECRET = "change_me_for_prod"


class Settings:
    ENV: str
    PORT: int
    DATABASE_URL: str
    JWT_SECRET: str
    JWT_ALGORITHM: str
    JWT_EXPIRE_DAYS: int
    ALLOW_INSECURE_JWT: bool
    ALLOW_DEV_CORS: bool
    NOTION_API_BASE: str
    NOTION_VERSION: str
    ADMIN_EMAIL: str
    ADMIN_PASSWORD: str
    LOG_LEVEL: str

    def __init__(self):
        self.ENV = os.getenv("ENV", "dev").lower()
        self.PORT = int(os.getenv("PORT", "5000"))
        self.DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE / 'prep_tracker.db'}")
        self.JWT_SECRET = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
        self.JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
        self.JWT_EXPIRE_DAYS = int(os.getenv("JWT_EXPIRE_DAYS", "30"))
        self.ALLOW_INSECURE_JWT = os.getenv("ALLOW_INSECURE_JWT", "false").lower() == "true"
        self.ALLOW_DEV_CORS = os.getenv("ALLOW_DEV_CORS", "true").lower() == "true"
        self.NOTION_API_BASE = os.getenv("NOTION_API_BASE", "https://api.notion.com/v1").rstrip("/")
        self.NOTION_VERSION = os.getenv("NOTION_VERSION", "2022-06-28")
        self.ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@wbcs.com").lower()
        self.ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin123")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
        self._validate()

    def _validate(self):
        if self.ENV != "dev" and not self.ALLOW_INSECURE_JWT and self.JWT_SECRET == DEFAULT_JWT_SECRET:
            raise RuntimeError("JWT_SECRET must be set to a non-default value in non-dev environments")
        if self.JWT_EXPIRE_DAYS <= 0:
            raise RuntimeError("JWT_EXPIRE_DAYS must be a positive number of days")


settings = Settings()
