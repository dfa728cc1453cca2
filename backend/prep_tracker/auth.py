"""Authentication helpers and FastAPI security dependencies.

This module provides utilities to decode JWT tokens, a dependency
`get_current_user` that validates the bearer token and returns the
corresponding `User`, and `require_admin` which additionally demands the
admin flag.

Token verification raises HTTPExceptions on failure so the helpers can
be used directly inside route dependencies: 401 for any authentication
problem, 403 when an authenticated user lacks admin rights.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import jwt
from sqlmodel import Session

from .config import settings
from .database import get_session
from . import models, repositories

bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str):
    """Decode and verify a JWT token.

    Returns the decoded payload on success or raises an HTTPException
    with status 401 on failure.
    """
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail='Token expired')
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail='Invalid token')


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    db: Session = Depends(get_session),
) -> models.User:
    """FastAPI dependency that returns the authenticated user.

    The function extracts the bearer token from the request, decodes it
    and performs a database lookup to return the `User` object. It raises
    an HTTPException(401) for any authentication issue.
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail='No token provided')
    payload = decode_token(credentials.credentials)
    user_id = payload.get('user_id')
    if not user_id:
        raise HTTPException(status_code=401, detail='Invalid token')
    user = repositories.UserRepository(db).get(user_id)
    if not user:
        raise HTTPException(status_code=401, detail='User not found')
    return user


def require_admin(user: models.User = Depends(get_current_user)) -> models.User:
    """Dependency for admin-only routes."""
    if not user.is_admin:
        raise HTTPException(status_code=403, detail='Admin access required')
    return user
