"""
Caller identity for the Org Directory API.

Supports:
- JWT session cookie (orgdir_session) or Bearer JWT
- Raw member UUID as Bearer token for local development

Only the caller's identity is established here. Organization creation is
the one route that requires it (the caller becomes the owner).
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import APIKeyHeader

from app.core.config import get_settings

log = structlog.get_logger()

SESSION_COOKIE = "orgdir_session"

api_key_header = APIKeyHeader(name="Authorization", auto_error=False)


# ---------------------------------------------------------------------------
# JWT
# ---------------------------------------------------------------------------

def create_jwt(
    user_id: uuid.UUID,
    *,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create a signed JWT. Returns (token, jti)."""
    settings = get_settings()
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    exp = now + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": exp,
        "jti": jti,
    }
    token = jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, jti


def decode_jwt(token: str) -> dict:
    """Decode and verify a JWT. Raises jwt.PyJWTError on failure."""
    settings = get_settings()
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])


def _user_id_from_token(token: str) -> uuid.UUID:
    # POC compat: a bare UUID is accepted as the caller's id.
    try:
        return uuid.UUID(token)
    except ValueError:
        pass

    try:
        payload = decode_jwt(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    try:
        return uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid session subject")


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

async def get_optional_user_id(
    request: Request,
    authorization: Optional[str] = Depends(api_key_header),
) -> Optional[uuid.UUID]:
    """Caller id when credentials are present, else None."""
    if authorization and authorization.startswith("Bearer "):
        return _user_id_from_token(authorization[7:].strip())

    token = request.cookies.get(SESSION_COOKIE)
    if token:
        return _user_id_from_token(token)
    return None


async def get_current_user_id(
    user_id: Optional[uuid.UUID] = Depends(get_optional_user_id),
) -> uuid.UUID:
    if user_id is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user_id
