"""
Identity resolution for dailyout.

Priority:
1. Authorization: Bearer <jwt> (HS256, signed with JWT_SECRET, user id in `sub`)
2. X-Anon-Id: <uuid4> (anonymous identity; the user row is created on first contact)
3. 401 unauthorized
"""
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Header, Request

from dailyout.core.errors import UnauthorizedError

logger = logging.getLogger("dailyout.auth")

JWT_ALGORITHM = "HS256"

_ANON_ID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE)


def is_anon_id(value: Optional[str]) -> bool:
    return bool(value) and bool(_ANON_ID_RE.match(value))


def create_access_token(user_id: str, email: Optional[str], *, secret: str, expires_days: int, now: datetime) -> str:
    payload = {
        "sub": user_id,
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=expires_days)).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_access_token(token: str, *, secret: str, now: Optional[datetime] = None) -> Optional[str]:
    """
    Return the user id carried by a valid token, else None.

    Expiry is checked against `now` (the app clock) rather than the wall clock.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            options={"verify_signature": True, "verify_exp": False, "verify_iat": False, "require": ["exp", "sub"]},
        )
    except jwt.InvalidTokenError as e:
        logger.debug("auth.token_invalid", extra={"error_message": str(e)})
        return None

    moment = now or datetime.now(timezone.utc)
    if int(payload["exp"]) <= int(moment.timestamp()):
        logger.debug("auth.token_expired")
        return None

    user_id = payload.get("sub")
    return user_id if isinstance(user_id, str) and user_id else None


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        token = authorization[7:].strip()
        return token or None
    return None


def resolve_user_id(services, authorization: Optional[str], anon_id: Optional[str]) -> Optional[str]:
    """
    Resolve the caller's user id from headers, creating anonymous users on demand.

    Returns None when no usable credential is present.
    """
    token = _bearer_token(authorization)
    if token:
        user_id = decode_access_token(token, secret=services.settings.JWT_SECRET, now=services.clock.now())
        if user_id and services.users.get_user(user_id) is not None:
            return user_id

    if anon_id:
        if not is_anon_id(anon_id):
            raise UnauthorizedError("Invalid UUID format")
        return services.users.get_or_create_user(anon_id.lower()).id

    return None


def get_current_user_id(
    request: Request,
    authorization: Optional[str] = Header(None),
    x_anon_id: Optional[str] = Header(None, description="Anonymous identity (UUID v4)"),
) -> str:
    """FastAPI dependency: authenticated or anonymous user id, else 401."""
    user_id = resolve_user_id(request.app.state.services, authorization, x_anon_id)
    if not user_id:
        raise UnauthorizedError("Missing or invalid authentication")
    return user_id


def get_optional_user_id(
    request: Request,
    authorization: Optional[str] = Header(None),
    x_anon_id: Optional[str] = Header(None, description="Anonymous identity (UUID v4)"),
) -> Optional[str]:
    """Like get_current_user_id, but a missing credential yields None instead of 401."""
    return resolve_user_id(request.app.state.services, authorization, x_anon_id)
