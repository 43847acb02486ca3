"""
verify.py
---------
Purpose:
    Bearer-token checks for the HTTP surface.

Notes:
    - `auth_dependency` verifies the dashboard's HS256 session JWT; `sub` is
      the acting user id.
    - `cron_auth_dependency` guards the sweep triggers with CRON_SECRET.
      An unset secret rejects every call.
"""

import hmac

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from escrow.config import settings
from escrow.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_security = HTTPBearer()
_cron_security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_jwt(token: str) -> dict:
    if not settings.JWT_SECRET:
        raise _unauthorized("Authentication is not configured")

    try:
        decoded = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=["HS256"],
            audience=settings.JWT_AUDIENCE,
            options={"verify_exp": True, "require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as e:
        raise _unauthorized(f"Invalid authentication token: {e}") from e

    return decoded


def auth_dependency(credentials: HTTPAuthorizationCredentials = Depends(_security)) -> dict:
    token = credentials.credentials
    return verify_jwt(token)


def verify_cron_token(token: str | None) -> bool:
    expected = settings.CRON_SECRET
    if not expected or not token:
        return False
    return hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8"))


def cron_auth_dependency(
    credentials: HTTPAuthorizationCredentials | None = Depends(_cron_security),
) -> None:
    token = credentials.credentials if credentials else None
    if not verify_cron_token(token):
        logger.warning("Rejected cron trigger", has_token=token is not None)
        raise _unauthorized("Unauthorized")


def current_user_id(claims: dict = Depends(auth_dependency)) -> str:
    user_id = claims.get("sub")
    if not user_id:
        logger.error("No user ID in JWT claims")
        raise _unauthorized("Invalid token: missing user ID")
    return user_id
