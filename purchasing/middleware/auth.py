from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
import structlog

from purchasing.services.auth_service import verify_access_token

logger = structlog.get_logger()

security = HTTPBearer(auto_error=False)


def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": {"code": code, "message": message}},
        headers={"WWW-Authenticate": "Bearer"},
    )


def user_from_claims(payload: dict) -> dict:
    """
    Map verified token claims to the caller dict the routes use.

    ``name`` is the actor recorded in the history ledger; tokens without one
    fall back to the subject.
    """
    return {
        "user_id": payload["sub"],
        "name": payload.get("name") or payload["sub"],
        "role": payload["role"],
        "email": payload.get("email"),
        "permissions": payload.get("permissions"),
    }


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """FastAPI dependency: verify the bearer JWT and bind the actor to the log context."""
    if credentials is None:
        raise _unauthorized("AUTH_TOKEN_MISSING", "Bearer token required")

    try:
        user = user_from_claims(verify_access_token(credentials.credentials))
    except (JWTError, KeyError) as e:
        logger.warning("auth_token_invalid", error=str(e))
        raise _unauthorized("AUTH_TOKEN_INVALID", "Invalid or expired token")

    structlog.contextvars.bind_contextvars(actor=user["name"], role=user["role"])
    return user
