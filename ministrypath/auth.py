"""
Authentication utilities: JWT session tokens and role-gated dependencies.

Identity is established upstream; this module only issues and verifies the
signed bearer token (header or ``access_token`` cookie) and resolves the user.
"""
import structlog
from datetime import datetime, timedelta
from typing import Callable, Optional
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict

from .config import settings
from .database import get_db
from .models import User
from .roles import ADMIN, ROLE_LEVELS, has_role, normalize_role
from .logging_setup import user_id_ctx, user_email_ctx, logger

# JWT configuration
SECRET_KEY = settings.JWT_SECRET_KEY
ALGORITHM = settings.JWT_ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.JWT_EXPIRATION_MINUTES

# HTTP Bearer token scheme (don't auto-error so we can check cookies)
security = HTTPBearer(auto_error=False)


class UserContext(BaseModel):
    """Authenticated user plus the normalized role used for gating."""
    user: User
    role: str

    model_config = ConfigDict(arbitrary_types_allowed=True)


def _credentials_exception(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )

# ============================================================================
# JWT Token Utilities
# ============================================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary of claims to encode in the token
        expires_delta: Optional expiration time delta

    Returns:
        Encoded JWT token string
    """
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> dict:
    """
    Verify and decode a JWT token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        logger.warning("unauthorized_access", reason="invalid_token")
        raise _credentials_exception()

# ============================================================================
# Authentication Dependencies
# ============================================================================

async def get_user_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> UserContext:
    """Resolve the user behind the request's bearer token or session cookie."""
    token = credentials.credentials if credentials else request.cookies.get("access_token")

    if not token:
        logger.warning("unauthorized_access", reason="missing_token", path=request.url.path)
        raise _credentials_exception("Not authenticated")

    payload = verify_token(token)

    try:
        user_id = int(payload.get("sub"))
    except (ValueError, TypeError):
        raise _credentials_exception()

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.warning("unauthorized_access", reason="user_not_found", user_id=user_id)
        raise _credentials_exception("User not found")

    if user.is_archived:
        logger.warning("access_denied", reason="user_archived", user_id=user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This account has been archived"
        )

    # Set context for logging
    structlog.contextvars.bind_contextvars(user_id=user.id, user_email=user.email)
    user_id_ctx.set(user.id)
    user_email_ctx.set(user.email)

    return UserContext(user=user, role=normalize_role(user.role))


async def get_current_user(
    context: UserContext = Depends(get_user_context)
) -> User:
    """Return the authenticated User object."""
    return context.user


def require_role(minimum: str) -> Callable:
    """
    Build a dependency that admits users at or above ``minimum``.

    Usage::

        @router.get("/care", dependencies=[Depends(require_role(PASTOR))])
    """
    if minimum not in ROLE_LEVELS:
        raise ValueError(f"Unknown role '{minimum}'")

    async def dependency(context: UserContext = Depends(get_user_context)) -> User:
        if not has_role(context.role, minimum):
            logger.warning(
                "access_denied",
                reason="insufficient_role",
                user_id=context.user.id,
                user_role=context.role,
                required_role=minimum,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires {minimum} privileges or higher"
            )
        return context.user

    return dependency


get_current_admin = require_role(ADMIN)
