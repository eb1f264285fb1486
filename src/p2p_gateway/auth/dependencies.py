"""FastAPI dependencies: get_current_user, role guards, internal-caller guard.

Usage in any protected router:
    from src.p2p_gateway.auth.dependencies import get_current_user

    @router.get("/protected")
    async def protected(user: UserModel = Depends(get_current_user)):
        ...
"""

import hmac

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.p2p_common.actor import Actor
from src.p2p_common.database import get_db_session
from src.p2p_common.enums import UserRole
from src.p2p_common.errors import (
    AccountDisabledError,
    InvalidCredentialsError,
    NotAuthorizedError,
)
from src.p2p_gateway.auth.jwt_handler import decode_token
from src.p2p_gateway.user.db_models import UserModel

# tokenUrl tells Swagger UI where to get a token (used for the "Authorize" button)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login")

_CREDENTIALS_EXCEPTION = HTTPException(
    status_code=status.HTTP_401_UNAUTHORIZED,
    detail="Invalid or expired token",
    headers={"WWW-Authenticate": "Bearer"},
)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> UserModel:
    """Extract and validate the JWT Bearer token, return the UserModel.

    Raises HTTP 401 if the token is missing, invalid, or expired.
    Raises AccountDisabledError (403) if the user account is disabled.
    Frozen accounts still authenticate; freeze is enforced per operation.
    """
    try:
        payload = decode_token(token, expected_type="access")
    except InvalidCredentialsError:
        raise _CREDENTIALS_EXCEPTION from None

    user_id: str | None = payload.get("sub")
    if not user_id:
        raise _CREDENTIALS_EXCEPTION

    result = await db.execute(select(UserModel).where(UserModel.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise _CREDENTIALS_EXCEPTION

    if not user.is_active:
        raise AccountDisabledError()

    return user


def actor_of(user: UserModel) -> Actor:
    return Actor(user_id=str(user.id), role=user.role)


async def require_admin(
    current_user: UserModel = Depends(get_current_user),
) -> UserModel:
    if current_user.role != UserRole.ADMIN:
        raise NotAuthorizedError("Admin role required")
    return current_user


async def require_dispute_admin(
    current_user: UserModel = Depends(get_current_user),
) -> UserModel:
    if current_user.role not in (UserRole.ADMIN, UserRole.DISPUTE_ADMIN):
        raise NotAuthorizedError("Dispute admin role required")
    return current_user


async def require_internal_caller(
    x_deposit_feed_token: str | None = Header(default=None),
) -> None:
    """Guard for /internal endpoints (deposit feed, auto-release timer).

    An empty DEPOSIT_FEED_TOKEN disables the internal surface entirely.
    """
    expected = settings.DEPOSIT_FEED_TOKEN
    if not expected or x_deposit_feed_token is None:
        raise NotAuthorizedError("Internal caller token required")
    if not hmac.compare_digest(x_deposit_feed_token, expected):
        raise NotAuthorizedError("Internal caller token invalid")
