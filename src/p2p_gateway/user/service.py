"""User domain service: register, login, refresh.

register() runs inside the router's `async with db.begin()` block so the
users row and its wallets commit together.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    UsernameExistsError,
)
from src.p2p_gateway.auth.jwt_handler import (
    create_access_token,
    create_refresh_token,
    decode_token,
)
from src.p2p_gateway.auth.password import hash_password, verify_password
from src.p2p_gateway.user.db_models import UserModel
from src.p2p_wallet.application.service import WalletApplicationService
from src.p2p_wallet.domain.models import Wallet

logger = logging.getLogger(__name__)


class UserService:
    """Stateless service — instantiate once, reuse across requests."""

    def __init__(self, wallets: WalletApplicationService | None = None) -> None:
        self._wallets = wallets or WalletApplicationService()

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        db: AsyncSession,
    ) -> tuple[UserModel, list[Wallet]]:
        """Insert the user and open one wallet per supported currency."""
        # DB UNIQUE constraints are the final guard
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        if result.scalar_one_or_none() is not None:
            raise UsernameExistsError()

        result = await db.execute(select(UserModel).where(UserModel.email == email))
        if result.scalar_one_or_none() is not None:
            raise EmailExistsError()

        user = UserModel(
            username=username,
            email=email,
            password_hash=hash_password(password),
            is_active=True,
        )
        db.add(user)
        await db.flush()  # Get user.id without committing

        wallets = await self._wallets.open_wallets(db, str(user.id))
        logger.info("User registered: id=%s wallets=%d", user.id, len(wallets))
        return user, wallets

    async def login(
        self,
        username: str,
        password: str,
        db: AsyncSession,
    ) -> tuple[UserModel, str, str]:
        """Authenticate and return (user, access_token, refresh_token).

        Unknown user and wrong password both raise InvalidCredentialsError.
        """
        result = await db.execute(select(UserModel).where(UserModel.username == username))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()

        if not user.is_active:
            raise AccountDisabledError()

        return (
            user,
            create_access_token(str(user.id)),
            create_refresh_token(str(user.id)),
        )

    async def refresh(self, refresh_token: str) -> str:
        payload = decode_token(refresh_token, expected_type="refresh")
        return create_access_token(str(payload["sub"]))
