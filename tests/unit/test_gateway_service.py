"""Unit tests for user service (mocked DB, in-memory wallets)."""

import uuid
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.p2p_common.errors import (
    AccountDisabledError,
    EmailExistsError,
    InvalidCredentialsError,
    InvalidRefreshTokenError,
    UsernameExistsError,
)
from src.p2p_gateway.auth.jwt_handler import create_access_token, decode_token
from src.p2p_gateway.user.db_models import UserModel
from src.p2p_gateway.user.service import UserService
from src.p2p_wallet.application.service import WalletApplicationService
from tests.unit.fakes import FakeWalletRepository


def _make_user(is_active: bool = True) -> UserModel:
    user = UserModel()
    user.id = uuid.uuid4()
    user.username = "alice"
    user.email = "alice@example.com"
    user.password_hash = "$2b$12$fakehash"
    user.role = "customer"
    user.is_active = is_active
    return user


def _lookup(*found: UserModel | None) -> AsyncMock:
    results = []
    for user in found:
        result = MagicMock()
        result.scalar_one_or_none.return_value = user
        results.append(result)
    return AsyncMock(side_effect=results)


@pytest.fixture
def wallets() -> FakeWalletRepository:
    return FakeWalletRepository()


@pytest.fixture
def service(wallets: FakeWalletRepository) -> UserService:
    return UserService(WalletApplicationService(wallets))


@pytest.fixture
def mock_db() -> AsyncMock:
    db = AsyncMock()
    db.add = MagicMock(side_effect=lambda user: setattr(user, "id", uuid.uuid4()))
    return db


class TestRegister:
    async def test_duplicate_username(self, service: UserService, mock_db: AsyncMock) -> None:
        mock_db.execute = _lookup(_make_user())
        with pytest.raises(UsernameExistsError):
            await service.register("alice", "new@example.com", "Pass1word", mock_db)

    async def test_duplicate_email(self, service: UserService, mock_db: AsyncMock) -> None:
        mock_db.execute = _lookup(None, _make_user())
        with pytest.raises(EmailExistsError):
            await service.register("bob", "alice@example.com", "Pass1word", mock_db)

    async def test_opens_wallets_in_same_transaction(
        self, service: UserService, mock_db: AsyncMock, wallets: FakeWalletRepository
    ) -> None:
        mock_db.execute = _lookup(None, None)
        with patch("src.p2p_gateway.user.service.hash_password", return_value="hashed"):
            user, opened = await service.register("bob", "bob@example.com", "Pass1word", mock_db)

        assert user.password_hash == "hashed"
        assert [w.currency for w in opened] == ["USDT"]
        assert wallets.balance(str(user.id)) == (0, 0)
        mock_db.flush.assert_awaited_once()
        mock_db.commit.assert_not_awaited()


class TestLogin:
    async def test_unknown_user(self, service: UserService, mock_db: AsyncMock) -> None:
        mock_db.execute = _lookup(None)
        with pytest.raises(InvalidCredentialsError):
            await service.login("nobody", "Pass1word", mock_db)

    async def test_wrong_password(self, service: UserService, mock_db: AsyncMock) -> None:
        mock_db.execute = _lookup(_make_user())
        with (
            patch("src.p2p_gateway.user.service.verify_password", return_value=False),
            pytest.raises(InvalidCredentialsError),
        ):
            await service.login("alice", "WrongPass1", mock_db)

    async def test_disabled_account(self, service: UserService, mock_db: AsyncMock) -> None:
        mock_db.execute = _lookup(_make_user(is_active=False))
        with (
            patch("src.p2p_gateway.user.service.verify_password", return_value=True),
            pytest.raises(AccountDisabledError),
        ):
            await service.login("alice", "Pass1word", mock_db)

    async def test_success_returns_user_and_tokens(
        self, service: UserService, mock_db: AsyncMock
    ) -> None:
        user = _make_user()
        mock_db.execute = _lookup(user)
        with patch("src.p2p_gateway.user.service.verify_password", return_value=True):
            returned, access, refresh = await service.login("alice", "Pass1word", mock_db)

        assert returned is user
        assert decode_token(access, "access")["sub"] == str(user.id)
        assert decode_token(refresh, "refresh")["sub"] == str(user.id)


class TestRefresh:
    async def test_issues_new_access_token(self, service: UserService) -> None:
        from src.p2p_gateway.auth.jwt_handler import create_refresh_token

        access = await service.refresh(create_refresh_token("user-123"))
        assert decode_token(access, "access")["sub"] == "user-123"

    async def test_garbage_token(self, service: UserService) -> None:
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh("not.a.real.token")

    async def test_access_token_is_not_a_refresh_token(self, service: UserService) -> None:
        with pytest.raises(InvalidRefreshTokenError):
            await service.refresh(create_access_token("user-123"))
