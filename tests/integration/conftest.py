"""Integration-test fixtures (live PostgreSQL + Redis, migrated to head).

All integration tests share a single event loop so the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
stay valid for the whole session.
"""

import os
import uuid
from collections.abc import Awaitable, Callable

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

os.environ.setdefault("DEPOSIT_FEED_TOKEN", "integration-feed-token")

from config.settings import settings  # noqa: E402
from src.main import app  # noqa: E402
from src.p2p_common.database import async_session_factory  # noqa: E402

_PROMOTE_SQL = text("""
    UPDATE users
    SET role = :role, kyc_status = 'approved',
        two_factor_enabled = :two_fa, two_factor_secret = :secret
    WHERE id = CAST(:user_id AS UUID)
""")

Login = Callable[..., Awaitable[tuple[str, dict[str, str]]]]


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client; keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(loop_scope="session")
async def new_user(client: AsyncClient) -> Login:
    """Factory: register a fresh user with a role, return (user_id, auth headers)."""

    async def _make(role: str = "customer", totp_secret: str | None = None) -> tuple[str, dict[str, str]]:
        uid = uuid.uuid4().hex[:8]
        creds = {"username": f"{role}_{uid}", "email": f"{role}_{uid}@example.com"}
        reg = await client.post("/api/v1/auth/register", json={**creds, "password": "TestPass1"})
        user_id = reg.json()["data"]["user_id"]
        if role != "customer" or totp_secret:
            async with async_session_factory() as session, session.begin():
                await session.execute(
                    _PROMOTE_SQL,
                    {
                        "user_id": user_id,
                        "role": role,
                        "two_fa": totp_secret is not None,
                        "secret": totp_secret,
                    },
                )
        login = await client.post(
            "/api/v1/auth/login", json={"username": creds["username"], "password": "TestPass1"}
        )
        token = login.json()["data"]["access_token"]
        return user_id, {"Authorization": f"Bearer {token}"}

    return _make


@pytest_asyncio.fixture(loop_scope="session")
async def fund(client: AsyncClient) -> Callable[[str, str], Awaitable[None]]:
    """Factory: credit a user's USDT wallet through the deposit feed."""

    async def _fund(user_id: str, amount: str) -> None:
        resp = await client.post(
            "/api/v1/internal/deposits",
            json={"user_id": user_id, "amount": amount, "reference": f"0x{uuid.uuid4().hex}"},
            headers={"X-Deposit-Feed-Token": settings.DEPOSIT_FEED_TOKEN},
        )
        assert resp.status_code == 200, resp.text

    return _fund


OrderParties = tuple[str, dict[str, str], dict[str, str]]

_COUNT_TX_SQL = text("""
    SELECT COUNT(*) FROM wallet_transactions
    WHERE related_order_id = :order_id AND tx_type = :tx_type
""")


@pytest_asyncio.fixture(loop_scope="session")
async def sell_ad_order(
    client: AsyncClient, new_user: Login, fund: Callable[[str, str], Awaitable[None]]
) -> Callable[..., Awaitable[OrderParties]]:
    """Factory: vendor lists a sell_ad at 10/unit, a funded buyer orders 5 units (50 held).

    Returns (order_id, vendor headers, buyer headers). With confirmed=True the
    order is walked through paid and deliver first.
    """

    async def _make(confirmed: bool = False) -> OrderParties:
        _, vendor = await new_user("vendor")
        buyer_id, buyer = await new_user()
        await fund(buyer_id, "500")
        offer = await client.post(
            "/api/v1/offers",
            json={
                "trade_intent": "sell_ad",
                "price_per_unit": "10",
                "min_limit": "10",
                "max_limit": "1000",
                "available_amount": "100",
                "payment_methods": ["bank_transfer"],
            },
            headers=vendor,
        )
        assert offer.status_code == 201, offer.text
        order = await client.post(
            "/api/v1/orders",
            json={
                "offer_id": offer.json()["data"]["id"],
                "amount": "5",
                "fiat_amount": "50",
                "payment_method": "bank_transfer",
            },
            headers=buyer,
        )
        assert order.status_code == 201, order.text
        order_id = order.json()["data"]["id"]
        if confirmed:
            paid = await client.post(f"/api/v1/orders/{order_id}/paid", headers=buyer)
            assert paid.status_code == 200, paid.text
            delivered = await client.post(
                f"/api/v1/orders/{order_id}/deliver", json={}, headers=vendor
            )
            assert delivered.status_code == 200, delivered.text
        return order_id, vendor, buyer

    return _make


@pytest_asyncio.fixture(loop_scope="session")
async def ledger_rows() -> Callable[[str, str], Awaitable[int]]:
    """Factory: count wallet_transactions rows of one type for an order."""

    async def _count(order_id: str, tx_type: str) -> int:
        async with async_session_factory() as session:
            result = await session.execute(
                _COUNT_TX_SQL, {"order_id": order_id, "tx_type": tx_type}
            )
            return int(result.scalar_one())

    return _count
