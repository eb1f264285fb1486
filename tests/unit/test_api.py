"""HTTP surface checks that need no database: auth gates and error envelope."""

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock, patch

from httpx import AsyncClient


async def test_health(client: AsyncClient) -> None:
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


async def test_wallet_requires_bearer_token(client: AsyncClient) -> None:
    resp = await client.get("/api/v1/wallet/balances")
    assert resp.status_code == 401


async def test_order_transitions_require_bearer_token(client: AsyncClient) -> None:
    resp = await client.post("/api/v1/orders/123/confirm", json={})
    assert resp.status_code == 401


async def test_deposit_feed_disabled_without_configured_token(client: AsyncClient) -> None:
    with patch("src.p2p_gateway.auth.dependencies.settings.DEPOSIT_FEED_TOKEN", ""):
        resp = await client.post(
            "/api/v1/internal/deposits",
            json={"user_id": "u1", "amount": "10", "reference": "0xabc"},
            headers={"X-Deposit-Feed-Token": "anything"},
        )
    assert resp.status_code == 403
    body = resp.json()
    assert body["code"] == 1006
    assert body["data"] is None
    assert body["request_id"].startswith("req_")


async def test_deposit_feed_rejects_wrong_token(client: AsyncClient) -> None:
    with patch("src.p2p_gateway.auth.dependencies.settings.DEPOSIT_FEED_TOKEN", "feed-secret"):
        resp = await client.post(
            "/api/v1/internal/orders/123/auto-release",
            headers={"X-Deposit-Feed-Token": "guess"},
        )
    assert resp.status_code == 403
    assert resp.json()["message"] == "Internal caller token invalid"


async def test_freeze_rejects_malformed_user_id(client: AsyncClient) -> None:
    from src.main import app
    from src.p2p_common.database import get_db_session
    from src.p2p_gateway.auth.dependencies import require_admin

    db = AsyncMock()

    async def _session() -> AsyncIterator[AsyncMock]:
        yield db

    app.dependency_overrides[require_admin] = lambda: MagicMock(id="a1", role="admin")
    app.dependency_overrides[get_db_session] = _session
    try:
        resp = await client.post("/api/v1/admin/users/not-a-uuid/freeze", json={"reason": "x"})
    finally:
        app.dependency_overrides.clear()
    assert resp.status_code == 422
    db.execute.assert_not_awaited()
