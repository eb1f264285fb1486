"""End-to-end escrow flows over HTTP (requires running PG + Redis).

Pre-condition: alembic upgrade head against DATABASE_URL, and the settings
process env must carry the same DEPOSIT_FEED_TOKEN the fixtures use.
"""

import time

import pytest
from httpx import AsyncClient

from config.settings import settings
from src.p2p_gateway.auth.step_up import totp_at

pytestmark = [pytest.mark.asyncio(loop_scope="session"), pytest.mark.integration]

SECRET = "JBSWY3DPEHPK3PXP"


async def _balance(client: AsyncClient, headers: dict[str, str]) -> tuple[str, str]:
    data = (await client.get("/api/v1/wallet/balance", headers=headers)).json()["data"]
    return data["available_display"], data["escrow_display"]


class TestSellAdFlow:
    async def test_escrow_release_with_fee(self, client: AsyncClient, sell_ad_order) -> None:  # type: ignore[no-untyped-def]
        order_id, vendor, buyer = await sell_ad_order()
        assert await _balance(client, buyer) == ("450.00000000", "50.00000000")

        assert (await client.post(f"/api/v1/orders/{order_id}/paid", headers=buyer)).status_code == 200
        resp = await client.post(
            f"/api/v1/orders/{order_id}/deliver", json={"delivery_note": "gift card"}, headers=vendor
        )
        assert resp.json()["data"]["status"] == "confirmed"
        resp = await client.post(f"/api/v1/orders/{order_id}/confirm", json={}, headers=buyer)
        data = resp.json()["data"]

        assert data["status"] == "completed"
        assert data["seller_receives_display"] == "40.00000000"
        assert data["platform_fee_display"] == "10.00000000"
        assert await _balance(client, vendor) == ("40.00000000", "0.00000000")
        assert await _balance(client, buyer) == ("450.00000000", "0.00000000")

        again = await client.post(f"/api/v1/orders/{order_id}/confirm", json={}, headers=buyer)
        assert again.status_code == 409
        assert again.json()["code"] == 4002


class TestDisputeFlow:
    async def test_refund_requires_step_up(self, client: AsyncClient, new_user, sell_ad_order) -> None:  # type: ignore[no-untyped-def]
        order_id, _vendor, buyer = await sell_ad_order()
        await client.post(f"/api/v1/orders/{order_id}/paid", headers=buyer)
        opened = await client.post(
            f"/api/v1/orders/{order_id}/dispute",
            json={"reason": "Seller stopped answering in chat"},
            headers=buyer,
        )
        assert opened.status_code == 201, opened.text
        dispute_id = opened.json()["data"]["dispute"]["id"]
        _, arbiter = await new_user("dispute_admin", totp_secret=SECRET)

        missing = await client.post(
            f"/api/v1/admin/disputes/{dispute_id}/resolve",
            json={"outcome": "refund", "notes": "no proof of delivery"},
            headers=arbiter,
        )
        assert missing.status_code == 401
        assert missing.json()["code"] == 1007

        code = totp_at(SECRET, int(time.time()) // 30)
        resolved = await client.post(
            f"/api/v1/admin/disputes/{dispute_id}/resolve",
            json={"outcome": "refund", "notes": "no proof of delivery", "step_up_code": code},
            headers=arbiter,
        )
        assert resolved.status_code == 200, resolved.text
        assert resolved.json()["data"]["dispute"]["status"] == "resolved_refund"
        assert resolved.json()["data"]["order"]["status"] == "cancelled"
        assert await _balance(client, buyer) == ("500.00000000", "0.00000000")


class TestAccessControl:
    async def test_customer_cannot_list_offers_for_sale(self, client: AsyncClient, new_user) -> None:  # type: ignore[no-untyped-def]
        _, customer = await new_user()
        resp = await client.post(
            "/api/v1/offers",
            json={
                "trade_intent": "sell_ad",
                "price_per_unit": "1",
                "min_limit": "1",
                "max_limit": "2",
                "available_amount": "1",
                "payment_methods": ["cash"],
            },
            headers=customer,
        )
        assert resp.status_code == 403


class TestDepositFeed:
    async def test_redelivered_reference_is_rejected(self, client: AsyncClient, new_user) -> None:  # type: ignore[no-untyped-def]
        user_id, headers = await new_user()
        body = {"user_id": user_id, "amount": "100", "reference": f"0xfeed{user_id}"}
        feed = {"X-Deposit-Feed-Token": settings.DEPOSIT_FEED_TOKEN}

        first = await client.post("/api/v1/internal/deposits", json=body, headers=feed)
        assert first.status_code == 200, first.text
        again = await client.post("/api/v1/internal/deposits", json=body, headers=feed)
        assert again.status_code == 409
        assert again.json()["code"] == 2005
        assert await _balance(client, headers) == ("100.00000000", "0.00000000")
