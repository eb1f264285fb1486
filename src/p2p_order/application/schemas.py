"""Pydantic schemas for p2p_order API."""

import base64
import json
from datetime import datetime

from pydantic import BaseModel, Field

from src.p2p_common.units import PositiveUnits, units_to_display
from src.p2p_order.domain.models import Order
from src.p2p_order.domain.parties import parties_of


def cursor_encode(last_id: str) -> str:
    return base64.b64encode(json.dumps({"id": last_id}).encode()).decode()


def cursor_decode(cursor: str | None) -> str | None:
    if cursor is None:
        return None
    try:
        return str(json.loads(base64.b64decode(cursor.encode()).decode())["id"])
    except Exception:
        return None


class CreateOrderRequest(BaseModel):
    offer_id: str
    amount: PositiveUnits
    fiat_amount: PositiveUnits
    payment_method: str = Field(..., min_length=1, max_length=50)


class DeliverRequest(BaseModel):
    delivery_note: str | None = Field(None, max_length=2000)


class ConfirmRequest(BaseModel):
    step_up_code: str | None = Field(None, min_length=6, max_length=6)


class CancelRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class OrderResponse(BaseModel):
    id: str
    offer_id: str
    trade_intent: str
    currency: str
    status: str
    buyer_id: str
    seller_id: str
    created_by: str
    vendor_id: str
    payment_method: str
    amount_units: int
    amount_display: str
    fiat_amount_units: int
    fiat_amount_display: str
    price_per_unit_units: int
    price_per_unit_display: str
    escrow_amount_units: int
    escrow_amount_display: str
    platform_fee_units: int
    platform_fee_display: str
    seller_receives_units: int
    seller_receives_display: str
    delivery_note: str | None
    cancel_reason: str | None
    buyer_paid_at: str | None
    vendor_confirmed_at: str | None
    completed_at: str | None
    cancelled_at: str | None
    auto_release_at: str | None
    created_at: str | None

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        parties = parties_of(order)
        return cls(
            id=order.id,
            offer_id=order.offer_id,
            trade_intent=order.trade_intent,
            currency=order.currency,
            status=order.status,
            buyer_id=parties.buyer_id,
            seller_id=parties.seller_id,
            created_by=order.created_by,
            vendor_id=order.vendor_id,
            payment_method=order.payment_method,
            amount_units=order.amount,
            amount_display=units_to_display(order.amount),
            fiat_amount_units=order.fiat_amount,
            fiat_amount_display=units_to_display(order.fiat_amount),
            price_per_unit_units=order.price_per_unit,
            price_per_unit_display=units_to_display(order.price_per_unit),
            escrow_amount_units=order.escrow_amount,
            escrow_amount_display=units_to_display(order.escrow_amount),
            platform_fee_units=order.platform_fee,
            platform_fee_display=units_to_display(order.platform_fee),
            seller_receives_units=order.seller_receives,
            seller_receives_display=units_to_display(order.seller_receives),
            delivery_note=order.delivery_note,
            cancel_reason=order.cancel_reason,
            buyer_paid_at=_iso(order.buyer_paid_at),
            vendor_confirmed_at=_iso(order.vendor_confirmed_at),
            completed_at=_iso(order.completed_at),
            cancelled_at=_iso(order.cancelled_at),
            auto_release_at=_iso(order.auto_release_at),
            created_at=_iso(order.created_at),
        )


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    next_cursor: str | None
    has_more: bool
