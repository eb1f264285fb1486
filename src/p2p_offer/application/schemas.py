"""Pydantic schemas for p2p_offer API.

Cursor format: Base64 JSON {"id": "<offer_id>"}; offer ids are snowflake
strings, so ORDER BY id DESC is newest first.
"""

import base64
import json

from pydantic import BaseModel, Field

from src.p2p_common.enums import TradeIntent
from src.p2p_common.units import PositiveUnits, units_to_display
from src.p2p_offer.domain.models import Offer


def cursor_encode(last_id: str) -> str:
    return base64.b64encode(json.dumps({"id": last_id}).encode()).decode()


def cursor_decode(cursor: str | None) -> str | None:
    """Decode a cursor back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        return str(json.loads(base64.b64decode(cursor.encode()).decode())["id"])
    except Exception:
        return None


class CreateOfferRequest(BaseModel):
    trade_intent: TradeIntent
    currency: str = "USDT"
    price_per_unit: PositiveUnits
    min_limit: PositiveUnits = Field(..., description="Minimum fiat amount per order")
    max_limit: PositiveUnits = Field(..., description="Maximum fiat amount per order")
    available_amount: PositiveUnits
    payment_methods: list[str] = Field(..., min_length=1, max_length=10)
    terms: str | None = Field(None, max_length=2000)


class UpdateOfferRequest(BaseModel):
    price_per_unit: PositiveUnits | None = None
    min_limit: PositiveUnits | None = None
    max_limit: PositiveUnits | None = None
    payment_methods: list[str] | None = Field(None, min_length=1, max_length=10)
    terms: str | None = Field(None, max_length=2000)


class OfferResponse(BaseModel):
    id: str
    vendor_id: str
    trade_intent: str
    currency: str
    price_per_unit_units: int
    price_per_unit_display: str
    min_limit_units: int
    min_limit_display: str
    max_limit_units: int
    max_limit_display: str
    available_amount_units: int
    available_amount_display: str
    escrow_held_units: int
    escrow_held_display: str
    payment_methods: list[str]
    terms: str | None
    is_active: bool
    created_at: str | None

    @classmethod
    def from_offer(cls, offer: Offer) -> "OfferResponse":
        return cls(
            id=offer.id,
            vendor_id=offer.vendor_id,
            trade_intent=offer.trade_intent,
            currency=offer.currency,
            price_per_unit_units=offer.price_per_unit,
            price_per_unit_display=units_to_display(offer.price_per_unit),
            min_limit_units=offer.min_limit,
            min_limit_display=units_to_display(offer.min_limit),
            max_limit_units=offer.max_limit,
            max_limit_display=units_to_display(offer.max_limit),
            available_amount_units=offer.available_amount,
            available_amount_display=units_to_display(offer.available_amount),
            escrow_held_units=offer.escrow_held_amount,
            escrow_held_display=units_to_display(offer.escrow_held_amount),
            payment_methods=offer.payment_methods,
            terms=offer.terms,
            is_active=offer.is_active,
            created_at=offer.created_at.isoformat() if offer.created_at else None,
        )


class OfferListResponse(BaseModel):
    items: list[OfferResponse]
    next_cursor: str | None
    has_more: bool
