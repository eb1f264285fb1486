"""Domain models for p2p_order — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Order:
    id: str
    offer_id: str
    created_by: str                  # user who placed the order against the offer
    vendor_id: str                   # offer lister's user id
    trade_intent: str                # copied from the offer at creation
    currency: str
    amount: int                      # units of the traded item
    fiat_amount: int                 # units of currency paid
    price_per_unit: int
    payment_method: str
    status: str
    buyer_id: str                    # query index only; payouts re-derive via resolve_parties
    seller_id: str
    escrow_amount: int = 0
    platform_fee: int = 0
    seller_receives: int = 0
    delivery_note: str | None = None
    cancel_reason: str | None = None
    buyer_paid_at: datetime | None = None
    vendor_confirmed_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
    escrow_held_at: datetime | None = None
    escrow_released_at: datetime | None = None
    auto_release_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
