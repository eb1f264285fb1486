"""Domain models for p2p_offer — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Offer:
    id: str
    vendor_id: str                   # lister's user id
    trade_intent: str                # TradeIntent value
    currency: str
    price_per_unit: int              # fiat units per 1 whole unit of amount
    min_limit: int                   # fiat units, per order
    max_limit: int                   # fiat units, per order
    available_amount: int            # units still listable
    escrow_held_amount: int = 0      # buy_ad only: reserved, not yet assigned to an order
    payment_methods: list[str] = field(default_factory=list)
    terms: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None
