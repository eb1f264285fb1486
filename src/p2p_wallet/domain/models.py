"""Domain models for p2p_wallet — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Wallet:
    id: str
    user_id: str
    currency: str
    available_balance: int   # units (1e-8)
    escrow_balance: int      # units (1e-8)
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_balance(self) -> int:
        return self.available_balance + self.escrow_balance


@dataclass
class WalletTransaction:
    id: int                          # BIGSERIAL
    user_id: str
    wallet_id: str
    tx_type: str                     # TransactionType value
    amount: int                      # units, always positive; direction implied by tx_type
    currency: str
    balance_after: int               # available_balance snapshot after op
    escrow_after: int                # escrow_balance snapshot after op
    related_order_id: str | None = None
    related_offer_id: str | None = None
    description: str | None = None
    external_ref: str | None = None  # chain tx hash for deposits
    created_at: datetime | None = None


@dataclass(frozen=True)
class LedgerRef:
    """What a balance mutation is about: an order, an offer, or neither."""
    order_id: str | None = None
    offer_id: str | None = None
    description: str | None = None
    external_ref: str | None = None
