"""Pydantic schemas and cursor utilities for p2p_wallet API."""

import base64
import json

from pydantic import BaseModel, Field

from src.p2p_common.units import PositiveUnits, units_to_display
from src.p2p_wallet.domain.models import Wallet, WalletTransaction

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int) -> str:
    """Encode a BIGINT primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return int(payload["id"])
    except Exception:
        return None


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class DepositRequest(BaseModel):
    amount: PositiveUnits = Field(..., description="Decimal amount, up to 8 fractional digits")
    currency: str = "USDT"


class WithdrawRequest(BaseModel):
    amount: PositiveUnits = Field(..., description="Decimal amount, up to 8 fractional digits")
    currency: str = "USDT"


class DepositFeedRequest(BaseModel):
    """Credit pushed by the external chain monitor once a transfer is confirmed."""
    user_id: str
    amount: PositiveUnits
    currency: str = "USDT"
    reference: str = Field(..., min_length=1, max_length=200, description="Chain tx hash")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    user_id: str
    wallet_id: str
    currency: str
    available_units: int
    available_display: str
    escrow_units: int
    escrow_display: str
    total_units: int
    total_display: str

    @classmethod
    def from_wallet(cls, wallet: Wallet) -> "BalanceResponse":
        return cls(
            user_id=wallet.user_id,
            wallet_id=wallet.id,
            currency=wallet.currency,
            available_units=wallet.available_balance,
            available_display=units_to_display(wallet.available_balance),
            escrow_units=wallet.escrow_balance,
            escrow_display=units_to_display(wallet.escrow_balance),
            total_units=wallet.total_balance,
            total_display=units_to_display(wallet.total_balance),
        )


class BalanceListResponse(BaseModel):
    items: list[BalanceResponse]


class MovementResponse(BaseModel):
    """Result of a deposit or withdrawal."""
    currency: str
    available_units: int
    available_display: str
    amount_units: int
    amount_display: str
    transaction_id: int

    @classmethod
    def from_result(cls, wallet: Wallet, tx: WalletTransaction) -> "MovementResponse":
        return cls(
            currency=wallet.currency,
            available_units=wallet.available_balance,
            available_display=units_to_display(wallet.available_balance),
            amount_units=tx.amount,
            amount_display=units_to_display(tx.amount),
            transaction_id=tx.id,
        )


class TransactionItem(BaseModel):
    id: int
    wallet_id: str
    tx_type: str
    currency: str
    amount_units: int
    amount_display: str
    balance_after_units: int
    escrow_after_units: int
    related_order_id: str | None
    related_offer_id: str | None
    description: str | None
    created_at: str  # ISO8601 string

    @classmethod
    def from_tx(cls, tx: WalletTransaction) -> "TransactionItem":
        return cls(
            id=tx.id,
            wallet_id=tx.wallet_id,
            tx_type=tx.tx_type,
            currency=tx.currency,
            amount_units=tx.amount,
            amount_display=units_to_display(tx.amount),
            balance_after_units=tx.balance_after,
            escrow_after_units=tx.escrow_after,
            related_order_id=tx.related_order_id,
            related_offer_id=tx.related_offer_id,
            description=tx.description,
            created_at=tx.created_at.isoformat() if tx.created_at else "",
        )


class TransactionListResponse(BaseModel):
    items: list[TransactionItem]
    next_cursor: str | None
    has_more: bool
