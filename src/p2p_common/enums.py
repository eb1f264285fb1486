"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    VENDOR = "vendor"
    CUSTOMER = "customer"
    SUPPORT = "support"
    DISPUTE_ADMIN = "dispute_admin"


class KycStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TradeIntent(str, Enum):
    """Offer direction: decides which side deposits escrow."""
    SELL_AD = "sell_ad"
    BUY_AD = "buy_ad"


class OrderStatus(str, Enum):
    CREATED = "created"
    AWAITING_DEPOSIT = "awaiting_deposit"  # legacy rows only, never entered by new orders
    ESCROWED = "escrowed"
    PAID = "paid"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"


class DisputeStatus(str, Enum):
    OPEN = "open"
    IN_REVIEW = "in_review"
    RESOLVED_REFUND = "resolved_refund"
    RESOLVED_RELEASE = "resolved_release"


class DisputeOutcome(str, Enum):
    REFUND = "refund"
    RELEASE = "release"


class TransactionType(str, Enum):
    # External money in/out
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    # Escrow (payer side)
    ESCROW_HOLD = "escrow_hold"
    ESCROW_RELEASE = "escrow_release"
    REFUND = "refund"
    # Escrow proceeds (payee side)
    PAYOUT = "payout"
    # Platform fee wallet
    FEE = "fee"


class NotificationType(str, Enum):
    ORDER = "order"
    PAYMENT = "payment"
    ESCROW = "escrow"
    DISPUTE = "dispute"
    WALLET = "wallet"
    SYSTEM = "system"
