"""Buyer/seller derivation.

For a sell_ad the order creator buys from the listing vendor; for a buy_ad
the listing vendor is the buyer and the order creator sells. Every handler
calls resolve_parties() instead of trusting a stored field.
"""

from dataclasses import dataclass

from src.p2p_common.enums import TradeIntent
from src.p2p_common.errors import InvariantViolationError
from src.p2p_order.domain.models import Order


@dataclass(frozen=True)
class Parties:
    buyer_id: str
    seller_id: str

    def counterparty_of(self, user_id: str) -> str:
        return self.seller_id if user_id == self.buyer_id else self.buyer_id


def resolve_parties(trade_intent: str, created_by: str, vendor_id: str) -> Parties:
    if trade_intent == TradeIntent.SELL_AD:
        return Parties(buyer_id=created_by, seller_id=vendor_id)
    if trade_intent == TradeIntent.BUY_AD:
        return Parties(buyer_id=vendor_id, seller_id=created_by)
    raise InvariantViolationError(f"unknown trade intent {trade_intent!r}")


def parties_of(order: Order) -> Parties:
    return resolve_parties(order.trade_intent, order.created_by, order.vendor_id)
