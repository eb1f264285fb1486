"""Pure offer rules: listing validation and order fills against an offer."""

from dataclasses import dataclass

from src.p2p_common.enums import TradeIntent
from src.p2p_common.errors import InsufficientOfferEscrowError, OfferLimitError
from src.p2p_common.units import multiply_units, units_to_display
from src.p2p_offer.domain.models import Offer


def validate_limits(min_limit: int, max_limit: int) -> None:
    if min_limit > max_limit:
        raise OfferLimitError(
            f"min_limit {units_to_display(min_limit)} exceeds max_limit {units_to_display(max_limit)}"
        )


def required_reservation(offer: Offer) -> int:
    """Fiat escrow a buy_ad lister must hold to back the remaining listing."""
    if offer.trade_intent != TradeIntent.BUY_AD:
        return 0
    return multiply_units(offer.available_amount, offer.price_per_unit)


@dataclass(frozen=True)
class OfferFill:
    escrow: int     # fiat escrow backing the new order
    residual: int   # unassigned buy_ad escrow to refund to the lister


def apply_fill(offer: Offer, amount: int, fiat_amount: int) -> OfferFill:
    """Consume `amount` from the offer and, for buy_ad, its share of unassigned escrow.

    Mutates the offer in place. Fills are checked per order against
    ceil(amount x price) while the pool was reserved once as ceil(available x
    price), so partial fills can leave the pool a few units short of the last
    order's fiat amount. The fill that exhausts the offer therefore takes
    whatever the pool still holds, capped at its fiat amount, and any excess
    comes back as residual.
    """
    if amount > offer.available_amount:
        raise OfferLimitError(
            f"amount {units_to_display(amount)} exceeds available "
            f"{units_to_display(offer.available_amount)}"
        )
    exhausts = amount == offer.available_amount
    escrow = fiat_amount
    if offer.trade_intent == TradeIntent.BUY_AD:
        if exhausts:
            escrow = min(fiat_amount, offer.escrow_held_amount)
        elif offer.escrow_held_amount < fiat_amount:
            raise InsufficientOfferEscrowError(
                units_to_display(fiat_amount), units_to_display(offer.escrow_held_amount)
            )
        offer.escrow_held_amount -= escrow

    offer.available_amount -= amount
    residual = 0
    if exhausts:
        offer.is_active = False
        residual = offer.escrow_held_amount
        offer.escrow_held_amount = 0
    return OfferFill(escrow=escrow, residual=residual)


def restore_fill(offer: Offer, amount: int, fiat_amount: int) -> None:
    """Give a cancelled order's amount back to a still-active offer.

    For buy_ad the order's escrow returns to the unassigned pool; the caller
    moves no wallet funds in that case.
    """
    offer.available_amount += amount
    if offer.trade_intent == TradeIntent.BUY_AD:
        offer.escrow_held_amount += fiat_amount
