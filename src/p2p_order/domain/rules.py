"""Order placement validation against an offer (pure)."""

from src.p2p_common.errors import OrderValidationError, SelfTradeError
from src.p2p_common.units import multiply_units, units_to_display
from src.p2p_offer.domain.models import Offer

# fiat_amount may differ from amount x price by at most one unit of rounding
FIAT_TOLERANCE_UNITS = 1


def validate_order_request(
    offer: Offer,
    creator_id: str,
    amount: int,
    fiat_amount: int,
    payment_method: str,
) -> None:
    if creator_id == offer.vendor_id:
        raise SelfTradeError()
    if payment_method not in offer.payment_methods:
        raise OrderValidationError(f"payment method {payment_method!r} not accepted by offer")
    if not offer.min_limit <= fiat_amount <= offer.max_limit:
        raise OrderValidationError(
            f"fiat amount {units_to_display(fiat_amount)} outside limits "
            f"{units_to_display(offer.min_limit)}-{units_to_display(offer.max_limit)}"
        )
    expected = multiply_units(amount, offer.price_per_unit)
    if abs(expected - fiat_amount) > FIAT_TOLERANCE_UNITS:
        raise OrderValidationError(
            f"fiat amount {units_to_display(fiat_amount)} does not match "
            f"amount x price = {units_to_display(expected)}"
        )
