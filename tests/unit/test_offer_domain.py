"""Offer fills and buy_ad escrow reservation arithmetic."""

import pytest

from src.p2p_common.errors import InsufficientOfferEscrowError, OfferLimitError
from src.p2p_common.units import parse_units
from src.p2p_offer.domain.models import Offer
from src.p2p_offer.domain.rules import (
    apply_fill,
    required_reservation,
    restore_fill,
    validate_limits,
)


def _buy_ad(available: str = "10", held: str = "100") -> Offer:
    return Offer(
        id="of1",
        vendor_id="vendor",
        trade_intent="buy_ad",
        currency="USDT",
        price_per_unit=parse_units("10"),
        min_limit=parse_units("10"),
        max_limit=parse_units("100"),
        available_amount=parse_units(available),
        escrow_held_amount=parse_units(held),
        payment_methods=["wise"],
    )


def test_validate_limits() -> None:
    validate_limits(parse_units("10"), parse_units("10"))
    with pytest.raises(OfferLimitError):
        validate_limits(parse_units("11"), parse_units("10"))


def test_reservation_only_for_buy_ad() -> None:
    offer = _buy_ad()
    assert required_reservation(offer) == parse_units("100")
    offer.trade_intent = "sell_ad"
    assert required_reservation(offer) == 0


def test_partial_fill_shrinks_pool() -> None:
    offer = _buy_ad()
    fill = apply_fill(offer, parse_units("4"), parse_units("40"))
    assert fill.escrow == parse_units("40")
    assert fill.residual == 0
    assert offer.available_amount == parse_units("6")
    assert offer.escrow_held_amount == parse_units("60")
    assert offer.is_active


def test_exhausting_fill_returns_residual_and_deactivates() -> None:
    offer = _buy_ad(available="10", held="101")
    fill = apply_fill(offer, parse_units("10"), parse_units("100"))
    assert fill.escrow == parse_units("100")
    assert fill.residual == parse_units("1")
    assert offer.escrow_held_amount == 0
    assert not offer.is_active


def test_fill_beyond_available() -> None:
    with pytest.raises(OfferLimitError):
        apply_fill(_buy_ad(), parse_units("11"), parse_units("110"))


def test_fill_beyond_pool() -> None:
    with pytest.raises(InsufficientOfferEscrowError):
        apply_fill(_buy_ad(held="30"), parse_units("4"), parse_units("40"))


def test_restore_fill_returns_amount_and_escrow() -> None:
    offer = _buy_ad()
    apply_fill(offer, parse_units("4"), parse_units("40"))
    restore_fill(offer, parse_units("4"), parse_units("40"))
    assert offer.available_amount == parse_units("10")
    assert offer.escrow_held_amount == parse_units("100")


class TestRoundingDrift:
    """Price 3.33333333 for 3 units reserves 9.99999999, but two 1.5 fills each round up to 5."""

    def _offer(self) -> Offer:
        offer = _buy_ad(available="3", held="0")
        offer.price_per_unit = parse_units("3.33333333")
        offer.escrow_held_amount = required_reservation(offer)
        return offer

    def test_reservation_rounds_up_once(self) -> None:
        assert self._offer().escrow_held_amount == 999_999_999

    def test_last_fill_takes_what_the_pool_holds(self) -> None:
        offer = self._offer()
        first = apply_fill(offer, parse_units("1.5"), parse_units("5"))
        assert first.escrow == parse_units("5")
        assert offer.escrow_held_amount == 499_999_999

        last = apply_fill(offer, parse_units("1.5"), parse_units("5"))
        assert last.escrow == 499_999_999
        assert last.residual == 0
        assert offer.available_amount == 0
        assert not offer.is_active

    def test_pool_shortfall_still_rejects_partial_fill(self) -> None:
        offer = self._offer()
        apply_fill(offer, parse_units("1.5"), parse_units("5"))
        with pytest.raises(InsufficientOfferEscrowError):
            apply_fill(offer, parse_units("1.49999999"), parse_units("5"))
