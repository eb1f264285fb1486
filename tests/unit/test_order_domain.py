"""Pure order-domain rules: parties, transition guards, placement validation."""

import pytest

from src.p2p_common.actor import SYSTEM_ACTOR, Actor
from src.p2p_common.enums import OrderStatus, TradeIntent
from src.p2p_common.errors import (
    InvalidStateError,
    InvariantViolationError,
    NotAuthorizedError,
    OrderValidationError,
    SelfTradeError,
)
from src.p2p_common.units import parse_units
from src.p2p_offer.domain.models import Offer
from src.p2p_order.domain.models import Order
from src.p2p_order.domain.parties import parties_of, resolve_parties
from src.p2p_order.domain.rules import validate_order_request
from src.p2p_order.domain.transitions import (
    ADMIN_CANCEL_FROM,
    BUYER_CANCEL_FROM,
    CONFIRM_FROM,
    cancel_sources_for,
    is_participant,
    require_buyer,
    require_seller_or_admin,
    require_status,
)


def _order(intent: str = "sell_ad", status: str = "escrowed") -> Order:
    parties = resolve_parties(intent, "creator", "vendor")
    return Order(
        id="o1",
        offer_id="of1",
        created_by="creator",
        vendor_id="vendor",
        trade_intent=intent,
        currency="USDT",
        amount=parse_units("5"),
        fiat_amount=parse_units("50"),
        price_per_unit=parse_units("10"),
        payment_method="bank_transfer",
        status=status,
        buyer_id=parties.buyer_id,
        seller_id=parties.seller_id,
        escrow_amount=parse_units("50"),
    )


def _offer(**overrides: object) -> Offer:
    fields: dict[str, object] = {
        "id": "of1",
        "vendor_id": "vendor",
        "trade_intent": "sell_ad",
        "currency": "USDT",
        "price_per_unit": parse_units("10"),
        "min_limit": parse_units("10"),
        "max_limit": parse_units("1000"),
        "available_amount": parse_units("100"),
        "payment_methods": ["bank_transfer", "wise"],
    }
    fields.update(overrides)
    return Offer(**fields)  # type: ignore[arg-type]


class TestParties:
    def test_sell_ad_creator_buys(self) -> None:
        parties = resolve_parties(TradeIntent.SELL_AD, "creator", "vendor")
        assert (parties.buyer_id, parties.seller_id) == ("creator", "vendor")

    def test_buy_ad_vendor_buys(self) -> None:
        parties = resolve_parties(TradeIntent.BUY_AD, "creator", "vendor")
        assert (parties.buyer_id, parties.seller_id) == ("vendor", "creator")

    def test_counterparty(self) -> None:
        parties = resolve_parties("sell_ad", "creator", "vendor")
        assert parties.counterparty_of("creator") == "vendor"
        assert parties.counterparty_of("vendor") == "creator"

    def test_unknown_intent_is_invariant_violation(self) -> None:
        with pytest.raises(InvariantViolationError):
            resolve_parties("swap_ad", "creator", "vendor")

    def test_parties_derived_not_read_from_stored_fields(self) -> None:
        order = _order("buy_ad")
        order.buyer_id = "tampered"
        assert parties_of(order).buyer_id == "vendor"


class TestGuards:
    def test_require_status(self) -> None:
        require_status(_order(status="confirmed"), CONFIRM_FROM, "confirm")
        with pytest.raises(InvalidStateError):
            require_status(_order(status="completed"), CONFIRM_FROM, "confirm")

    def test_require_buyer(self) -> None:
        require_buyer(_order(), Actor("creator", "customer"))
        with pytest.raises(NotAuthorizedError):
            require_buyer(_order(), Actor("vendor", "vendor"))

    def test_seller_or_admin(self) -> None:
        require_seller_or_admin(_order(), Actor("vendor", "vendor"))
        require_seller_or_admin(_order(), Actor("root", "admin"))
        with pytest.raises(NotAuthorizedError):
            require_seller_or_admin(_order(), Actor("creator", "customer"))

    def test_support_is_not_admin(self) -> None:
        with pytest.raises(NotAuthorizedError):
            require_seller_or_admin(_order(), Actor("helpdesk", "support"))

    def test_participants(self) -> None:
        order = _order()
        assert is_participant(order, "creator")
        assert is_participant(order, "vendor")
        assert not is_participant(order, "someone-else")

    def test_cancel_sources(self) -> None:
        order = _order()
        assert cancel_sources_for(order, Actor("creator", "customer")) == BUYER_CANCEL_FROM
        assert cancel_sources_for(order, Actor("root", "admin")) == ADMIN_CANCEL_FROM
        assert OrderStatus.PAID not in BUYER_CANCEL_FROM
        with pytest.raises(NotAuthorizedError):
            cancel_sources_for(order, Actor("vendor", "vendor"))

    def test_system_actor(self) -> None:
        assert SYSTEM_ACTOR.is_system
        assert not SYSTEM_ACTOR.is_admin


class TestValidateOrderRequest:
    def test_accepts_matching_request(self) -> None:
        validate_order_request(
            _offer(), "buyer", parse_units("5"), parse_units("50"), "bank_transfer"
        )

    def test_self_trade(self) -> None:
        with pytest.raises(SelfTradeError):
            validate_order_request(
                _offer(), "vendor", parse_units("5"), parse_units("50"), "bank_transfer"
            )

    def test_payment_method_not_offered(self) -> None:
        with pytest.raises(OrderValidationError):
            validate_order_request(_offer(), "buyer", parse_units("5"), parse_units("50"), "cash")

    @pytest.mark.parametrize("fiat", ["9", "1001"])
    def test_outside_limits(self, fiat: str) -> None:
        amount = parse_units(fiat) // 10
        with pytest.raises(OrderValidationError):
            validate_order_request(_offer(), "buyer", amount, parse_units(fiat), "wise")

    def test_fiat_must_match_price(self) -> None:
        with pytest.raises(OrderValidationError):
            validate_order_request(
                _offer(), "buyer", parse_units("5"), parse_units("45"), "wise"
            )

    def test_one_unit_rounding_tolerated(self) -> None:
        validate_order_request(
            _offer(), "buyer", parse_units("5"), parse_units("50") - 1, "wise"
        )
