"""Unit tests for request schemas: registration, orders and disputes."""

import pytest
from pydantic import ValidationError

from src.p2p_common.enums import DisputeOutcome
from src.p2p_dispute.application.schemas import OpenDisputeRequest, ResolveDisputeRequest
from src.p2p_gateway.user.schemas import RegisterRequest
from src.p2p_order.application.schemas import ConfirmRequest, CreateOrderRequest


class TestRegisterRequest:
    def test_valid_input(self) -> None:
        req = RegisterRequest(
            username="alice",
            email="alice@example.com",
            password="SecureP@ss1",
        )
        assert req.username == "alice"

    def test_username_invalid_chars(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(username="alice!", email="a@b.com", password="SecureP@ss1")

    def test_invalid_email(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(username="alice", email="not-an-email", password="SecureP@ss1")

    def test_password_no_digit(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(username="alice", email="a@b.com", password="NoDigitPass")


class TestCreateOrderRequest:
    def test_amounts_parsed_to_units(self) -> None:
        req = CreateOrderRequest(
            offer_id="offer-1", amount="2.5", fiat_amount="25", payment_method="bank_transfer"
        )
        assert req.amount == 250_000_000
        assert req.fiat_amount == 25 * 10**8

    def test_zero_amount_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CreateOrderRequest(
                offer_id="offer-1", amount="0", fiat_amount="25", payment_method="bank_transfer"
            )

    def test_nine_fractional_digits_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CreateOrderRequest(
                offer_id="offer-1",
                amount="0.000000001",
                fiat_amount="25",
                payment_method="bank_transfer",
            )

    def test_float_amount_rejected(self) -> None:
        with pytest.raises(ValidationError):
            CreateOrderRequest(
                offer_id="offer-1", amount=2.5, fiat_amount="25", payment_method="bank_transfer"
            )


class TestStepUpFields:
    def test_confirm_without_code(self) -> None:
        assert ConfirmRequest().step_up_code is None

    def test_confirm_code_must_be_six_chars(self) -> None:
        with pytest.raises(ValidationError):
            ConfirmRequest(step_up_code="12345")

    def test_resolve_outcome_parsed(self) -> None:
        req = ResolveDisputeRequest(outcome="refund", notes="buyer proved non-delivery")
        assert req.outcome == DisputeOutcome.REFUND

    def test_resolve_unknown_outcome_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ResolveDisputeRequest(outcome="split", notes="half each")

    def test_dispute_reason_needs_ten_chars(self) -> None:
        with pytest.raises(ValidationError):
            OpenDisputeRequest(reason="bad")
