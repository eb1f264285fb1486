"""Unit tests for fixed-point amount handling."""

from decimal import Decimal

import pytest
from pydantic import BaseModel, ValidationError

from src.p2p_common.units import (
    UNIT_SCALE,
    PositiveUnits,
    calculate_fee,
    multiply_units,
    parse_units,
    units_to_display,
)


class TestParseUnits:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1", UNIT_SCALE),
            ("12.5", 1_250_000_000),
            ("0.00000001", 1),
            (" 3 ", 3 * UNIT_SCALE),
            (7, 7 * UNIT_SCALE),
            (Decimal("0.1"), 10_000_000),
            ("-2", -2 * UNIT_SCALE),
        ],
    )
    def test_valid(self, raw: object, expected: int) -> None:
        assert parse_units(raw) == expected  # type: ignore[arg-type]

    @pytest.mark.parametrize("raw", ["abc", "", "NaN", "Infinity", "0.000000001", True])
    def test_invalid(self, raw: object) -> None:
        with pytest.raises(ValueError):
            parse_units(raw)  # type: ignore[arg-type]


class TestDisplay:
    def test_fixed_eight_digits(self) -> None:
        assert units_to_display(5_000_000_000) == "50.00000000"
        assert units_to_display(1) == "0.00000001"
        assert units_to_display(0) == "0.00000000"
        assert units_to_display(-150_000_000) == "-1.50000000"


class TestArithmetic:
    def test_multiply_exact(self) -> None:
        assert multiply_units(parse_units("5"), parse_units("10")) == parse_units("50")

    def test_multiply_rounds_up(self) -> None:
        # 0.00000001 x 0.5 = 0.000000005 -> 1 unit
        assert multiply_units(1, parse_units("0.5")) == 1

    def test_fee_ceiling(self) -> None:
        assert calculate_fee(parse_units("50"), 2000) == parse_units("10")
        assert calculate_fee(1, 2000) == 1
        assert calculate_fee(0, 2000) == 0
        assert calculate_fee(parse_units("50"), 0) == 0


class _Body(BaseModel):
    amount: PositiveUnits


class TestPositiveUnits:
    def test_accepts_decimal_string(self) -> None:
        assert _Body(amount="0.5").amount == 50_000_000

    @pytest.mark.parametrize("raw", ["0", "-1", "1.123456789", 1.5, None])
    def test_rejects(self, raw: object) -> None:
        with pytest.raises(ValidationError):
            _Body(amount=raw)  # type: ignore[arg-type]
