"""Fixed-point arithmetic for wallet amounts.

Every amount is an int of base units, 1 unit = 10^-8 of the currency.
No float anywhere; Decimal only at the parse/display boundary.
"""

from decimal import Decimal, InvalidOperation
from typing import Annotated

from pydantic import BeforeValidator

UNIT_DECIMALS = 8
UNIT_SCALE = 10**UNIT_DECIMALS


def parse_units(value: str | int | Decimal) -> int:
    """Parse a decimal string ("12.5", "0.00000001") into base units.

    Raises ValueError on non-numeric input or more than 8 fractional digits.
    Sign is preserved; callers enforce positivity.
    """
    if isinstance(value, bool):
        raise ValueError("Amount must be a decimal string or integer")
    if isinstance(value, int):
        return value * UNIT_SCALE
    try:
        dec = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValueError(f"Not a decimal amount: {value!r}") from None
    if not dec.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    exponent = dec.as_tuple().exponent
    if isinstance(exponent, int) and exponent < -UNIT_DECIMALS:
        raise ValueError(f"At most {UNIT_DECIMALS} fractional digits allowed: {value!r}")
    return int(dec.scaleb(UNIT_DECIMALS))


def units_to_display(units: int) -> str:
    """Render base units as a fixed 8-digit decimal: 5000000000 -> '50.00000000'."""
    sign = "-" if units < 0 else ""
    whole, frac = divmod(abs(units), UNIT_SCALE)
    return f"{sign}{whole}.{frac:0{UNIT_DECIMALS}d}"


def multiply_units(amount: int, price: int) -> int:
    """amount x price for two fixed-point values, rounded up to the next unit."""
    return -((-amount * price) // UNIT_SCALE)


def calculate_fee(gross: int, fee_rate_bps: int) -> int:
    """Calculate fee with ceiling division (platform never loses).

    fee = ceil(gross * fee_rate_bps / 10000)
    """
    if gross == 0 or fee_rate_bps == 0:
        return 0
    return (gross * fee_rate_bps + 9999) // 10000


def _coerce_positive_units(value: object) -> int:
    if not isinstance(value, (str, int, Decimal)):
        raise ValueError("Amount must be a decimal string")
    units = parse_units(value)
    if units <= 0:
        raise ValueError("Amount must be greater than zero")
    return units


# Request-body amount: accepts "12.5" (or 12), yields base units
PositiveUnits = Annotated[int, BeforeValidator(_coerce_positive_units)]
