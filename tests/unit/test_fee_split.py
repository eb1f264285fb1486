"""Platform fee split: ceiling fee, net + fee == gross."""

import pytest

from src.p2p_common.units import parse_units
from src.p2p_escrow.domain.fee import split_fee


def test_twenty_percent_of_fifty() -> None:
    assert split_fee(parse_units("50"), 2000) == (parse_units("40"), parse_units("10"))


def test_fee_rounds_up_in_platform_favour() -> None:
    net, fee = split_fee(7, 2000)  # 1.4 units of fee
    assert (net, fee) == (5, 2)


def test_zero_rate() -> None:
    assert split_fee(123, 0) == (123, 0)


def test_full_rate_never_exceeds_gross() -> None:
    assert split_fee(99, 10_000) == (0, 99)


@pytest.mark.parametrize("gross", [1, 3, 99, 12_345_678_901])
@pytest.mark.parametrize("bps", [1, 150, 2000, 9999])
def test_conservation(gross: int, bps: int) -> None:
    net, fee = split_fee(gross, bps)
    assert net + fee == gross
    assert 0 <= fee <= gross
