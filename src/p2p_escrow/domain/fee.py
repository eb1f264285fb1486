"""Platform fee split for escrow releases."""

from src.p2p_common.units import calculate_fee

PLATFORM_FEE_USER_ID = "PLATFORM_FEE"


def split_fee(gross: int, fee_bps: int) -> tuple[int, int]:
    """Return (net, fee) with fee = ceil(gross x bps / 10000) and net + fee == gross."""
    fee = min(calculate_fee(gross, fee_bps), gross)
    return gross - fee, fee
