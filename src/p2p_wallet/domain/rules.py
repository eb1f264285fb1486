"""Pure guards shared by every ledger implementation."""

from src.p2p_common.errors import InvalidAmountError
from src.p2p_common.units import units_to_display


def require_positive(amount: int) -> None:
    if amount <= 0:
        raise InvalidAmountError(f"{units_to_display(amount)} must be greater than zero")
