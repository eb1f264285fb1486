"""WalletRepository: guarded UPDATEs that return no row must not be mistaken for success."""
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.p2p_common.errors import (
    DuplicateDepositError,
    InsufficientFundsError,
    InvalidAmountError,
    InvariantViolationError,
)
from src.p2p_wallet.domain.models import LedgerRef, Wallet
from src.p2p_wallet.infrastructure.persistence import WalletRepository


def _wallet_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", "w-1")
    row.user_id = kwargs.get("user_id", "user-1")
    row.currency = kwargs.get("currency", "USDT")
    row.available_balance = kwargs.get("available_balance", 100)
    row.escrow_balance = kwargs.get("escrow_balance", 0)
    row.version = kwargs.get("version", 1)
    row.created_at = datetime(2026, 1, 1, tzinfo=UTC)
    row.updated_at = datetime(2026, 1, 1, tzinfo=UTC)
    return row


def _tx_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = 1
    row.user_id = "user-1"
    row.wallet_id = "w-1"
    row.tx_type = kwargs.get("tx_type", "deposit")
    row.amount = kwargs.get("amount", 50)
    row.currency = "USDT"
    row.balance_after = kwargs.get("balance_after", 150)
    row.escrow_after = kwargs.get("escrow_after", 0)
    row.related_order_id = None
    row.related_offer_id = None
    row.description = None
    row.external_ref = kwargs.get("external_ref")
    row.created_at = datetime(2026, 1, 1, tzinfo=UTC)
    return row


def _results(*rows: Any) -> list[MagicMock]:
    results = []
    for row in rows:
        result = MagicMock()
        result.fetchone.return_value = row
        results.append(result)
    return results


def _wallet() -> Wallet:
    return Wallet(
        id="w-1", user_id="user-1", currency="USDT",
        available_balance=100, escrow_balance=0, version=1,
    )


class TestWalletRepository:
    async def test_credit_appends_ledger_row(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = _results(_wallet_row(available_balance=150), _tx_row())
        wallet, tx = await WalletRepository().credit(db, _wallet(), 50, "deposit", LedgerRef())
        assert wallet.available_balance == 150
        assert tx.balance_after == 150
        assert db.execute.await_count == 2

    async def test_debit_guard_miss_raises_insufficient_funds(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = _results(None, _wallet_row(available_balance=100))
        with pytest.raises(InsufficientFundsError):
            await WalletRepository().debit(db, _wallet(), 500, LedgerRef())

    async def test_move_to_escrow_guard_miss_raises_insufficient_funds(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = _results(None, _wallet_row())
        with pytest.raises(InsufficientFundsError):
            await WalletRepository().move_to_escrow(db, _wallet(), 500, LedgerRef(order_id="o-1"))

    async def test_escrow_underflow_is_invariant_violation(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = _results(None, _wallet_row(escrow_balance=10))
        with pytest.raises(InvariantViolationError):
            await WalletRepository().release_from_escrow(
                db, _wallet(), 50, LedgerRef(order_id="o-1")
            )

    async def test_non_positive_amount_rejected_before_sql(self) -> None:
        db = AsyncMock()
        with pytest.raises(InvalidAmountError):
            await WalletRepository().credit(db, _wallet(), 0, "deposit", LedgerRef())
        db.execute.assert_not_awaited()

    async def test_racing_deposit_reference_maps_to_duplicate(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [
            *_results(_wallet_row(available_balance=150)),
            IntegrityError("INSERT", {}, Exception("uq_wallet_tx_deposit_ref")),
        ]
        with pytest.raises(DuplicateDepositError):
            await WalletRepository().credit(
                db, _wallet(), 50, "deposit", LedgerRef(external_ref="0xabc")
            )

    async def test_other_integrity_errors_propagate(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = [
            *_results(_wallet_row(available_balance=150)),
            IntegrityError("INSERT", {}, Exception("ck_wallet_tx_type")),
        ]
        with pytest.raises(IntegrityError):
            await WalletRepository().credit(db, _wallet(), 50, "deposit", LedgerRef())

    async def test_find_deposit_maps_reference(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = _results(_tx_row(external_ref="0xabc"))
        tx = await WalletRepository().find_deposit(db, "0xabc")
        assert tx is not None
        assert tx.external_ref == "0xabc"


class TestFrozenLookup:
    async def test_compares_on_uuid_key(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = _results(MagicMock(is_frozen=True))
        user_id = "7f6c0e1a-2b3c-4d5e-8f90-1a2b3c4d5e6f"
        assert await WalletRepository().is_frozen(db, user_id) is True
        sql = str(db.execute.await_args.args[0])
        assert "id = CAST(:user_id AS UUID)" in sql
        assert "CAST(id AS TEXT)" not in sql
