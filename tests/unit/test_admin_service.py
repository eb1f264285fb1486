"""AdminService: freeze/unfreeze and ledger invariant report."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.p2p_admin.application.service import AdminService
from src.p2p_admin.domain.ledger_invariants import verify_ledger_invariants
from src.p2p_common.errors import NotAuthorizedError, UserNotFoundError
from tests.unit.fakes import ADMIN, DISPUTE_ADMIN, RecordingEventSink


def _db_returning(row: object) -> AsyncMock:
    result = MagicMock()
    result.fetchone.return_value = row
    db = AsyncMock()
    db.execute = AsyncMock(return_value=result)
    return db


class TestFreeze:
    async def test_freeze_records_audit_and_notifies(self) -> None:
        events = RecordingEventSink()
        db = _db_returning(MagicMock(id="u1", is_frozen=True, frozen_reason="chargeback"))

        result = await AdminService(events).freeze_user(db, ADMIN, "u1", "chargeback")

        assert result.is_frozen is True
        assert result.frozen_reason == "chargeback"
        assert events.actions() == ["user.freeze"]
        assert events.notifications[0]["user_id"] == "u1"
        db.commit.assert_awaited_once()

    async def test_unfreeze(self) -> None:
        events = RecordingEventSink()
        db = _db_returning(MagicMock(id="u1", is_frozen=False, frozen_reason=None))
        result = await AdminService(events).unfreeze_user(db, ADMIN, "u1")
        assert result.is_frozen is False
        assert events.actions() == ["user.unfreeze"]

    async def test_unknown_user_rolls_back(self) -> None:
        db = _db_returning(None)
        with pytest.raises(UserNotFoundError):
            await AdminService(RecordingEventSink()).freeze_user(db, ADMIN, "ghost", "x")
        db.rollback.assert_awaited_once()

    async def test_dispute_admin_cannot_freeze(self) -> None:
        db = AsyncMock()
        with pytest.raises(NotAuthorizedError):
            await AdminService(RecordingEventSink()).freeze_user(db, DISPUTE_ADMIN, "u1", "x")
        db.execute.assert_not_awaited()


def _rows(*rows: object) -> MagicMock:
    result = MagicMock()
    result.fetchall.return_value = list(rows)
    return result


class TestLedgerInvariants:
    async def test_clean_ledger(self) -> None:
        db = AsyncMock()
        db.execute = AsyncMock(
            side_effect=[
                _rows(),
                _rows(MagicMock(currency="USDT", total=500)),
                _rows(MagicMock(currency="USDT", net=500)),
                _rows(),
            ]
        )
        assert await verify_ledger_invariants(db) == []
        report = await AdminService(RecordingEventSink()).check_invariants(
            AsyncMock(execute=AsyncMock(side_effect=[_rows(), _rows(), _rows(), _rows()]))
        )
        assert report.ok is True

    async def test_reports_every_violation(self) -> None:
        db = AsyncMock()
        db.execute = AsyncMock(
            side_effect=[
                _rows(MagicMock(user_id="u1", currency="USDT", available_balance=-1, escrow_balance=0)),
                _rows(MagicMock(currency="USDT", total=499)),
                _rows(MagicMock(currency="USDT", net=500)),
                _rows(MagicMock(user_id="u2", currency="USDT", escrow=10, committed=50)),
            ]
        )
        violations = await verify_ledger_invariants(db)
        assert len(violations) == 3
        assert violations[0].startswith("negative balance: user=u1")
        assert "conservation broken for USDT" in violations[1]
        assert "escrow underfunded: user=u2" in violations[2]
