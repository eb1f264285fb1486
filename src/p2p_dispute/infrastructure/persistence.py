"""DisputeRepository — raw SQL persistence for disputes.

disputes.order_id carries a unique index; a concurrent second insert for the
same order surfaces as IntegrityError and is mapped to AlreadyDisputedError.
"""

import logging
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.errors import AlreadyDisputedError, InternalError
from src.p2p_dispute.domain.models import Dispute

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, order_id, opened_by, reason, status, outcome, resolution,
    reviewed_by, resolved_by, resolved_at, created_at, updated_at
"""

_INSERT_SQL = text(f"""
    INSERT INTO disputes (id, order_id, opened_by, reason, status)
    VALUES (:id, :order_id, :opened_by, :reason, :status)
    RETURNING {_COLUMNS}
""")

_GET_SQL = text(f"SELECT {_COLUMNS} FROM disputes WHERE id = :id")

_GET_FOR_UPDATE_SQL = text(f"SELECT {_COLUMNS} FROM disputes WHERE id = :id FOR UPDATE")

_GET_BY_ORDER_SQL = text(f"SELECT {_COLUMNS} FROM disputes WHERE order_id = :order_id")

_CAS_UPDATE_SQL = text(f"""
    UPDATE disputes
    SET status = :status,
        outcome = :outcome,
        resolution = :resolution,
        reviewed_by = :reviewed_by,
        resolved_by = :resolved_by,
        resolved_at = :resolved_at,
        updated_at = NOW()
    WHERE id = :id AND status = :expected_status
    RETURNING {_COLUMNS}
""")

_LIST_BY_STATUS_SQL = text(f"""
    SELECT {_COLUMNS}
    FROM disputes
    WHERE status = ANY(string_to_array(CAST(:statuses_csv AS TEXT), ','))
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < CAST(:cursor_id AS TEXT))
    ORDER BY id DESC
    LIMIT :limit
""")


def _row_to_dispute(row: Any) -> Dispute:
    return Dispute(
        id=row.id,
        order_id=row.order_id,
        opened_by=row.opened_by,
        reason=row.reason,
        status=row.status,
        outcome=row.outcome,
        resolution=row.resolution,
        reviewed_by=row.reviewed_by,
        resolved_by=row.resolved_by,
        resolved_at=row.resolved_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class DisputeRepository:
    async def insert(self, db: AsyncSession, dispute: Dispute) -> Dispute:
        try:
            result = await db.execute(
                _INSERT_SQL,
                {
                    "id": dispute.id,
                    "order_id": dispute.order_id,
                    "opened_by": dispute.opened_by,
                    "reason": dispute.reason,
                    "status": dispute.status,
                },
            )
        except IntegrityError:
            logger.warning("Duplicate dispute insert for order %s", dispute.order_id)
            raise AlreadyDisputedError(dispute.order_id) from None
        row = result.fetchone()
        if row is None:
            raise InternalError("Dispute insert returned no rows")
        return _row_to_dispute(row)

    async def get(self, db: AsyncSession, dispute_id: str) -> Dispute | None:
        row = (await db.execute(_GET_SQL, {"id": dispute_id})).fetchone()
        return _row_to_dispute(row) if row else None

    async def get_for_update(self, db: AsyncSession, dispute_id: str) -> Dispute | None:
        row = (await db.execute(_GET_FOR_UPDATE_SQL, {"id": dispute_id})).fetchone()
        return _row_to_dispute(row) if row else None

    async def get_by_order(self, db: AsyncSession, order_id: str) -> Dispute | None:
        row = (await db.execute(_GET_BY_ORDER_SQL, {"order_id": order_id})).fetchone()
        return _row_to_dispute(row) if row else None

    async def compare_and_set(
        self, db: AsyncSession, dispute: Dispute, expected_status: str
    ) -> Dispute | None:
        result = await db.execute(
            _CAS_UPDATE_SQL,
            {
                "id": dispute.id,
                "expected_status": expected_status,
                "status": dispute.status,
                "outcome": dispute.outcome,
                "resolution": dispute.resolution,
                "reviewed_by": dispute.reviewed_by,
                "resolved_by": dispute.resolved_by,
                "resolved_at": dispute.resolved_at,
            },
        )
        row = result.fetchone()
        return _row_to_dispute(row) if row else None

    async def list_by_status(
        self, db: AsyncSession, statuses: list[str], cursor_id: str | None, limit: int
    ) -> list[Dispute]:
        result = await db.execute(
            _LIST_BY_STATUS_SQL,
            {"statuses_csv": ",".join(statuses), "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_dispute(row) for row in result.fetchall()]
