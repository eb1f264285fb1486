"""Admin application service: account freeze and ledger verification.

Freezing moves no funds. It only flips users.is_frozen, which the order,
offer, wallet and escrow layers consult before any debit-side operation.
"""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_admin.application.schemas import FreezeResponse, InvariantReport
from src.p2p_admin.domain.ledger_invariants import verify_ledger_invariants
from src.p2p_common.actor import Actor
from src.p2p_common.enums import NotificationType
from src.p2p_common.errors import NotAuthorizedError, UserNotFoundError
from src.p2p_common.unit_of_work import unit_of_work
from src.p2p_events.domain.sink import EventSinkProtocol
from src.p2p_events.infrastructure.db_sink import DbEventSink

logger = logging.getLogger(__name__)

_SET_FROZEN_SQL = text("""
    UPDATE users
    SET is_frozen = :is_frozen, frozen_reason = :reason, updated_at = NOW()
    WHERE id = CAST(:user_id AS UUID)
    RETURNING id, is_frozen, frozen_reason
""")


class AdminService:
    def __init__(self, events: EventSinkProtocol | None = None) -> None:
        self._events: EventSinkProtocol = events or DbEventSink()

    async def freeze_user(
        self, db: AsyncSession, actor: Actor, user_id: str, reason: str
    ) -> FreezeResponse:
        return await self._set_frozen(db, actor, user_id, True, reason)

    async def unfreeze_user(self, db: AsyncSession, actor: Actor, user_id: str) -> FreezeResponse:
        return await self._set_frozen(db, actor, user_id, False, None)

    async def check_invariants(self, db: AsyncSession) -> InvariantReport:
        violations = await verify_ledger_invariants(db)
        return InvariantReport(ok=not violations, violations=violations)

    async def _set_frozen(
        self,
        db: AsyncSession,
        actor: Actor,
        user_id: str,
        frozen: bool,
        reason: str | None,
    ) -> FreezeResponse:
        if not actor.is_admin:
            raise NotAuthorizedError("Admin role required")
        action = "user.freeze" if frozen else "user.unfreeze"
        async with unit_of_work(db, action, user_id):
            row = (
                await db.execute(
                    _SET_FROZEN_SQL, {"user_id": user_id, "is_frozen": frozen, "reason": reason}
                )
            ).fetchone()
            if row is None:
                raise UserNotFoundError(user_id)
            await self._events.audit(
                db, actor.user_id, action, "user", user_id, {"reason": reason}
            )
            await self._events.notify(
                db,
                user_id,
                NotificationType.SYSTEM.value,
                "Account frozen" if frozen else "Account unfrozen",
                reason or "Your account restrictions were lifted",
            )
        logger.warning("%s: user=%s by=%s reason=%s", action, user_id, actor.user_id, reason)
        return FreezeResponse(
            user_id=str(row.id), is_frozen=row.is_frozen, frozen_reason=row.frozen_reason
        )
