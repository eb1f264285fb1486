"""unit_of_work — commit on success, roll back on any exception.

Typed rejections (AppError) are logged at WARNING, broken invariants at
CRITICAL; both re-raise unchanged so the API layer can render them.

Side effects outside the database (a claimed step-up code in Redis) register
a compensation with on_rollback(); compensations run after the rollback, in
reverse order, and never replace the original exception.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.errors import AppError, InvariantViolationError

logger = logging.getLogger(__name__)

Compensation = Callable[[], Awaitable[None]]


class UnitOfWork:
    def __init__(self) -> None:
        self._compensations: list[Compensation] = []

    def on_rollback(self, compensation: Compensation) -> None:
        self._compensations.append(compensation)

    async def compensate(self, action: str, ref: str) -> None:
        for compensation in reversed(self._compensations):
            try:
                await compensation()
            except Exception:
                logger.exception("%s %s: compensation failed", action, ref)


@asynccontextmanager
async def unit_of_work(db: AsyncSession, action: str, ref: str) -> AsyncIterator[UnitOfWork]:
    uow = UnitOfWork()
    try:
        yield uow
        await db.commit()
    except InvariantViolationError as exc:
        await db.rollback()
        await uow.compensate(action, ref)
        logger.critical("%s %s aborted: %s", action, ref, exc.message)
        raise
    except AppError as exc:
        await db.rollback()
        await uow.compensate(action, ref)
        logger.warning("%s %s rejected: %s", action, ref, exc.message)
        raise
    except Exception:
        await db.rollback()
        await uow.compensate(action, ref)
        raise
