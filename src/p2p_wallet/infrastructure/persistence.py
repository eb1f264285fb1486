"""WalletRepository — concrete implementation of WalletRepositoryProtocol.

All balance-mutating operations use atomic PostgreSQL UPDATE ... RETURNING
guarded by the balance they draw from. The row lock taken by the UPDATE
serialises concurrent writers on the same wallet; a result of 0 rows means
the guard failed and nothing was written.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

import logging
from typing import NoReturn

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.enums import TransactionType
from src.p2p_common.errors import (
    DuplicateDepositError,
    InsufficientFundsError,
    InternalError,
    InvariantViolationError,
)
from src.p2p_common.units import units_to_display
from src.p2p_wallet.domain.models import LedgerRef, Wallet, WalletTransaction
from src.p2p_wallet.domain.rules import require_positive

logger = logging.getLogger(__name__)

_WALLET_COLUMNS = (
    "id, user_id, currency, available_balance, escrow_balance, version, created_at, updated_at"
)

_TX_COLUMNS = (
    "id, user_id, wallet_id, tx_type, amount, currency, balance_after, escrow_after, "
    "related_order_id, related_offer_id, description, external_ref, created_at"
)

# ---------------------------------------------------------------------------
# SQL: wallet mutations
# ---------------------------------------------------------------------------

_CREDIT_SQL = text(f"""
    UPDATE wallets
    SET available_balance = available_balance + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :wallet_id
    RETURNING {_WALLET_COLUMNS}
""")

_DEBIT_SQL = text(f"""
    UPDATE wallets
    SET available_balance = available_balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :wallet_id AND available_balance >= :amount
    RETURNING {_WALLET_COLUMNS}
""")

_MOVE_TO_ESCROW_SQL = text(f"""
    UPDATE wallets
    SET available_balance = available_balance - :amount,
        escrow_balance    = escrow_balance    + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :wallet_id AND available_balance >= :amount
    RETURNING {_WALLET_COLUMNS}
""")

_MOVE_FROM_ESCROW_SQL = text(f"""
    UPDATE wallets
    SET available_balance = available_balance + :amount,
        escrow_balance    = escrow_balance    - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :wallet_id AND escrow_balance >= :amount
    RETURNING {_WALLET_COLUMNS}
""")

_RELEASE_FROM_ESCROW_SQL = text(f"""
    UPDATE wallets
    SET escrow_balance = escrow_balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE id = :wallet_id AND escrow_balance >= :amount
    RETURNING {_WALLET_COLUMNS}
""")

_INSERT_WALLET_SQL = text(f"""
    INSERT INTO wallets (user_id, currency, available_balance, escrow_balance, version)
    VALUES (:user_id, :currency, 0, 0, 0)
    ON CONFLICT (user_id, currency) DO UPDATE SET updated_at = NOW()
    RETURNING {_WALLET_COLUMNS}
""")

_INSERT_TX_SQL = text(f"""
    INSERT INTO wallet_transactions
        (user_id, wallet_id, tx_type, amount, currency, balance_after, escrow_after,
         related_order_id, related_offer_id, description, external_ref)
    VALUES
        (:user_id, :wallet_id, :tx_type, :amount, :currency, :balance_after, :escrow_after,
         :related_order_id, :related_offer_id, :description, :external_ref)
    RETURNING {_TX_COLUMNS}
""")

# ---------------------------------------------------------------------------
# SQL: reads
# ---------------------------------------------------------------------------

_GET_WALLET_SQL = text(f"""
    SELECT {_WALLET_COLUMNS}
    FROM wallets
    WHERE user_id = :user_id AND currency = :currency
""")

_GET_WALLET_BY_ID_SQL = text(f"""
    SELECT {_WALLET_COLUMNS}
    FROM wallets
    WHERE id = :wallet_id
""")

_LIST_WALLETS_SQL = text(f"""
    SELECT {_WALLET_COLUMNS}
    FROM wallets
    WHERE user_id = :user_id
    ORDER BY currency
""")

_IS_FROZEN_SQL = text("""
    SELECT is_frozen FROM users WHERE id = CAST(:user_id AS UUID)
""")

_LIST_TX_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM wallet_transactions
    WHERE user_id = :user_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
      AND (CAST(:tx_type AS TEXT) IS NULL OR tx_type = :tx_type)
    ORDER BY id DESC
    LIMIT :limit
""")

_FIND_DEPOSIT_SQL = text(f"""
    SELECT {_TX_COLUMNS}
    FROM wallet_transactions
    WHERE tx_type = 'deposit' AND external_ref = :external_ref
""")


def _row_to_wallet(row: object) -> Wallet:
    return Wallet(
        id=str(row.id),  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        currency=row.currency,  # type: ignore[attr-defined]
        available_balance=row.available_balance,  # type: ignore[attr-defined]
        escrow_balance=row.escrow_balance,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


def _row_to_tx(row: object) -> WalletTransaction:
    return WalletTransaction(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        wallet_id=str(row.wallet_id),  # type: ignore[attr-defined]
        tx_type=row.tx_type,  # type: ignore[attr-defined]
        amount=row.amount,  # type: ignore[attr-defined]
        currency=row.currency,  # type: ignore[attr-defined]
        balance_after=row.balance_after,  # type: ignore[attr-defined]
        escrow_after=row.escrow_after,  # type: ignore[attr-defined]
        related_order_id=row.related_order_id,  # type: ignore[attr-defined]
        related_offer_id=row.related_offer_id,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        external_ref=row.external_ref,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class WalletRepository:
    """Concrete repository — all operations atomic at the SQL level."""

    async def get_wallet(
        self, db: AsyncSession, user_id: str, currency: str
    ) -> Wallet | None:
        result = await db.execute(_GET_WALLET_SQL, {"user_id": user_id, "currency": currency})
        row = result.fetchone()
        return _row_to_wallet(row) if row else None

    async def list_wallets(self, db: AsyncSession, user_id: str) -> list[Wallet]:
        result = await db.execute(_LIST_WALLETS_SQL, {"user_id": user_id})
        return [_row_to_wallet(row) for row in result.fetchall()]

    async def create_wallet(
        self, db: AsyncSession, user_id: str, currency: str
    ) -> Wallet:
        result = await db.execute(_INSERT_WALLET_SQL, {"user_id": user_id, "currency": currency})
        row = result.fetchone()
        if row is None:
            raise InternalError("Wallet insert returned no rows")
        return _row_to_wallet(row)

    async def credit(
        self, db: AsyncSession, wallet: Wallet, amount: int, tx_type: str, ref: LedgerRef
    ) -> tuple[Wallet, WalletTransaction]:
        require_positive(amount)
        row = (
            await db.execute(_CREDIT_SQL, {"wallet_id": wallet.id, "amount": amount})
        ).fetchone()
        if row is None:
            raise InvariantViolationError(f"wallet {wallet.id} vanished during credit")
        updated = _row_to_wallet(row)
        return updated, await self._append(db, updated, tx_type, amount, ref)

    async def debit(
        self, db: AsyncSession, wallet: Wallet, amount: int, ref: LedgerRef
    ) -> tuple[Wallet, WalletTransaction]:
        require_positive(amount)
        row = (
            await db.execute(_DEBIT_SQL, {"wallet_id": wallet.id, "amount": amount})
        ).fetchone()
        if row is None:
            current = await self._reload(db, wallet)
            raise InsufficientFundsError(
                units_to_display(amount), units_to_display(current.available_balance)
            )
        updated = _row_to_wallet(row)
        return updated, await self._append(db, updated, TransactionType.WITHDRAW, amount, ref)

    async def move_to_escrow(
        self, db: AsyncSession, wallet: Wallet, amount: int, ref: LedgerRef
    ) -> tuple[Wallet, WalletTransaction]:
        require_positive(amount)
        row = (
            await db.execute(_MOVE_TO_ESCROW_SQL, {"wallet_id": wallet.id, "amount": amount})
        ).fetchone()
        if row is None:
            current = await self._reload(db, wallet)
            raise InsufficientFundsError(
                units_to_display(amount), units_to_display(current.available_balance)
            )
        updated = _row_to_wallet(row)
        return updated, await self._append(db, updated, TransactionType.ESCROW_HOLD, amount, ref)

    async def move_from_escrow(
        self, db: AsyncSession, wallet: Wallet, amount: int, ref: LedgerRef
    ) -> tuple[Wallet, WalletTransaction]:
        require_positive(amount)
        row = (
            await db.execute(_MOVE_FROM_ESCROW_SQL, {"wallet_id": wallet.id, "amount": amount})
        ).fetchone()
        if row is None:
            await self._escrow_shortfall(db, wallet, amount)
        updated = _row_to_wallet(row)
        return updated, await self._append(db, updated, TransactionType.REFUND, amount, ref)

    async def release_from_escrow(
        self, db: AsyncSession, wallet: Wallet, amount: int, ref: LedgerRef
    ) -> tuple[Wallet, WalletTransaction]:
        require_positive(amount)
        row = (
            await db.execute(_RELEASE_FROM_ESCROW_SQL, {"wallet_id": wallet.id, "amount": amount})
        ).fetchone()
        if row is None:
            await self._escrow_shortfall(db, wallet, amount)
        updated = _row_to_wallet(row)
        return updated, await self._append(
            db, updated, TransactionType.ESCROW_RELEASE, amount, ref
        )

    async def is_frozen(self, db: AsyncSession, user_id: str) -> bool:
        row = (await db.execute(_IS_FROZEN_SQL, {"user_id": user_id})).fetchone()
        return bool(row.is_frozen) if row else False

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        tx_type: str | None,
    ) -> list[WalletTransaction]:
        result = await db.execute(
            _LIST_TX_SQL,
            {
                "user_id": user_id,
                "cursor_id": cursor_id,
                "tx_type": tx_type,
                "limit": limit,
            },
        )
        return [_row_to_tx(row) for row in result.fetchall()]

    async def find_deposit(
        self, db: AsyncSession, external_ref: str
    ) -> WalletTransaction | None:
        row = (await db.execute(_FIND_DEPOSIT_SQL, {"external_ref": external_ref})).fetchone()
        return _row_to_tx(row) if row else None

    # -----------------------------------------------------------------------
    # helpers
    # -----------------------------------------------------------------------

    async def _reload(self, db: AsyncSession, wallet: Wallet) -> Wallet:
        row = (await db.execute(_GET_WALLET_BY_ID_SQL, {"wallet_id": wallet.id})).fetchone()
        if row is None:
            raise InvariantViolationError(f"wallet {wallet.id} does not exist")
        return _row_to_wallet(row)

    async def _escrow_shortfall(
        self, db: AsyncSession, wallet: Wallet, amount: int
    ) -> NoReturn:
        current = await self._reload(db, wallet)
        msg = (
            f"wallet {wallet.id} escrow {units_to_display(current.escrow_balance)} "
            f"< requested {units_to_display(amount)}"
        )
        logger.critical("Escrow underflow: %s", msg)
        raise InvariantViolationError(msg)

    async def _append(
        self,
        db: AsyncSession,
        wallet: Wallet,
        tx_type: str,
        amount: int,
        ref: LedgerRef,
    ) -> WalletTransaction:
        try:
            result = await db.execute(
                _INSERT_TX_SQL,
                {
                    "user_id": wallet.user_id,
                    "wallet_id": wallet.id,
                    "tx_type": tx_type,
                    "amount": amount,
                    "currency": wallet.currency,
                    "balance_after": wallet.available_balance,
                    "escrow_after": wallet.escrow_balance,
                    "related_order_id": ref.order_id,
                    "related_offer_id": ref.offer_id,
                    "description": ref.description,
                    "external_ref": ref.external_ref,
                },
            )
        except IntegrityError:
            if ref.external_ref is None:
                raise
            logger.warning("Duplicate deposit reference %s", ref.external_ref)
            raise DuplicateDepositError(ref.external_ref) from None
        row = result.fetchone()
        if row is None:
            raise InternalError("Transaction insert returned no rows")
        return _row_to_tx(row)
