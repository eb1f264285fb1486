"""WalletApplicationService — thin composition layer over the ledger.

Deposits and withdrawals commit their own transaction; reads run without one.
Wallet creation runs inside the caller's transaction (user registration).
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.p2p_common.enums import TransactionType
from src.p2p_common.errors import (
    AccountFrozenError,
    DuplicateDepositError,
    UnsupportedCurrencyError,
    WalletNotFoundError,
)
from src.p2p_common.unit_of_work import unit_of_work
from src.p2p_wallet.application.schemas import (
    BalanceListResponse,
    BalanceResponse,
    MovementResponse,
    TransactionItem,
    TransactionListResponse,
    cursor_decode,
    cursor_encode,
)
from src.p2p_wallet.domain.models import LedgerRef, Wallet
from src.p2p_wallet.domain.repository import WalletRepositoryProtocol
from src.p2p_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


class WalletApplicationService:
    def __init__(self, repo: WalletRepositoryProtocol | None = None) -> None:
        self._repo: WalletRepositoryProtocol = repo or WalletRepository()

    async def open_wallets(self, db: AsyncSession, user_id: str) -> list[Wallet]:
        """Create one wallet per supported currency. Caller owns the transaction."""
        return [
            await self._repo.create_wallet(db, user_id, currency)
            for currency in settings.SUPPORTED_CURRENCIES
        ]

    async def get_balance(
        self, db: AsyncSession, user_id: str, currency: str
    ) -> BalanceResponse:
        wallet = await self._require_wallet(db, user_id, currency)
        return BalanceResponse.from_wallet(wallet)

    async def list_balances(self, db: AsyncSession, user_id: str) -> BalanceListResponse:
        wallets = await self._repo.list_wallets(db, user_id)
        return BalanceListResponse(items=[BalanceResponse.from_wallet(w) for w in wallets])

    async def credit_deposit(
        self,
        db: AsyncSession,
        user_id: str,
        currency: str,
        amount: int,
        reference: str | None,
    ) -> MovementResponse:
        """Credit an externally confirmed deposit. Frozen accounts still receive funds.

        A chain reference is credited at most once: a redelivered reference is
        rejected with DuplicateDepositError, both here and by the partial
        unique index on wallet_transactions when two deliveries race.
        Simulated deposits carry no reference.
        """
        async with unit_of_work(db, "credit_deposit", reference or user_id):
            if reference is not None and await self._repo.find_deposit(db, reference):
                raise DuplicateDepositError(reference)
            wallet = await self._require_wallet(db, user_id, currency)
            wallet, tx = await self._repo.credit(
                db,
                wallet,
                amount,
                TransactionType.DEPOSIT,
                LedgerRef(
                    description=f"Deposit {reference}" if reference else "Simulated deposit",
                    external_ref=reference,
                ),
            )
        logger.info("Deposit credited: user=%s currency=%s amount=%d", user_id, currency, amount)
        return MovementResponse.from_result(wallet, tx)

    async def withdraw(
        self, db: AsyncSession, user_id: str, currency: str, amount: int
    ) -> MovementResponse:
        async with unit_of_work(db, "withdraw", user_id):
            if await self._repo.is_frozen(db, user_id):
                raise AccountFrozenError(user_id)
            wallet = await self._require_wallet(db, user_id, currency)
            wallet, tx = await self._repo.debit(
                db, wallet, amount, LedgerRef(description="Withdrawal")
            )
        logger.info("Withdrawal debited: user=%s currency=%s amount=%d", user_id, currency, amount)
        return MovementResponse.from_result(wallet, tx)

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor: str | None,
        limit: int,
        tx_type: str | None,
    ) -> TransactionListResponse:
        cursor_id = cursor_decode(cursor)
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        txs = await self._repo.list_transactions(db, user_id, cursor_id, limit + 1, tx_type)
        has_more = len(txs) > limit
        page = txs[:limit]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return TransactionListResponse(
            items=[TransactionItem.from_tx(t) for t in page],
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def _require_wallet(self, db: AsyncSession, user_id: str, currency: str) -> Wallet:
        if currency not in settings.SUPPORTED_CURRENCIES:
            raise UnsupportedCurrencyError(currency)
        wallet = await self._repo.get_wallet(db, user_id, currency)
        if wallet is None:
            raise WalletNotFoundError(user_id, currency)
        return wallet
