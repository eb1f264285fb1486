"""Repository Protocol — dependency inversion for testability.

Unit tests inject an in-memory fake that conforms to this Protocol.
Infrastructure layer provides the real implementation.

Every mutating primitive changes exactly one wallet row and appends exactly
one wallet_transactions row, inside the caller's database transaction.
"""

from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_wallet.domain.models import LedgerRef, Wallet, WalletTransaction


class WalletRepositoryProtocol(Protocol):
    async def get_wallet(
        self, db: AsyncSession, user_id: str, currency: str
    ) -> Wallet | None: ...

    async def list_wallets(self, db: AsyncSession, user_id: str) -> list[Wallet]: ...

    async def create_wallet(
        self, db: AsyncSession, user_id: str, currency: str
    ) -> Wallet: ...

    async def credit(
        self, db: AsyncSession, wallet: Wallet, amount: int, tx_type: str, ref: LedgerRef
    ) -> tuple[Wallet, WalletTransaction]: ...

    async def debit(
        self, db: AsyncSession, wallet: Wallet, amount: int, ref: LedgerRef
    ) -> tuple[Wallet, WalletTransaction]: ...

    async def move_to_escrow(
        self, db: AsyncSession, wallet: Wallet, amount: int, ref: LedgerRef
    ) -> tuple[Wallet, WalletTransaction]: ...

    async def move_from_escrow(
        self, db: AsyncSession, wallet: Wallet, amount: int, ref: LedgerRef
    ) -> tuple[Wallet, WalletTransaction]: ...

    async def release_from_escrow(
        self, db: AsyncSession, wallet: Wallet, amount: int, ref: LedgerRef
    ) -> tuple[Wallet, WalletTransaction]: ...

    async def is_frozen(self, db: AsyncSession, user_id: str) -> bool: ...

    async def find_deposit(
        self, db: AsyncSession, external_ref: str
    ) -> WalletTransaction | None: ...

    async def list_transactions(
        self,
        db: AsyncSession,
        user_id: str,
        cursor_id: int | None,
        limit: int,
        tx_type: str | None,
    ) -> list[WalletTransaction]: ...
