"""EscrowEngine — the only way money moves for orders and offers.

Composes Wallet Ledger primitives into hold / release / release_with_fee /
refund, plus the offer-level reservation used by buy_ad listings.

Every method runs inside the caller's transaction and never commits: the
order or dispute row update that accompanies a fund movement must land in
the same atomic unit. Each ledger primitive is a guarded single-row UPDATE,
so concurrent writers on one wallet serialise on its row lock.

Money conservation: release_with_fee drains `gross` from the payer's escrow
and credits `net` to the payee and `fee` to the PLATFORM_FEE wallet of the
same currency; net + fee == gross.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.p2p_common.enums import TransactionType
from src.p2p_common.errors import (
    AccountFrozenError,
    InvariantViolationError,
    WalletNotFoundError,
)
from src.p2p_escrow.domain.fee import PLATFORM_FEE_USER_ID, split_fee
from src.p2p_wallet.domain.models import LedgerRef, Wallet
from src.p2p_wallet.domain.repository import WalletRepositoryProtocol
from src.p2p_wallet.domain.rules import require_positive
from src.p2p_wallet.infrastructure.persistence import WalletRepository

logger = logging.getLogger(__name__)


class EscrowEngine:
    def __init__(
        self,
        wallet_repo: WalletRepositoryProtocol | None = None,
        fee_bps: int | None = None,
    ) -> None:
        self._wallets: WalletRepositoryProtocol = wallet_repo or WalletRepository()
        self._fee_bps = settings.PLATFORM_FEE_BPS if fee_bps is None else fee_bps

    @property
    def fee_bps(self) -> int:
        return self._fee_bps

    # ------------------------------------------------------------------
    # Order-level protocols
    # ------------------------------------------------------------------

    async def hold(
        self, db: AsyncSession, payer_id: str, currency: str, amount: int, order_id: str
    ) -> Wallet:
        """available -> escrow on the payer. InsufficientFunds leaves nothing written."""
        require_positive(amount)
        await self._require_not_frozen(db, payer_id)
        payer = await self._wallet(db, payer_id, currency)
        payer, _ = await self._wallets.move_to_escrow(
            db, payer, amount, LedgerRef(order_id=order_id, description="Escrow hold")
        )
        logger.info("Escrow held: order=%s payer=%s amount=%d", order_id, payer_id, amount)
        return payer

    async def release(
        self,
        db: AsyncSession,
        payer_id: str,
        payee_id: str,
        currency: str,
        amount: int,
        order_id: str,
    ) -> None:
        """Drain `amount` from the payer's escrow and credit all of it to the payee."""
        require_positive(amount)
        payer = await self._wallet(db, payer_id, currency)
        payee = await self._wallet(db, payee_id, currency)
        ref = LedgerRef(order_id=order_id, description="Escrow release")
        await self._wallets.release_from_escrow(db, payer, amount, ref)
        await self._wallets.credit(db, payee, amount, TransactionType.PAYOUT, ref)
        logger.info(
            "Escrow released: order=%s payer=%s payee=%s amount=%d",
            order_id, payer_id, payee_id, amount,
        )

    async def release_with_fee(
        self,
        db: AsyncSession,
        payer_id: str,
        payee_id: str,
        currency: str,
        gross: int,
        order_id: str,
    ) -> tuple[int, int]:
        """Release `gross` from escrow; payee gets net, PLATFORM_FEE gets fee.

        Returns (net, fee). All three wallets are resolved before the first
        write so a missing wallet aborts with nothing mutated.
        """
        require_positive(gross)
        net, fee = split_fee(gross, self._fee_bps)
        payer = await self._wallet(db, payer_id, currency)
        payee = await self._wallet(db, payee_id, currency)
        platform = await self._wallets.get_wallet(db, PLATFORM_FEE_USER_ID, currency)
        if platform is None:
            logger.critical("PLATFORM_FEE wallet missing for currency %s", currency)
            raise InvariantViolationError(f"no {PLATFORM_FEE_USER_ID} wallet for {currency}")

        ref = LedgerRef(order_id=order_id, description="Escrow release")
        await self._wallets.release_from_escrow(db, payer, gross, ref)
        if net > 0:
            await self._wallets.credit(db, payee, net, TransactionType.PAYOUT, ref)
        if fee > 0:
            await self._wallets.credit(
                db,
                platform,
                fee,
                TransactionType.FEE,
                LedgerRef(order_id=order_id, description="Platform fee"),
            )
        logger.info(
            "Escrow released with fee: order=%s payee=%s gross=%d net=%d fee=%d",
            order_id, payee_id, gross, net, fee,
        )
        return net, fee

    async def refund(
        self, db: AsyncSession, payer_id: str, currency: str, amount: int, order_id: str
    ) -> Wallet:
        """escrow -> available on the payer. Frozen payers are still refunded."""
        require_positive(amount)
        payer = await self._wallet(db, payer_id, currency)
        payer, _ = await self._wallets.move_from_escrow(
            db, payer, amount, LedgerRef(order_id=order_id, description="Escrow refund")
        )
        logger.info("Escrow refunded: order=%s payer=%s amount=%d", order_id, payer_id, amount)
        return payer

    # ------------------------------------------------------------------
    # Offer-level reservation (buy_ad listings)
    # ------------------------------------------------------------------

    async def reserve_for_offer(
        self, db: AsyncSession, lister_id: str, currency: str, amount: int, offer_id: str
    ) -> Wallet:
        require_positive(amount)
        await self._require_not_frozen(db, lister_id)
        lister = await self._wallet(db, lister_id, currency)
        lister, _ = await self._wallets.move_to_escrow(
            db, lister, amount, LedgerRef(offer_id=offer_id, description="Offer escrow reserve")
        )
        logger.info("Offer escrow reserved: offer=%s lister=%s amount=%d", offer_id, lister_id, amount)
        return lister

    async def refund_offer_residual(
        self, db: AsyncSession, lister_id: str, currency: str, amount: int, offer_id: str
    ) -> Wallet:
        require_positive(amount)
        lister = await self._wallet(db, lister_id, currency)
        lister, _ = await self._wallets.move_from_escrow(
            db, lister, amount, LedgerRef(offer_id=offer_id, description="Offer escrow residual")
        )
        logger.info("Offer escrow residual refunded: offer=%s amount=%d", offer_id, amount)
        return lister

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    async def _wallet(self, db: AsyncSession, user_id: str, currency: str) -> Wallet:
        wallet = await self._wallets.get_wallet(db, user_id, currency)
        if wallet is None:
            raise WalletNotFoundError(user_id, currency)
        return wallet

    async def _require_not_frozen(self, db: AsyncSession, user_id: str) -> None:
        if await self._wallets.is_frozen(db, user_id):
            logger.warning("Escrow hold rejected, account frozen: user=%s", user_id)
            raise AccountFrozenError(user_id)
