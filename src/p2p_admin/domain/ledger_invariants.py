"""Ledger-wide invariant checks. Each returns a list of violation strings."""
import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_NEGATIVE_BALANCES_SQL = text("""
    SELECT user_id, currency, available_balance, escrow_balance
    FROM wallets
    WHERE available_balance < 0 OR escrow_balance < 0
""")

# All wallets, PLATFORM_FEE included: fees are credited, never destroyed
_WALLET_TOTALS_SQL = text("""
    SELECT currency, COALESCE(SUM(available_balance + escrow_balance), 0) AS total
    FROM wallets
    GROUP BY currency
""")

_NET_DEPOSITS_SQL = text("""
    SELECT currency,
           COALESCE(SUM(CASE WHEN tx_type = 'deposit' THEN amount
                             WHEN tx_type = 'withdraw' THEN -amount
                             ELSE 0 END), 0) AS net
    FROM wallet_transactions
    GROUP BY currency
""")

_UNDERFUNDED_ESCROW_SQL = text("""
    WITH committed AS (
        SELECT vendor_id AS user_id, currency, escrow_held_amount AS amount
        FROM offers
        WHERE is_active = TRUE AND escrow_held_amount > 0
        UNION ALL
        SELECT buyer_id AS user_id, currency, escrow_amount AS amount
        FROM orders
        WHERE status IN ('escrowed', 'paid', 'confirmed', 'disputed')
          AND escrow_held_at IS NOT NULL
    )
    SELECT c.user_id, c.currency, SUM(c.amount) AS committed,
           COALESCE(MAX(w.escrow_balance), 0) AS escrow
    FROM committed c
    LEFT JOIN wallets w ON w.user_id = c.user_id AND w.currency = c.currency
    GROUP BY c.user_id, c.currency
    HAVING COALESCE(MAX(w.escrow_balance), 0) < SUM(c.amount)
""")


async def verify_ledger_invariants(db: AsyncSession) -> list[str]:
    violations: list[str] = []

    for row in (await db.execute(_NEGATIVE_BALANCES_SQL)).fetchall():
        violations.append(
            f"negative balance: user={row.user_id} currency={row.currency} "
            f"available={row.available_balance} escrow={row.escrow_balance}"
        )

    totals = {row.currency: row.total for row in (await db.execute(_WALLET_TOTALS_SQL)).fetchall()}
    nets = {row.currency: row.net for row in (await db.execute(_NET_DEPOSITS_SQL)).fetchall()}
    for currency in sorted(set(totals) | set(nets)):
        total, net = totals.get(currency, 0), nets.get(currency, 0)
        if total != net:
            violations.append(
                f"conservation broken for {currency}: wallets hold {total} != net deposits {net}"
            )

    for row in (await db.execute(_UNDERFUNDED_ESCROW_SQL)).fetchall():
        violations.append(
            f"escrow underfunded: user={row.user_id} currency={row.currency} "
            f"escrow={row.escrow} < committed={row.committed}"
        )

    for msg in violations:
        logger.error("Ledger invariant violated: %s", msg)
    return violations
