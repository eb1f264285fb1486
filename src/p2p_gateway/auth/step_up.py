"""Step-up authentication for high-impact actions (confirm, dispute resolution).

The order and dispute services depend on the StepUpVerifier Protocol only.
TotpStepUpVerifier checks RFC 6238 codes (HMAC-SHA1, 6 digits, 30 s step)
against users.two_factor_secret and claims each accepted code in Redis so it
cannot be replayed within its validity window. A transition that rolls back
after the claim hands the code back with release(), so the user is not left
waiting for the next step.
"""

import base64
import hashlib
import hmac
import logging
import struct
import time
from typing import Protocol

import redis.asyncio as aioredis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.p2p_common.redis_client import get_redis

logger = logging.getLogger(__name__)

TOTP_STEP_SECONDS = 30
TOTP_DIGITS = 6

_GET_2FA_SQL = text("""
    SELECT two_factor_enabled, two_factor_secret
    FROM users
    WHERE id = CAST(:user_id AS UUID)
""")


class StepUpVerifier(Protocol):
    async def is_enabled(self, db: AsyncSession, user_id: str) -> bool: ...

    async def verify(self, db: AsyncSession, user_id: str, token: str) -> bool: ...

    async def release(self, user_id: str, token: str) -> None: ...


def totp_at(secret_b32: str, counter: int) -> str:
    """RFC 6238 / RFC 4226 code for one time-step counter."""
    padded = secret_b32.strip().replace(" ", "").upper()
    padded += "=" * (-len(padded) % 8)
    key = base64.b32decode(padded)
    digest = hmac.new(key, struct.pack(">Q", counter), hashlib.sha1).digest()
    offset = digest[-1] & 0x0F
    code = (struct.unpack(">I", digest[offset : offset + 4])[0] & 0x7FFFFFFF) % 10**TOTP_DIGITS
    return f"{code:0{TOTP_DIGITS}d}"


def match_totp(secret_b32: str, token: str, now: float, window: int) -> int | None:
    """Return the matching time-step counter, or None if no step in ±window matches."""
    if len(token) != TOTP_DIGITS or not token.isdigit():
        return None
    current = int(now) // TOTP_STEP_SECONDS
    for counter in range(current - window, current + window + 1):
        if hmac.compare_digest(totp_at(secret_b32, counter), token):
            return counter
    return None


class TotpStepUpVerifier:
    def __init__(self, redis: aioredis.Redis | None = None) -> None:
        self._redis = redis

    async def is_enabled(self, db: AsyncSession, user_id: str) -> bool:
        row = (await db.execute(_GET_2FA_SQL, {"user_id": user_id})).fetchone()
        return bool(row and row.two_factor_enabled and row.two_factor_secret)

    async def verify(self, db: AsyncSession, user_id: str, token: str) -> bool:
        row = (await db.execute(_GET_2FA_SQL, {"user_id": user_id})).fetchone()
        if row is None or not row.two_factor_enabled or not row.two_factor_secret:
            return False
        counter = match_totp(
            row.two_factor_secret, token, time.time(), settings.TOTP_VALID_WINDOW
        )
        if counter is None:
            logger.warning("Step-up code rejected: user=%s", user_id)
            return False
        redis = self._redis or await get_redis()
        ttl = TOTP_STEP_SECONDS * (2 * settings.TOTP_VALID_WINDOW + 1)
        first_use = await redis.set(_claim_key(user_id, token), str(counter), nx=True, ex=ttl)
        if not first_use:
            logger.warning("Step-up code replayed: user=%s step=%d", user_id, counter)
            return False
        return True

    async def release(self, user_id: str, token: str) -> None:
        redis = self._redis or await get_redis()
        await redis.delete(_claim_key(user_id, token))
        logger.info("Step-up code released after rollback: user=%s", user_id)


def _claim_key(user_id: str, token: str) -> str:
    return f"stepup:{user_id}:{token}"
