"""OTP issuance and validation backed by Redis.

Each email address owns at most one record, stored as a Redis hash under
`otp:<email>`:

    hashed_code   bcrypt hash of the numeric code (plaintext is never stored)
    purpose       an `OTPPurpose` value
    last_sent_at  epoch seconds, gates resends during the cooldown window
    created_at    epoch seconds, absolute expiry is `created_at + OTP_EXPIRE_SECONDS`

Mutations run inside WATCH/MULTI transactions so concurrent callers for the
same address cannot both pass the cooldown check and leave two codes behind.
The key also carries a Redis TTL, but reads re-check `created_at` so an
expired code is rejected even before Redis reclaims it.
"""

import logging
import math
import secrets
import time
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import WatchError

from ems.core.config import settings
from ems.core.enums import OTPPurpose
from ems.core.exceptions import CodeMismatch, CodeNotFound, CooldownActive
from ems.core.security import get_password_hash, verify_password

logger = logging.getLogger(__name__)

_redis_client: Optional[Redis] = None


def get_redis_client() -> Redis:
    """Return a lazily initialized Redis client shared across the service."""
    global _redis_client
    if _redis_client is None:
        _redis_client = Redis.from_url(settings.REDIS_URL, decode_responses=True)
    return _redis_client


async def close_redis_client() -> None:
    """Close the shared Redis client; invoked during application shutdown."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def _otp_key(email: str) -> str:
    """Generate the Redis key that scopes an OTP to a user's email."""
    return f"otp:{normalize_email(email)}"


def generate_otp(length: int = settings.OTP_LENGTH) -> str:
    """Create a zero-padded numeric OTP with configurable length."""
    upper_bound = 10 ** length
    return f"{secrets.randbelow(upper_bound):0{length}d}"


class OTPStore:
    """Holds at most one hashed, time-bounded code per email address."""

    def __init__(
        self,
        redis_client: Redis,
        ttl_seconds: int = settings.OTP_EXPIRE_SECONDS,
        cooldown_seconds: int = settings.OTP_RESEND_COOLDOWN_SECONDS,
    ):
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds
        self.cooldown_seconds = cooldown_seconds

    def _is_expired(self, record: dict, now: float) -> bool:
        return now - float(record["created_at"]) >= self.ttl_seconds

    async def put(self, email: str, purpose: OTPPurpose, now: float | None = None) -> str:
        """Replace any record for `email` with a fresh code and return the plaintext.

        Raises `CooldownActive` if the previous code was sent less than
        `cooldown_seconds` ago; the existing record is left untouched.
        """
        now = time.time() if now is None else now
        key = _otp_key(email)
        purpose = OTPPurpose(purpose)

        async with self.redis.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(key)
                    existing = await pipe.hgetall(key)
                    if existing and not self._is_expired(existing, now):
                        elapsed = now - float(existing["last_sent_at"])
                        if elapsed < self.cooldown_seconds:
                            remaining = math.ceil(self.cooldown_seconds - elapsed)
                            logger.info("OTP resend for %s refused, cooldown has %ss left", key, remaining)
                            raise CooldownActive(remaining_seconds=remaining)

                    code = generate_otp()
                    record = {
                        "hashed_code": get_password_hash(code),
                        "purpose": purpose.value,
                        "last_sent_at": repr(now),
                        "created_at": repr(now),
                    }
                    pipe.multi()
                    pipe.delete(key)
                    pipe.hset(key, mapping=record)
                    pipe.expire(key, self.ttl_seconds)
                    await pipe.execute()
                    break
                except WatchError:
                    logger.debug("Concurrent write on %s, retrying OTP issue", key)
                    continue

        logger.info("Issued %s OTP for %s", purpose.value, key)
        return code

    async def verify(self, email: str, code: str, now: float | None = None) -> OTPPurpose:
        """Consume the record for `email` if `code` matches and return its purpose.

        A mismatch leaves the record in place so the user can retry within the
        same expiry window.
        """
        now = time.time() if now is None else now
        key = _otp_key(email)

        async with self.redis.pipeline(transaction=True) as pipe:
            await pipe.watch(key)
            record = await pipe.hgetall(key)
            if not record:
                raise CodeNotFound()
            if self._is_expired(record, now):
                pipe.multi()
                pipe.delete(key)
                try:
                    await pipe.execute()
                except WatchError:
                    logger.debug("Expired OTP on %s was replaced before reclaim", key)
                raise CodeNotFound()
            if not verify_password(code or "", record["hashed_code"]):
                raise CodeMismatch()

            pipe.multi()
            pipe.delete(key)
            try:
                await pipe.execute()
            except WatchError:
                # Replaced or cancelled between read and delete; the code we
                # matched is no longer the live one.
                raise CodeNotFound()

        purpose = OTPPurpose(record["purpose"])
        logger.info("Verified %s OTP for %s", purpose.value, key)
        return purpose

    async def cancel(self, email: str) -> None:
        """Remove any record for `email`; a no-op if none exists."""
        await self.redis.delete(_otp_key(email))
        logger.info("Cancelled OTP for %s", _otp_key(email))

    async def claim_proof(self, token_id: str, ttl_seconds: int) -> bool:
        """Record a verification proof as spent; False if it was already redeemed."""
        claimed = await self.redis.set(f"otp-proof:{token_id}", "1", nx=True, ex=max(1, ttl_seconds))
        return bool(claimed)
