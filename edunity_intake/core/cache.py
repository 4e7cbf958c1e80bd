import logging
from typing import Optional

from redis.asyncio import Redis

logger = logging.getLogger(__name__)

_CONTACT_KEY_PREFIX = "lead_contact"


class CacheService:
    """Thin wrapper around an async Redis client.

    If *redis_client* is ``None`` (Redis unavailable), every operation
    degrades to a no-op, so callers never need to check for ``None``.

    Nothing stored here is authoritative; the Uniqueness Index table is.
    """

    def __init__(self, redis_client: Optional[Redis] = None) -> None:
        self._redis: Optional[Redis] = redis_client

    # ------------------------------------------------------------------
    # Core get / set / delete
    # ------------------------------------------------------------------

    async def get(self, key: str) -> Optional[str]:
        """Return the raw string value for *key*, or ``None``."""
        if self._redis is None:
            return None
        try:
            return await self._redis.get(key)
        except Exception:
            logger.warning("Redis GET failed for key %s", key)
            return None

    async def set(self, key: str, value: str, ttl: int | None = None) -> None:
        """Store a raw string value, optionally with a TTL (seconds)."""
        if self._redis is None:
            return
        try:
            if ttl:
                await self._redis.setex(key, ttl, value)
            else:
                await self._redis.set(key, value)
        except Exception:
            logger.warning("Redis SET failed for key %s", key)

    async def delete(self, key: str) -> None:
        """Remove *key* from the cache (best-effort)."""
        if self._redis is None:
            return
        try:
            await self._redis.delete(key)
        except Exception:
            logger.warning("Redis DELETE failed for key %s", key)

    # ------------------------------------------------------------------
    # Contact claims: pre-flight duplicate hints
    # ------------------------------------------------------------------

    @staticmethod
    def contact_claim_key(lead_type: str, key: str) -> str:
        return f"{_CONTACT_KEY_PREFIX}:{lead_type}:{key}"

    async def get_contact_claim(self, lead_type: str, key: str) -> Optional[str]:
        """Return the lead ID cached as owning *key*, or ``None``."""
        return await self.get(self.contact_claim_key(lead_type, key))

    async def set_contact_claim(
        self, lead_type: str, key: str, lead_id: str, ttl: int | None = None
    ) -> None:
        await self.set(self.contact_claim_key(lead_type, key), lead_id, ttl=ttl)

    async def delete_contact_claim(self, lead_type: str, key: str) -> None:
        await self.delete(self.contact_claim_key(lead_type, key))


async def connect_redis(url: str) -> Optional[Redis]:
    """Open a Redis client and ping it; ``None`` when Redis is unreachable."""
    client = Redis.from_url(url, decode_responses=True)
    try:
        await client.ping()
    except Exception:
        logger.warning("Redis unavailable, contact cache disabled")
        await client.aclose()
        return None
    return client
