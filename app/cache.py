import json
import logging

import redis.asyncio as redis

from app.config import settings

logger = logging.getLogger(__name__)

ARTICLE_DETAILS_PREFIX = "articles:details:"
STALE_DETAILS_FLAG = "article_details_stale"


class CacheManager:
    """
    Cache-aside manager backed by Redis.

    Only anonymous article projections are cached; viewer-scoped ones
    depend on who is asking and always come from the database.

    Every public method tolerates an unavailable Redis: reads report a
    miss and writes are skipped, so callers never see a cache error.
    """

    def __init__(self) -> None:
        self._redis: redis.Redis | None = None
        self._hits: int = 0
        self._misses: int = 0

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the connection pool.  Called once at application startup."""
        self._redis = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await self._redis.ping()
            logger.info("Redis connected: %s", settings.REDIS_URL)
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis ping failed — article cache disabled: %s", exc)
            await self._redis.aclose()
            self._redis = None

    async def disconnect(self) -> None:
        """Close the connection pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    # ------------------------------------------------------------------
    # Core cache operations
    # ------------------------------------------------------------------

    async def get(self, key: str) -> dict | None:
        """Return the cached value for *key*, or None on a miss / error."""
        if not self._redis:
            self._misses += 1
            return None
        try:
            data = await self._redis.get(key)
            if data is not None:
                self._hits += 1
                return json.loads(data)
            self._misses += 1
            return None
        except Exception as exc:
            logger.debug("Cache GET error for key=%r: %s", key, exc)
            self._misses += 1
            return None

    async def set(self, key: str, value: dict, ttl: int | None = None) -> None:
        """Persist *value* under *key* with an optional TTL (seconds)."""
        if not self._redis:
            return
        try:
            await self._redis.set(key, json.dumps(value, default=str), ex=ttl)
        except Exception as exc:
            logger.debug("Cache SET error for key=%r: %s", key, exc)

    async def delete_pattern(self, pattern: str) -> None:
        """Delete all keys matching *pattern* using SCAN."""
        if not self._redis:
            return
        try:
            keys: list[str] = []
            async for key in self._redis.scan_iter(match=pattern):
                keys.append(key)
            if keys:
                await self._redis.delete(*keys)
                logger.debug("Cache invalidated %d key(s) matching %r", len(keys), pattern)
        except Exception as exc:
            logger.debug("Cache DELETE_PATTERN error for pattern=%r: %s", pattern, exc)

    # ------------------------------------------------------------------
    # Article projections
    # ------------------------------------------------------------------

    @staticmethod
    def article_details_key(slug: str) -> str:
        return f"{ARTICLE_DETAILS_PREFIX}{slug}"

    async def invalidate_article_details(self) -> None:
        """
        Drop every cached anonymous projection.

        A title edit changes the slug and a favorite changes the count, so
        writes purge the whole prefix rather than guessing affected keys.
        """
        await self.delete_pattern(f"{ARTICLE_DETAILS_PREFIX}*")

    async def invalidate_article_details_for(self, session) -> None:
        """
        Purge after a flushed write and flag *session* so ``get_db`` purges
        again once the transaction ends.

        A concurrent anonymous read between the flush and the commit still
        sees the old row and may re-cache it; the second purge drops it.
        """
        session.info[STALE_DETAILS_FLAG] = True
        await self.invalidate_article_details()

    async def purge_if_stale(self, session) -> None:
        """Second purge for sessions flagged by ``invalidate_article_details_for``."""
        if session.info.pop(STALE_DETAILS_FLAG, False):
            await self.invalidate_article_details()

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    @property
    def stats(self) -> dict:
        """Return a snapshot of hit/miss counters for metrics endpoints."""
        total = self._hits + self._misses
        return {
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total * 100, 1) if total > 0 else 0.0,
        }


# Module-level singleton shared across all request handlers.
cache = CacheManager()
