"""Redis cache service for exchange-rate tables."""

import json
import logging
from typing import Any

import redis.asyncio as redis

from app.config import settings

logger = logging.getLogger(__name__)

# TTLs in seconds
TTL_EXCHANGE_RATES = settings.exchange_rate_cache_ttl


class CacheService:
    """Redis-backed cache with typed TTLs. Every failure degrades to a cache miss."""

    def __init__(self):
        self._redis: redis.Redis | None = None

    async def _get_redis(self) -> redis.Redis | None:
        if self._redis is None:
            try:
                self._redis = redis.from_url(
                    settings.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
                await self._redis.ping()
            except Exception as e:
                logger.warning(f"Redis unavailable, cache disabled: {e}")
                self._redis = None
                return None
        return self._redis

    async def get(self, key: str) -> Any | None:
        """Get a value from cache. Returns None on miss or error."""
        try:
            r = await self._get_redis()
            if r is None:
                return None
            raw = await r.get(key)
            if raw is None:
                return None
            return json.loads(raw)
        except Exception:
            return None

    async def set(self, key: str, value: Any, ttl: int = TTL_EXCHANGE_RATES) -> bool:
        """Set a value in cache with TTL. Returns False on error."""
        try:
            r = await self._get_redis()
            if r is None:
                return False
            await r.set(key, json.dumps(value, default=str), ex=ttl)
            return True
        except Exception:
            return False

    # Typed helpers

    def rates_key(self, provider: str, base_currency: str) -> str:
        return f"fx:{provider}:{base_currency.upper()}"

    async def get_rates(self, provider: str, base_currency: str) -> dict[str, float] | None:
        return await self.get(self.rates_key(provider, base_currency))

    async def set_rates(self, provider: str, base_currency: str, rates: dict[str, float]):
        await self.set(self.rates_key(provider, base_currency), rates, TTL_EXCHANGE_RATES)

    async def close(self):
        if self._redis:
            await self._redis.aclose()
            self._redis = None


cache_service = CacheService()
