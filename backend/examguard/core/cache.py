import json
import logging
from typing import Any, Optional

import redis
import redis.asyncio as aioredis

from .config import settings

logger = logging.getLogger(__name__)


class CacheManager:
    """Redis-backed JSON store for operational summaries (last sweep run, health).

    Nothing here is authoritative: on any Redis failure reads return None and
    writes return False.
    """

    def __init__(self, redis_url: Optional[str] = None, default_ttl: Optional[int] = None):
        self.redis_url = redis_url or settings.redis_url
        self.default_ttl = default_ttl or settings.cache_default_ttl

        self._sync_client: Optional[redis.Redis] = None
        self._async_client: Optional[aioredis.Redis] = None

    def _client_options(self) -> dict:
        return {
            "decode_responses": True,
            "socket_connect_timeout": 5,
            "socket_timeout": 5,
            "retry_on_timeout": True,
        }

    @property
    def sync_client(self) -> redis.Redis:
        if self._sync_client is None:
            self._sync_client = redis.from_url(self.redis_url, **self._client_options())
        return self._sync_client

    async def get_async_client(self) -> aioredis.Redis:
        if self._async_client is None:
            client = aioredis.from_url(self.redis_url, health_check_interval=30, **self._client_options())
            await client.ping()
            self._async_client = client
        return self._async_client

    def _forget_async_client(self, error: Exception) -> None:
        # reconnect on next use after a dropped connection
        message = str(error).lower()
        if "connection" in message or "timeout" in message:
            self._async_client = None

    @staticmethod
    def _decode(raw: Optional[str]) -> Any:
        if not raw:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            logger.warning(f"Cached value is not JSON: {e}")
            return raw

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            payload = json.dumps(value, default=str)
            return bool(self.sync_client.setex(key, ttl or self.default_ttl, payload))
        except Exception as e:
            logger.warning(f"Cache set error for key '{key}': {e}")
            return False

    async def aget(self, key: str) -> Optional[Any]:
        try:
            client = await self.get_async_client()
            return self._decode(await client.get(key))
        except Exception as e:
            logger.warning(f"Async cache get error for key '{key}': {e}")
            self._forget_async_client(e)
            return None

    async def ahealth_check(self) -> bool:
        try:
            client = await self.get_async_client()
            return bool(await client.ping())
        except Exception as e:
            logger.warning(f"Cache health check failed: {e}")
            self._forget_async_client(e)
            return False

    async def aclose(self) -> None:
        if self._async_client is not None:
            await self._async_client.close()
            self._async_client = None
        if self._sync_client is not None:
            self._sync_client.close()
            self._sync_client = None


cache = CacheManager()
