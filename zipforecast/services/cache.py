import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol, Tuple

import redis
from redis import asyncio as aioredis

from zipforecast.errors import CacheUnavailable

logger = logging.getLogger(__name__)


@dataclass
class CacheResult:
    value: Optional[dict]
    hit: bool
    age_seconds: Optional[int]


MISS = CacheResult(value=None, hit=False, age_seconds=None)


class ForecastCache(Protocol):
    async def get_json(self, key: str) -> CacheResult:
        ...

    async def set_json(self, key: str, payload: dict, ttl_seconds: int) -> None:
        ...

    async def aclose(self) -> None:
        ...


class RedisCache:
    """
    Stores JSON payload + metadata:
      key -> {"stored_at": <unix>, "payload": {...}}

    Redis expires the key itself (SETEX); stored_at is only used to report age.
    """

    def __init__(self, redis_url: Optional[str] = None, client: Optional[aioredis.Redis] = None):
        if client is None:
            if redis_url is None:
                raise ValueError("RedisCache needs a redis_url or a client")
            client = aioredis.from_url(redis_url, decode_responses=True)
        self.client = client

    async def get_json(self, key: str) -> CacheResult:
        try:
            raw = await self.client.get(key)
        except redis.RedisError as exc:
            logger.error("Redis read failed for %s: %s", key, exc)
            raise CacheUnavailable(f"cache read failed: {exc}") from exc
        if not raw:
            return MISS

        try:
            obj = json.loads(raw)
            stored_at = int(obj.get("stored_at", 0))
            payload = obj["payload"]
        except (ValueError, TypeError, KeyError, AttributeError):
            logger.warning("Discarding undecodable cache entry %s", key)
            return MISS
        age = max(0, int(time.time()) - stored_at)
        return CacheResult(value=payload, hit=True, age_seconds=age)

    async def set_json(self, key: str, payload: dict, ttl_seconds: int) -> None:
        obj = {"stored_at": int(time.time()), "payload": payload}
        try:
            await self.client.setex(key, ttl_seconds, json.dumps(obj))
        except redis.RedisError as exc:
            logger.error("Redis write failed for %s: %s", key, exc)
            raise CacheUnavailable(f"cache write failed: {exc}") from exc

    async def aclose(self) -> None:
        await self.client.aclose()


class MemoryCache:
    """In-process TTL store.

    Expired entries are dropped when read, and writes sweep the whole store at
    most once every ``sweep_interval_seconds`` so keys that are never read
    again do not accumulate.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval_seconds: float = 60.0):
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, float, str]] = {}
        self._sweep_interval = sweep_interval_seconds
        self._next_sweep = clock() + sweep_interval_seconds

    async def get_json(self, key: str) -> CacheResult:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return MISS
            stored_at, expires_at, raw = entry
            if now >= expires_at:
                del self._entries[key]
                return MISS
        return CacheResult(value=json.loads(raw), hit=True, age_seconds=int(now - stored_at))

    async def set_json(self, key: str, payload: dict, ttl_seconds: int) -> None:
        # Stored as JSON; every reader gets its own copy.
        raw = json.dumps(payload)
        now = self._clock()
        with self._lock:
            self._entries[key] = (now, now + ttl_seconds, raw)
        if now >= self._next_sweep:
            self.purge_expired()

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [key for key, (_, expires_at, _) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
            self._next_sweep = now + self._sweep_interval
        if expired:
            logger.debug("Purged %d expired cache entries", len(expired))
        return len(expired)

    async def aclose(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def rounded_coords(lat: float, lon: float, decimals: int) -> Tuple[float, float]:
    # Adding 0.0 turns -0.0 into 0.0 so both sides of the equator/meridian share a key.
    return (round(lat, decimals) + 0.0, round(lon, decimals) + 0.0)
