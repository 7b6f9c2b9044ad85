"""Two-level (memory + durable) cache for upstream data."""

import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel
from pydantic_core import to_jsonable_python

from ims_forecast.cache.stores import DurableStore
from ims_forecast.config import FORECAST_CACHE_SECONDS, STATIONS_CACHE_SECONDS

logger = logging.getLogger(__name__)


class CacheType(str, Enum):
    """Domain types stored in the cache."""
    STATIONS = "stations"
    FORECAST = "forecast"


DEFAULT_DURATIONS: Dict[CacheType, float] = {
    CacheType.STATIONS: STATIONS_CACHE_SECONDS,
    CacheType.FORECAST: FORECAST_CACHE_SECONDS,
}

# Params that take part in the key of each type, in key order
KEY_PARAMS: Dict[CacheType, Tuple[str, ...]] = {
    CacheType.STATIONS: (),
    CacheType.FORECAST: ("station_id", "from", "to"),
}

Producer = Callable[[], Awaitable[Any]]

_MISSING = object()


class MemoryStats(BaseModel):
    entries: int


class DurableStats(BaseModel):
    entries: int
    size_bytes: int
    size_mb: str


class CacheStats(BaseModel):
    """Entry counts of both cache tiers."""
    memory: MemoryStats
    durable: DurableStats


def make_key(cache_type: CacheType, params: Optional[Mapping[str, Any]] = None) -> str:
    """Build the cache key for a domain type from its relevant params.

    Params that are not relevant to ``cache_type`` are ignored.

    Raises:
        ValueError: If a relevant param is missing
    """
    params = params or {}
    names = KEY_PARAMS[cache_type]
    if not names:
        return f"{cache_type.value}_list"

    missing = [name for name in names if params.get(name) is None]
    if missing:
        raise ValueError(f"Missing cache key params for {cache_type.value}: {', '.join(missing)}")

    return "_".join([cache_type.value] + [str(params[name]) for name in names])


class TwoLevelCache:
    """Cache with an in-process table in front of a durable store.

    Values are kept in JSON-compatible form in both tiers so a memory hit
    and a durable hit return the same shape. Callers validate the result
    back into their models.

    The memory table is plain shared state. It relies on the single event
    loop for atomicity and must not be shared across threads.
    """

    def __init__(
        self,
        store: Optional[DurableStore] = None,
        durations: Optional[Mapping[CacheType, float]] = None,
        clock: Callable[[], float] = time.time
    ):
        """Initialize the cache.

        Args:
            store: Durable tier; memory-only when None
            durations: Default expiry in seconds per type
            clock: Returns the current time in seconds since the epoch
        """
        self.store = store
        self.durations: Dict[CacheType, float] = {**DEFAULT_DURATIONS, **(durations or {})}
        self.clock = clock
        self._memory: Dict[str, Dict[str, Any]] = {}

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    def _is_expired(self, timestamp: int, duration: float) -> bool:
        return self._now_ms() - timestamp > duration * 1000

    def _get_from_memory(self, key: str, duration: float) -> Any:
        entry = self._memory.get(key)
        if entry is None:
            return _MISSING

        if self._is_expired(entry["timestamp"], duration):
            del self._memory[key]
            return _MISSING

        logger.info(f"Memory cache HIT: {key}")
        return entry["value"]

    def _set_in_memory(self, key: str, value: Any, timestamp: int) -> None:
        self._memory[key] = {"value": value, "timestamp": timestamp}
        logger.debug(f"Memory cache SET: {key}")

    async def _get_from_store(self, key: str, duration: float) -> Any:
        if self.store is None:
            return _MISSING

        try:
            record = await self.store.read(key)
            if record is None:
                return _MISSING

            timestamp = record["timestamp"]
            if self._is_expired(timestamp, duration):
                await self.store.delete(key)
                return _MISSING

            value = record["value"]

        except Exception as e:
            # Durable tier problems degrade to a miss
            logger.warning(f"Durable cache read failed for {key}: {e}")
            return _MISSING

        logger.info(f"Durable cache HIT: {key}")
        self._set_in_memory(key, value, timestamp)
        return value

    async def _set_in_store(self, key: str, value: Any, timestamp: int) -> None:
        if self.store is None:
            return

        try:
            await self.store.write(key, {"value": value, "timestamp": timestamp})
            logger.debug(f"Durable cache SET: {key}")
        except Exception as e:
            logger.warning(f"Durable cache write failed for {key}: {e}")

    async def get(
        self,
        cache_type: CacheType,
        params: Optional[Mapping[str, Any]] = None,
        producer: Optional[Producer] = None,
        duration: Optional[float] = None
    ) -> Any:
        """Get a value, checking memory first and then the durable tier.

        On a total miss with a producer, the producer is awaited and its
        result is stored in both tiers. Producer errors propagate and
        nothing is cached. A producer result of None is cached like any
        other value.

        Args:
            cache_type: Domain type of the value
            params: Key params for the type
            producer: Coroutine function fetching the value on a miss
            duration: Expiry override in seconds

        Returns:
            The cached or produced value in JSON-compatible form, or None
            if absent and no producer was given
        """
        key = make_key(cache_type, params)
        duration = duration if duration is not None else self.durations[cache_type]

        value = self._get_from_memory(key, duration)
        if value is not _MISSING:
            return value

        value = await self._get_from_store(key, duration)
        if value is not _MISSING:
            return value

        logger.info(f"Cache MISS: {key}")

        if producer is None:
            return None

        try:
            logger.info(f"Fetching data for: {key}")
            produced = await producer()
        except Exception as e:
            logger.error(f"Error fetching data for {key}: {e}")
            raise

        value = to_jsonable_python(produced)
        timestamp = self._now_ms()
        self._set_in_memory(key, value, timestamp)
        await self._set_in_store(key, value, timestamp)
        return value

    async def set(
        self,
        cache_type: CacheType,
        value: Any,
        params: Optional[Mapping[str, Any]] = None
    ) -> None:
        """Store a value in both tiers."""
        key = make_key(cache_type, params)
        value = to_jsonable_python(value)
        timestamp = self._now_ms()
        self._set_in_memory(key, value, timestamp)
        await self._set_in_store(key, value, timestamp)

    async def clear(self) -> None:
        """Empty both tiers."""
        self._memory.clear()
        logger.info("Memory cache cleared")

        if self.store is None:
            return
        try:
            await self.store.clear()
            logger.info("Durable cache cleared")
        except Exception as e:
            logger.error(f"Error clearing durable cache: {e}")

    async def stats(self) -> CacheStats:
        """Report entry counts and durable tier size."""
        durable = {"entries": 0, "size_bytes": 0}
        if self.store is not None:
            try:
                durable = await self.store.stats()
            except Exception as e:
                logger.warning(f"Could not read durable cache stats: {e}")

        return CacheStats(
            memory=MemoryStats(entries=len(self._memory)),
            durable=DurableStats(
                entries=durable["entries"],
                size_bytes=durable["size_bytes"],
                size_mb=f"{durable['size_bytes'] / (1024 * 1024):.2f}"
            )
        )
