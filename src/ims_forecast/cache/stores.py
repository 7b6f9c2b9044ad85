"""Durable cache tier implementations.

A store keeps one JSON record ``{"value": ..., "timestamp": epoch_ms}`` per
key. Expiry is decided by the cache, not by the store.
"""

import asyncio
import json
import logging
import re
import shutil
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

import redis.asyncio as redis

logger = logging.getLogger(__name__)


class DurableStore(Protocol):
    """Keyed record storage used as the slow cache tier."""

    async def read(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    async def write(self, key: str, record: Dict[str, Any]) -> None:
        ...

    async def delete(self, key: str) -> None:
        ...

    async def clear(self) -> None:
        ...

    async def stats(self) -> Dict[str, int]:
        """Return ``{"entries": int, "size_bytes": int}``."""
        ...


class RedisStore:
    """Durable tier backed by Redis string keys."""

    def __init__(self, redis_client: redis.Redis, prefix: str):
        """Initialize the Redis store.

        Args:
            redis_client: Async Redis client
            prefix: Namespace prepended to every key
        """
        self.redis_client = redis_client
        self.prefix = prefix

    def _redis_key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def read(self, key: str) -> Optional[Dict[str, Any]]:
        raw = await self.redis_client.get(self._redis_key(key))
        if raw is None:
            return None
        return json.loads(raw)

    async def write(self, key: str, record: Dict[str, Any]) -> None:
        await self.redis_client.set(self._redis_key(key), json.dumps(record))

    async def delete(self, key: str) -> None:
        await self.redis_client.delete(self._redis_key(key))

    async def clear(self) -> None:
        keys = [key async for key in self.redis_client.scan_iter(match=f"{self.prefix}:*")]
        if keys:
            await self.redis_client.delete(*keys)

    async def stats(self) -> Dict[str, int]:
        entries = 0
        size_bytes = 0
        async for key in self.redis_client.scan_iter(match=f"{self.prefix}:*"):
            entries += 1
            size_bytes += await self.redis_client.strlen(key)
        return {"entries": entries, "size_bytes": size_bytes}

    async def close(self) -> None:
        """Close the Redis connection."""
        await self.redis_client.aclose()


class FileStore:
    """Durable tier backed by one JSON file per key in a directory."""

    _UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{self._UNSAFE_CHARS.sub('_', key)}.json"

    async def init(self) -> None:
        """Create the cache directory if missing."""
        await asyncio.to_thread(self.directory.mkdir, parents=True, exist_ok=True)
        logger.info(f"Cache directory initialized: {self.directory}")

    async def read(self, key: str) -> Optional[Dict[str, Any]]:
        path = self._path(key)
        try:
            content = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except FileNotFoundError:
            return None
        return json.loads(content)

    async def write(self, key: str, record: Dict[str, Any]) -> None:
        await asyncio.to_thread(self.directory.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(self._path(key).write_text, json.dumps(record), encoding="utf-8")

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._path(key).unlink, missing_ok=True)

    async def clear(self) -> None:
        if self.directory.exists():
            await asyncio.to_thread(shutil.rmtree, self.directory)
        await asyncio.to_thread(self.directory.mkdir, parents=True, exist_ok=True)

    async def stats(self) -> Dict[str, int]:
        def _scan() -> Dict[str, int]:
            if not self.directory.exists():
                return {"entries": 0, "size_bytes": 0}
            files = [path for path in self.directory.iterdir() if path.suffix == ".json"]
            return {"entries": len(files), "size_bytes": sum(path.stat().st_size for path in files)}

        return await asyncio.to_thread(_scan)
