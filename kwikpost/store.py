"""Durable key-value stores for the session token and user snapshot.

Each store guarantees atomicity per key only. Callers that write several keys
(the session manager writes ``token`` then ``user``) are responsible for
cross-key consistency.
"""

import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

import redis.asyncio as redis
from redis.exceptions import ConnectionError, TimeoutError

from kwikpost.config import Settings
from shared.exceptions import PersistentStoreError


logger = logging.getLogger(__name__)


class PersistentStore(ABC):
    """Async string-to-string store that survives process restarts."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value stored under key, or None."""

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store value under key, replacing any previous value."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete key. Removing a missing key is not an error."""

    async def close(self) -> None:
        """Release backend resources."""


def _check_value(key: str, value: str) -> None:
    if not isinstance(value, str):
        raise TypeError(f"Value for '{key}' must be a string, got {type(value).__name__}")


class MemoryStore(PersistentStore):
    """Process-lifetime store, mainly for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        _check_value(key, value)
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileStore(PersistentStore):
    """Stores all keys in one JSON object on disk.

    The file is rewritten through a temporary file and an atomic rename, and
    is readable by its owner only. Disk access runs in a worker thread; the
    lock keeps read-modify-write cycles from interleaving.
    """

    def __init__(self, file_path: Path) -> None:
        self.file_path = Path(file_path)
        self._lock = asyncio.Lock()

    def _load(self) -> Dict[str, str]:
        if not self.file_path.exists():
            return {}
        try:
            data = json.loads(self.file_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Ignoring unreadable session file {self.file_path}: {e}")
            return {}
        except OSError as e:
            raise PersistentStoreError(f"Failed to read {self.file_path}: {e}") from e

        if not isinstance(data, dict):
            logger.warning(f"Ignoring session file {self.file_path}: not a JSON object")
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def _dump(self, data: Dict[str, str]) -> None:
        try:
            self.file_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.file_path.parent, prefix=".session-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                os.chmod(tmp_path, 0o600)
                os.replace(tmp_path, self.file_path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistentStoreError(f"Failed to write {self.file_path}: {e}") from e

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            data = await asyncio.to_thread(self._load)
        return data.get(key)

    async def set(self, key: str, value: str) -> None:
        _check_value(key, value)
        async with self._lock:
            data = await asyncio.to_thread(self._load)
            data[key] = value
            await asyncio.to_thread(self._dump, data)

    async def remove(self, key: str) -> None:
        async with self._lock:
            data = await asyncio.to_thread(self._load)
            if key not in data:
                return
            del data[key]
            await asyncio.to_thread(self._dump, data)


class RedisStore(PersistentStore):
    """Redis-backed store. Keys are namespaced with a prefix.

    Attributes:
        redis_client: Async Redis client instance
        key_prefix: Prefix prepended to every key
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379/0",
        key_prefix: str = "kwikpost:session:",
        socket_timeout: float = 5.0,
    ) -> None:
        self.redis_client = redis.from_url(
            redis_url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            decode_responses=True,
        )
        self.key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.redis_client.get(self._key(key))
        except (ConnectionError, TimeoutError) as e:
            logger.error(f"Failed to read '{key}' from Redis: {e}")
            raise PersistentStoreError(f"Redis read failed: {e}", key=key) from e

    async def set(self, key: str, value: str) -> None:
        _check_value(key, value)
        try:
            await self.redis_client.set(self._key(key), value)
        except (ConnectionError, TimeoutError) as e:
            logger.error(f"Failed to write '{key}' to Redis: {e}")
            raise PersistentStoreError(f"Redis write failed: {e}", key=key) from e

    async def remove(self, key: str) -> None:
        try:
            await self.redis_client.delete(self._key(key))
        except (ConnectionError, TimeoutError) as e:
            logger.error(f"Failed to delete '{key}' from Redis: {e}")
            raise PersistentStoreError(f"Redis delete failed: {e}", key=key) from e

    async def close(self) -> None:
        """Close the Redis connection."""
        await self.redis_client.close()


def create_store(settings: Settings) -> PersistentStore:
    """Build the store selected by the settings."""
    if settings.store_backend == "redis":
        return RedisStore(settings.redis_url)
    if settings.store_backend == "memory":
        return MemoryStore()
    return FileStore(settings.store_path)
