"""
Storage layer for pastes.

`PasteStorage` is the interface the request handler talks to. Backends:
Redis (default), MongoDB (see `pastebin.mongo`) and an in-memory store for
development and testing (used as a fallback when Redis is unavailable).
"""
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Optional
from redis import Redis
from redis.exceptions import ConnectionError, RedisError

from pastebin.config import Settings
from pastebin.errors import StorageError
from pastebin.ids import CounterIdCodec, IdCodec
from pastebin.models import PasteEntry

logger = logging.getLogger(__name__)

# Largest paste accepted by every shipped backend (MongoDB's document limit
# is 16 MiB, leave room for the metadata).
MAX_DATA_SIZE = 15 * 1024 * 1024


class PasteStorage(ABC):
    """Interface to a paste storage backend."""

    name: str = "abstract"
    codec: IdCodec

    @abstractmethod
    def store(
        self,
        data: bytes,
        file_name: Optional[str],
        mime_type: str,
        best_before: Optional[datetime],
    ):
        """
        Store a paste.

        Returns:
            Identifier generated by the backend for the new paste
        """

    @abstractmethod
    def load(self, paste_id) -> Optional[PasteEntry]:
        """Load a paste, or return None if there is no such (live) paste."""

    @abstractmethod
    def get_file_name(self, paste_id) -> Optional[str]:
        """Return the file name of a paste, if it has one."""

    @abstractmethod
    def remove(self, paste_id) -> None:
        """Remove a paste. Removing an unknown id is not an error."""

    def max_data_size(self) -> int:
        """Maximum paste size that could be handled."""
        return MAX_DATA_SIZE

    def is_healthy(self) -> bool:
        return True


class InMemoryStorage(PasteStorage):
    """Simple in-memory store for development/testing (when Redis unavailable)."""

    name = "memory"
    codec = CounterIdCodec()

    def __init__(self):
        self.pastes: Dict[int, PasteEntry] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def store(self, data, file_name, mime_type, best_before):
        entry = PasteEntry(
            data=data,
            file_name=file_name,
            mime_type=mime_type,
            best_before=best_before,
        )
        with self._lock:
            paste_id = next(self._ids)
            self.pastes[paste_id] = entry
        logger.info(f"Paste {paste_id} saved ({len(data)} bytes, {mime_type})")
        return paste_id

    def _live_entry(self, paste_id: int) -> Optional[PasteEntry]:
        with self._lock:
            entry = self.pastes.get(paste_id)
            # Check if expired
            if entry is not None and entry.is_expired():
                logger.info(f"Paste {paste_id} has expired")
                del self.pastes[paste_id]
                return None
            return entry

    def load(self, paste_id):
        logger.debug(f"Looking for a paste id = {paste_id}")
        return self._live_entry(paste_id)

    def get_file_name(self, paste_id):
        logger.debug(f"Looking for a file name for id = {paste_id}")
        entry = self._live_entry(paste_id)
        return entry.file_name if entry else None

    def remove(self, paste_id):
        with self._lock:
            self.pastes.pop(paste_id, None)
        logger.info(f"Paste {paste_id} deleted")


class RedisStorage(PasteStorage):
    """
    Pastes in Redis.

    Each paste is a hash under ``paste:<id>``; ids come from an atomic INCR on
    a counter key. Expiry is left to Redis (EXPIREAT).
    """

    name = "redis"
    codec = CounterIdCodec()
    COUNTER_KEY = "paste:next_id"

    def __init__(self, redis: Redis):
        self.redis = redis

    @classmethod
    def from_url(cls, url: str) -> "RedisStorage":
        # Pastes are binary, so no decode_responses here.
        return cls(Redis.from_url(url, decode_responses=False))

    @staticmethod
    def _key(paste_id: int) -> str:
        return f"paste:{paste_id}"

    def is_healthy(self) -> bool:
        """Check if database connection is alive."""
        try:
            self.redis.ping()
            return True
        except RedisError as e:
            logger.error(f"Health check failed: {e}")
        return False

    def store(self, data, file_name, mime_type, best_before):
        try:
            paste_id = self.redis.incr(self.COUNTER_KEY)
            key = self._key(paste_id)

            paste_data = {"data": data, "mime_type": mime_type}
            if file_name is not None:
                paste_data["file_name"] = file_name
            if best_before is not None:
                paste_data["best_before"] = best_before.isoformat()

            pipe = self.redis.pipeline()
            pipe.hset(key, mapping=paste_data)
            if best_before is not None:
                pipe.expireat(key, best_before)
            pipe.execute()
        except RedisError as e:
            logger.error(f"Error saving paste: {e}")
            raise StorageError(f"Failed to save paste: {e}") from e

        logger.info(f"Paste {paste_id} saved ({len(data)} bytes, {mime_type})")
        return paste_id

    def load(self, paste_id):
        logger.debug(f"Looking for a paste id = {paste_id}")
        try:
            paste_data = self.redis.hgetall(self._key(paste_id))
        except RedisError as e:
            logger.error(f"Error fetching paste {paste_id}: {e}")
            raise StorageError(f"Failed to fetch paste {paste_id}: {e}") from e

        if not paste_data:
            logger.debug(f"Paste {paste_id} not found")
            return None

        file_name = paste_data.get(b"file_name")
        best_before = paste_data.get(b"best_before")
        entry = PasteEntry(
            data=paste_data[b"data"],
            file_name=file_name.decode("utf-8") if file_name is not None else None,
            mime_type=paste_data[b"mime_type"].decode("utf-8"),
            best_before=(
                datetime.fromisoformat(best_before.decode("ascii"))
                if best_before is not None
                else None
            ),
        )
        # Redis drops expired keys itself, this only covers clock skew.
        if entry.is_expired():
            return None
        return entry

    def get_file_name(self, paste_id):
        logger.debug(f"Looking for a file name for id = {paste_id}")
        try:
            file_name = self.redis.hget(self._key(paste_id), "file_name")
        except RedisError as e:
            logger.error(f"Error fetching file name of paste {paste_id}: {e}")
            raise StorageError(f"Failed to fetch paste {paste_id}: {e}") from e
        return file_name.decode("utf-8") if file_name is not None else None

    def remove(self, paste_id):
        try:
            self.redis.delete(self._key(paste_id))
        except RedisError as e:
            logger.error(f"Error deleting paste {paste_id}: {e}")
            raise StorageError(f"Failed to delete paste {paste_id}: {e}") from e
        logger.info(f"Paste {paste_id} deleted")


def create_storage(settings: Settings) -> PasteStorage:
    """
    Build the storage backend selected in the settings.

    A Redis backend that can't be reached is replaced by the in-memory store.
    """
    backend = settings.STORAGE_BACKEND
    if backend == "memory":
        return InMemoryStorage()

    if backend == "mongo":
        from pastebin.mongo import MongoStorage

        return MongoStorage.from_settings(settings)

    if backend != "redis":
        raise ValueError(f"Unknown storage backend: {backend!r}")

    try:
        logger.info(f"Attempting to connect to Redis: {settings.REDIS_URL[:30]}...")
        storage = RedisStorage.from_url(settings.REDIS_URL)
        # Test connection
        storage.redis.ping()
        logger.info("Redis connected successfully")
        return storage
    except ConnectionError as e:
        logger.error(f"ConnectionError connecting to Redis: {type(e).__name__}: {e}")
    except RedisError as e:
        logger.error(f"Unexpected error connecting to Redis: {type(e).__name__}: {e}")
    logger.warning("Using in-memory fallback for development. Data will NOT persist across restarts.")
    return InMemoryStorage()
