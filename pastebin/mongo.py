"""
MongoDB storage backend.

Pastes are documents keyed by a server-side generated ObjectId, so the
identifiers handed out by this backend are fixed-width (12 bytes).
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from bson import Binary, ObjectId
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from pastebin.config import Settings
from pastebin.database import PasteStorage
from pastebin.errors import StorageError
from pastebin.ids import ObjectIdCodec
from pastebin.models import PasteEntry

logger = logging.getLogger(__name__)


class MongoStorage(PasteStorage):
    """A MongoDB wrapper."""

    name = "mongo"
    codec = ObjectIdCodec()

    def __init__(self, collection: Collection):
        self.collection = collection

    @classmethod
    def from_settings(cls, settings: Settings) -> "MongoStorage":
        logger.info(f"Connecting to MongoDB: {settings.MONGODB_URI[:30]}...")
        # MongoClient keeps a connection pool, requests check connections out of it.
        client = MongoClient(
            settings.MONGODB_URI,
            tz_aware=True,
            serverSelectionTimeoutMS=5000,
        )
        storage = cls(client[settings.MONGODB_DB][settings.MONGODB_COLLECTION])
        storage.ensure_indexes()
        return storage

    def ensure_indexes(self) -> None:
        """Let MongoDB drop documents once their `best_before` has passed."""
        try:
            self.collection.create_index([("best_before", ASCENDING)], expireAfterSeconds=0)
        except PyMongoError as e:
            logger.warning(f"Failed to create indexes: {e}")

    def is_healthy(self) -> bool:
        try:
            self.collection.database.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error(f"Health check failed: {e}")
        return False

    def store(self, data, file_name, mime_type, best_before):
        doc = {
            "_id": ObjectId(),
            "data": Binary(data),
            "mime_type": mime_type,
        }
        if file_name is not None:
            doc["file_name"] = file_name
        if best_before is not None:
            doc["best_before"] = best_before
        try:
            self.collection.insert_one(doc)
        except PyMongoError as e:
            logger.error(f"Error saving paste: {e}")
            raise StorageError(f"Failed to save paste: {e}") from e
        logger.info(f"Paste {doc['_id']} saved ({len(data)} bytes, {mime_type})")
        return doc["_id"].binary

    def load(self, paste_id: bytes) -> Optional[PasteEntry]:
        oid = ObjectId(paste_id)
        logger.debug(f"Looking for a doc id = {oid}")
        try:
            doc = self.collection.find_one({"_id": oid})
        except PyMongoError as e:
            logger.error(f"Error fetching paste {oid}: {e}")
            raise StorageError(f"Failed to fetch paste {oid}: {e}") from e
        if doc is None:
            return None

        entry = PasteEntry(
            data=bytes(doc["data"]),
            file_name=doc.get("file_name"),
            mime_type=doc["mime_type"],
            best_before=doc.get("best_before"),
        )
        # The TTL monitor only runs once a minute.
        if entry.is_expired():
            return None
        return entry

    def get_file_name(self, paste_id: bytes) -> Optional[str]:
        oid = ObjectId(paste_id)
        logger.debug(f"Looking for a file name for id = {oid}")
        try:
            doc = self.collection.find_one(
                {"_id": oid}, {"_id": 0, "file_name": 1, "best_before": 1}
            )
        except PyMongoError as e:
            logger.error(f"Error fetching file name of paste {oid}: {e}")
            raise StorageError(f"Failed to fetch paste {oid}: {e}") from e
        if doc is None:
            return None
        best_before = doc.get("best_before")
        if best_before is not None and best_before <= datetime.now(timezone.utc):
            return None
        return doc.get("file_name")

    def remove(self, paste_id: bytes) -> None:
        oid = ObjectId(paste_id)
        try:
            self.collection.delete_one({"_id": oid})
        except PyMongoError as e:
            logger.error(f"Error deleting paste {oid}: {e}")
            raise StorageError(f"Failed to delete paste {oid}: {e}") from e
        logger.info(f"Paste {oid} deleted")
