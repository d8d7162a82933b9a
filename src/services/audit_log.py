"""Audit log for apply passes.

Append-only record of AuditEntry values, newest first. The engine never
reaches for a global log: callers pass a store into apply_changes. The
module-level default exists for the API layer only.

Supports two backends:
1. In-memory (default) - capped list, lost on restart
2. MongoDB (durable) - capped collection of entries
"""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

from src.models.formatting import AuditEntry

logger = logging.getLogger(__name__)

# Entries kept before the oldest are dropped
DEFAULT_MAX_ENTRIES = int(os.getenv("AUDIT_LOG_MAX_ENTRIES", "50"))

# Collection name for MongoDB storage
AUDIT_COLLECTION = "format_audit"


class BaseAuditLog(ABC):
    """Abstract base class for audit logs."""

    @abstractmethod
    async def append(self, entry: AuditEntry) -> None:
        """Record one apply pass."""
        pass

    @abstractmethod
    async def list_entries(self, limit: Optional[int] = None) -> list[AuditEntry]:
        """Entries newest first."""
        pass

    @abstractmethod
    async def clear(self) -> int:
        """Remove all entries. Returns the number removed."""
        pass


class InMemoryAuditLog(BaseAuditLog):
    """In-memory audit log, capped at max_entries (newest kept)."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        self._entries: list[AuditEntry] = []
        self._max_entries = max_entries
        self._lock = asyncio.Lock()

    async def append(self, entry: AuditEntry) -> None:
        async with self._lock:
            self._entries.insert(0, entry)
            if len(self._entries) > self._max_entries:
                del self._entries[self._max_entries:]

    async def list_entries(self, limit: Optional[int] = None) -> list[AuditEntry]:
        async with self._lock:
            entries = list(self._entries)
        return entries if limit is None else entries[:limit]

    async def clear(self) -> int:
        async with self._lock:
            removed = len(self._entries)
            self._entries.clear()
        return removed

    def __len__(self) -> int:
        return len(self._entries)


class MongoAuditLog(BaseAuditLog):
    """MongoDB-backed audit log.

    Entries persist across restarts; the collection is trimmed to
    max_entries after each append.
    """

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        self._max_entries = max_entries
        self._index_created = False

    async def _get_collection(self):
        """Get the MongoDB collection."""
        from src.db.mongo import get_database
        db = await get_database()
        return db[AUDIT_COLLECTION]

    async def _ensure_indexes(self) -> None:
        if self._index_created:
            return

        try:
            collection = await self._get_collection()
            await collection.create_index("timestamp")
            self._index_created = True
            logger.info("MongoDB audit log indexes created")
        except Exception as e:
            logger.warning(f"Failed to create MongoDB audit log indexes: {e}")

    def _entry_to_doc(self, entry: AuditEntry) -> dict:
        return {
            "timestamp": entry.timestamp,
            "changes_applied": entry.changes_applied,
            "categories": [c.value for c in entry.categories],
            "duration_ms": entry.duration_ms,
        }

    def _doc_to_entry(self, doc: dict) -> AuditEntry:
        return AuditEntry(
            timestamp=doc["timestamp"],
            changes_applied=doc["changes_applied"],
            categories=doc.get("categories", []),
            duration_ms=doc["duration_ms"],
        )

    async def append(self, entry: AuditEntry) -> None:
        await self._ensure_indexes()
        collection = await self._get_collection()
        await collection.insert_one(self._entry_to_doc(entry))

        # Trim everything past the newest max_entries
        cursor = collection.find({}, {"_id": 1, "timestamp": 1}).sort([("timestamp", -1), ("_id", -1)]).skip(self._max_entries)
        stale = [doc["_id"] for doc in await cursor.to_list(length=None)]
        if stale:
            await collection.delete_many({"_id": {"$in": stale}})
            logger.debug(f"Trimmed {len(stale)} audit entries")

    async def list_entries(self, limit: Optional[int] = None) -> list[AuditEntry]:
        collection = await self._get_collection()
        cursor = collection.find({}).sort([("timestamp", -1), ("_id", -1)])
        if limit is not None:
            cursor = cursor.limit(limit)
        docs = await cursor.to_list(length=limit)
        return [self._doc_to_entry(doc) for doc in docs]

    async def clear(self) -> int:
        collection = await self._get_collection()
        result = await collection.delete_many({})
        return result.deleted_count


# Module-level default for the API layer
_default_log: Optional[BaseAuditLog] = None


def get_audit_log() -> BaseAuditLog:
    """Get the default audit log.

    Uses MongoDB when AUDIT_STORE_BACKEND=mongo, in-memory otherwise.
    """
    global _default_log
    if _default_log is None:
        use_mongo = os.getenv("AUDIT_STORE_BACKEND", "memory").lower() == "mongo"
        if use_mongo:
            _default_log = MongoAuditLog()
            logger.info("Using MongoDB audit log")
        else:
            _default_log = InMemoryAuditLog()
            logger.info("Using in-memory audit log")
    return _default_log


def set_audit_log(log: Optional[BaseAuditLog]) -> None:
    """Set the default audit log (for testing)."""
    global _default_log
    _default_log = log
