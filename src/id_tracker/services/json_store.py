"""
JSON file record store
Whole-file storage: the file is read on every operation and rewritten on every mutation.
"""

import asyncio
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from id_tracker.models.record import InsertResult, Record
from id_tracker.services.record_store import RecordStore, matches, sort_key
from id_tracker.utils.exceptions import StorageError

logger = logging.getLogger(__name__)

STORE_CONTAINER_KEYS = ("entries", "ids")


def _entries_from(data: Any) -> Optional[List[Any]]:
    """Entry list of a store file, or None when the shape is unknown"""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in STORE_CONTAINER_KEYS:
            if isinstance(data.get(key), list):
                return data[key]
    return None


class JsonFileRecordStore(RecordStore):
    """
    Record store backed by a single JSON file of the form ``{"entries": [...]}``.
    Files holding ``{"ids": [...]}`` or a bare list are read as well and
    rewritten as ``entries`` on the next mutation; any other shape is refused.

    Mutations are serialised inside the process by an asyncio lock and written
    through a temporary file that replaces the original, so a crash never
    leaves a truncated file behind. Separate processes sharing the file can
    still overwrite each other's changes.
    """

    backend = "json"

    def __init__(self, storage_path: str = "data/ids.json"):
        self.storage_path = Path(storage_path)
        self._lock = asyncio.Lock()

    async def open(self) -> None:
        try:
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            if not self.storage_path.exists():
                self._save_entries([])
                logger.info(f"Created record store at {self.storage_path}")
            else:
                # Fail at startup rather than on the first request
                entries = self._load_entries()
                logger.info(f"Loaded record store at {self.storage_path} ({len(entries)} entries)")
        except OSError as e:
            raise StorageError(f"Cannot initialise record store at {self.storage_path}: {e}")

    def _load_entries(self) -> List[Record]:
        """Load data from storage"""
        try:
            with open(self.storage_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading record store: {e}")
            raise StorageError(f"Cannot read record store: {e}")

        raw_entries = _entries_from(data)
        if raw_entries is None:
            raise StorageError("Record store file must hold a list or an object with 'entries' or 'ids'")
        try:
            return [Record(**entry) for entry in raw_entries]
        except (TypeError, ValueError) as e:
            raise StorageError(f"Record store contains malformed entries: {e}")

    def _save_entries(self, entries: List[Record]):
        """Save data to storage"""
        payload: Dict[str, Any] = {"entries": [entry.model_dump(mode="json") for entry in entries]}
        tmp_path = self.storage_path.with_name(self.storage_path.name + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.storage_path)
        except OSError as e:
            logger.error(f"Error saving record store: {e}")
            raise StorageError(f"Cannot write record store: {e}")

    async def ping(self) -> bool:
        try:
            self._load_entries()
            return True
        except StorageError:
            return False

    async def insert(
        self,
        record_id: str,
        added_by: str,
        note: str = "",
        created_at: Optional[datetime] = None,
        conflict_policy: str = "ignore",
    ) -> InsertResult:
        timestamp = created_at or datetime.now(timezone.utc)
        async with self._lock:
            entries = self._load_entries()
            for index, existing in enumerate(entries):
                if existing.id != record_id:
                    continue
                if conflict_policy == "update":
                    updated = existing.model_copy(update={"added_by": added_by, "created_at": timestamp})
                    entries[index] = updated
                    self._save_entries(entries)
                    return InsertResult(record=updated, created=False)
                return InsertResult(record=existing, created=False)

            record = Record(id=record_id, added_by=added_by, note=note, created_at=timestamp)
            entries.append(record)
            self._save_entries(entries)
            return InsertResult(record=record, created=True)

    async def get(self, record_id: str) -> Optional[Record]:
        for entry in self._load_entries():
            if entry.id == record_id:
                return entry
        return None

    async def list_page(
        self,
        offset: int,
        limit: int,
        text_filter: Optional[str] = None,
    ) -> Tuple[List[Record], int]:
        entries = self._load_entries()
        if text_filter:
            entries = [entry for entry in entries if matches(entry, text_filter)]
        entries.sort(key=sort_key)
        return entries[offset:offset + limit], len(entries)

    async def list_ids(self) -> List[str]:
        return [entry.id for entry in self._load_entries()]

    async def update_note(self, record_id: str, note: str) -> bool:
        async with self._lock:
            entries = self._load_entries()
            for index, entry in enumerate(entries):
                if entry.id == record_id:
                    entries[index] = entry.model_copy(update={"note": note})
                    self._save_entries(entries)
                    return True
            return False

    async def delete_many(self, record_ids: List[str]) -> int:
        doomed = set(record_ids)
        async with self._lock:
            entries = self._load_entries()
            remaining = [entry for entry in entries if entry.id not in doomed]
            removed = len(entries) - len(remaining)
            if removed:
                self._save_entries(remaining)
            return removed

    async def clear(self) -> int:
        async with self._lock:
            removed = len(self._load_entries())
            self._save_entries([])
            return removed

    async def list_all(self) -> List[Record]:
        entries = self._load_entries()
        entries.sort(key=sort_key)
        return entries
