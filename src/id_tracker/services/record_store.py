"""
Record store interface shared by the Postgres and JSON file backends
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple

from id_tracker.models.record import InsertResult, Record


class RecordStore(ABC):
    """
    Persistence seam for identifier records.

    Implementations own their resources between ``open()`` and ``close()``
    and translate backend failures into ``StorageError``.
    """

    backend: str = "unknown"

    async def open(self) -> None:
        """Acquire resources (pools, files). Called once at startup."""

    async def close(self) -> None:
        """Release resources. Called once at shutdown."""

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the backend is reachable"""

    @abstractmethod
    async def insert(
        self,
        record_id: str,
        added_by: str,
        note: str = "",
        created_at: Optional[datetime] = None,
        conflict_policy: str = "ignore",
    ) -> InsertResult:
        """
        Insert a record.

        With ``conflict_policy="ignore"`` an existing id is left untouched and
        returned with ``created=False``. With ``"update"`` the existing row's
        ``added_by`` and ``created_at`` are overwritten.
        """

    @abstractmethod
    async def get(self, record_id: str) -> Optional[Record]:
        """Fetch one record by id"""

    @abstractmethod
    async def list_page(
        self,
        offset: int,
        limit: int,
        text_filter: Optional[str] = None,
    ) -> Tuple[List[Record], int]:
        """Return one page ordered by created_at desc, plus the filtered total"""

    @abstractmethod
    async def list_ids(self) -> List[str]:
        """Return every stored id"""

    @abstractmethod
    async def update_note(self, record_id: str, note: str) -> bool:
        """Overwrite a note; False when the id does not exist"""

    @abstractmethod
    async def delete_many(self, record_ids: List[str]) -> int:
        """Delete the given ids, ignoring absent ones; return rows removed"""

    @abstractmethod
    async def clear(self) -> int:
        """Delete every record; return rows removed"""

    @abstractmethod
    async def list_all(self) -> List[Record]:
        """Return the full record set ordered by created_at desc"""


def sort_key(record: Record):
    """Ordering used by every listing: newest first, then id"""
    return (-record.created_at.timestamp(), record.id)


def matches(record: Record, text_filter: str) -> bool:
    """Case-insensitive substring match against id, added_by and note"""
    needle = text_filter.lower()
    return (
        needle in record.id.lower()
        or needle in (record.added_by or "").lower()
        or needle in (record.note or "").lower()
    )
