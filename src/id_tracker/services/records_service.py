"""
Records service - business logic for identifier records
"""

import logging
from typing import List, Optional, Tuple

from id_tracker.config.settings import Settings
from id_tracker.models.record import ImportSummary, InsertResult, Record
from id_tracker.services.key_registry import KeyRegistry
from id_tracker.services.record_store import RecordStore
from id_tracker.services.transfer import export_records, parse_import
from id_tracker.utils.exceptions import (
    AuthorizationError,
    NotFoundError,
    RecordStoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)

MANUAL_ADDED_BY = "manual"
IMPORT_ADDED_BY = "import"


def _clean(value: Optional[str]) -> str:
    return value.strip() if isinstance(value, str) else ""


class RecordsService:
    """Service for identifier record operations"""

    def __init__(self, store: RecordStore, key_registry: KeyRegistry, settings: Settings):
        self.store = store
        self.key_registry = key_registry
        self.settings = settings

    def resolve_submitter(self, api_key: str) -> str:
        """
        Map an API key to the name stored in ``added_by``

        Args:
            api_key: Key supplied by the browser extension

        Returns:
            The registered display name, or the key itself when unknown keys
            are allowed

        Raises:
            AuthorizationError: unknown key while REQUIRE_KNOWN_API_KEY is on
        """
        user = self.key_registry.resolve(api_key)
        if user is not None:
            return user
        if self.settings.require_known_api_key:
            raise AuthorizationError("Unknown API key")
        return api_key

    async def submit(self, record_id: Optional[str], api_key: Optional[str]) -> InsertResult:
        """
        Add an id on behalf of the owner of an API key

        Args:
            record_id: Identifier to store
            api_key: Submitter's API key

        Returns:
            InsertResult with the stored record and whether it was new
        """
        record_id = _clean(record_id)
        api_key = _clean(api_key)
        if not record_id or not api_key:
            raise ValidationError("ID or API key missing")

        added_by = self.resolve_submitter(api_key)
        result = await self.store.insert(
            record_id, added_by, conflict_policy=self.settings.conflict_policy
        )
        if result.created:
            logger.info(f"Added id {record_id} by {added_by}")
        return result

    async def submit_many(self, record_ids: Optional[List[str]], api_key: Optional[str]) -> Tuple[int, int]:
        """
        Add several ids with one API key

        Returns:
            (newly created count, number of ids processed)
        """
        api_key = _clean(api_key)
        cleaned = [_clean(record_id) for record_id in (record_ids or [])]
        cleaned = [record_id for record_id in cleaned if record_id]
        if not cleaned or not api_key:
            raise ValidationError("IDs or API key missing")

        added_by = self.resolve_submitter(api_key)
        created = 0
        for record_id in cleaned:
            result = await self.store.insert(
                record_id, added_by, conflict_policy=self.settings.conflict_policy
            )
            created += int(result.created)

        logger.info(f"Added {created} of {len(cleaned)} ids by {added_by}")
        return created, len(cleaned)

    async def add_manual(self, record_id: Optional[str], note: Optional[str] = None) -> InsertResult:
        """Add an id from the admin page (caller has checked the master key)"""
        record_id = _clean(record_id)
        if not record_id:
            raise ValidationError("ID missing")

        result = await self.store.insert(
            record_id, MANUAL_ADDED_BY, note=note or "", conflict_policy=self.settings.conflict_policy
        )
        if result.created:
            logger.info(f"Manually added id {record_id}")
        return result

    async def list_records(
        self,
        page: int = 1,
        page_size: Optional[int] = None,
        text_filter: Optional[str] = None,
    ) -> Tuple[List[Record], int]:
        """
        Return one page of records, newest first

        Args:
            page: 1-based page number
            page_size: Rows per page (defaults to DEFAULT_PAGE_SIZE)
            text_filter: Case-insensitive substring matched against id, added_by and note

        Returns:
            (records on the page, total matching records)
        """
        if page_size is None:
            page_size = self.settings.default_page_size
        if page < 1:
            raise ValidationError("page must be at least 1")
        if not 1 <= page_size <= self.settings.max_page_size:
            raise ValidationError(f"limit must be between 1 and {self.settings.max_page_size}")

        text_filter = _clean(text_filter) or None
        offset = (page - 1) * page_size
        return await self.store.list_page(offset, page_size, text_filter)

    async def search(self, query: Optional[str]) -> List[Record]:
        """Unpaged substring search, capped at SEARCH_LIMIT rows"""
        items, _ = await self.store.list_page(0, self.settings.search_limit, _clean(query) or None)
        return items

    async def highlight_ids(self) -> List[str]:
        """Every stored id, for the extension's highlighting"""
        return await self.store.list_ids()

    async def update_note(self, record_id: Optional[str], note: Optional[str]) -> Record:
        """Overwrite the note of an existing record and return the stored record"""
        record_id = _clean(record_id)
        if not record_id:
            raise ValidationError("ID missing")
        if note is None:
            raise ValidationError("Note missing")

        updated = await self.store.update_note(record_id, note)
        record = await self.store.get(record_id) if updated else None
        if record is None:
            raise NotFoundError(f"ID not found: {record_id}")
        logger.info(f"Updated note for id {record_id}")
        return record

    async def delete_many(self, record_ids: Optional[List[str]]) -> int:
        """Delete the given ids; ids that do not exist are ignored"""
        if record_ids is None:
            raise ValidationError("ids missing")
        cleaned = [record_id for record_id in (_clean(r) for r in record_ids) if record_id]
        deleted = await self.store.delete_many(cleaned)
        logger.info(f"Deleted {deleted} of {len(cleaned)} requested ids")
        return deleted

    async def clear_all(self) -> int:
        deleted = await self.store.clear()
        logger.warning(f"Cleared all records ({deleted} removed)")
        return deleted

    async def export(self, export_format: str = "json") -> Tuple[bytes, str]:
        """Full record set encoded for download; returns (body, media type)"""
        records = await self.store.list_all()
        logger.info(f"Exporting {len(records)} records as {export_format}")
        return export_records(records, export_format)

    async def import_file(
        self,
        content: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> ImportSummary:
        """
        Insert every row of an uploaded file, one by one

        Rows are inserted with the configured conflict policy. A failing row is
        logged and counted, and the rows before it stay in place.

        Returns:
            ImportSummary with imported, skipped (no id) and failed counts
        """
        if len(content) > self.settings.max_import_bytes:
            raise ValidationError(f"Import file exceeds {self.settings.max_import_bytes} bytes")

        rows, skipped = parse_import(content, filename, content_type)
        summary = ImportSummary(skipped=skipped)

        for row in rows:
            try:
                await self.store.insert(
                    row.id,
                    row.added_by or IMPORT_ADDED_BY,
                    note=row.note or "",
                    created_at=row.created_at,
                    conflict_policy=self.settings.conflict_policy,
                )
                summary.imported += 1
            except RecordStoreError as e:
                summary.failed += 1
                logger.error(f"Import of id {row.id} failed: {e}")

        logger.info(
            f"Import finished: {summary.imported} imported, {summary.skipped} skipped, {summary.failed} failed"
        )
        return summary

    async def health(self) -> bool:
        return await self.store.ping()
