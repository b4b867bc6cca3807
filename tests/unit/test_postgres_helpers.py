"""
Postgres store helpers that need no database
"""

from datetime import datetime, timezone

import pytest

from id_tracker.services.postgres_store import PostgresRecordStore, like_pattern, parse_row_count, row_to_record
from id_tracker.utils.exceptions import StorageError


@pytest.mark.parametrize("text,expected", [
    ("abc", "%abc%"),
    ("50%", "%50\\%%"),
    ("a_b", "%a\\_b%"),
    ("c:\\dir", "%c:\\\\dir%"),
])
def test_like_pattern_escapes_wildcards(text, expected):
    assert like_pattern(text) == expected


@pytest.mark.parametrize("status,expected", [
    ("DELETE 3", 3),
    ("UPDATE 0", 0),
    ("UPDATE 1", 1),
    ("", 0),
    (None, 0),
])
def test_parse_row_count(status, expected):
    assert parse_row_count(status) == expected


def test_row_to_record_normalises_nulls():
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    record = row_to_record({"id": "A", "added_by": None, "note": None, "created_at": created})

    assert record.added_by == ""
    assert record.note == ""
    assert record.created_at == created


@pytest.mark.asyncio
async def test_unopened_store_reports_storage_error():
    store = PostgresRecordStore("postgresql://localhost/unused")

    assert await store.ping() is False
    with pytest.raises(StorageError):
        await store.list_all()
