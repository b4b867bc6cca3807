"""
Import parsing and export encoding
"""

import csv
import io
import json
from datetime import datetime, timezone

import pytest

from id_tracker.models.record import Record
from id_tracker.services.transfer import export_records, parse_import, parse_timestamp
from id_tracker.utils.exceptions import ValidationError

RECORDS = [
    Record(id="A", added_by="alice", note="hello, world", created_at=datetime(2024, 1, 2, tzinfo=timezone.utc)),
    Record(id="B", added_by="bob", note="", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)),
]


def test_export_json_is_list_of_records():
    body, media_type = export_records(RECORDS, "json")

    assert media_type == "application/json"
    data = json.loads(body)
    assert [row["id"] for row in data] == ["A", "B"]
    assert set(data[0]) == {"id", "added_by", "note", "created_at"}


def test_export_csv_has_header_and_quotes():
    body, media_type = export_records(RECORDS, "csv")

    assert media_type.startswith("text/csv")
    rows = list(csv.DictReader(io.StringIO(body.decode("utf-8"))))
    assert rows[0]["note"] == "hello, world"
    assert rows[1]["added_by"] == "bob"


def test_export_rejects_unknown_format():
    with pytest.raises(ValidationError):
        export_records(RECORDS, "xlsx")


@pytest.mark.parametrize("payload", [
    b'[{"id": "A"}, {"id": "B"}]',
    b'{"entries": [{"id": "A"}, {"id": "B"}]}',
    b'{"items": [{"id": "A"}, {"id": "B"}]}',
    b'{"ids": ["A", "B"]}',
    b'["A", "B"]',
])
def test_parse_json_shapes(payload):
    rows, skipped = parse_import(payload, "upload.json")

    assert [row.id for row in rows] == ["A", "B"]
    assert skipped == 0


def test_parse_csv_round_trip_of_export():
    body, _ = export_records(RECORDS, "csv")

    rows, skipped = parse_import(body, "ids_export.csv")
    assert skipped == 0
    assert rows[0].note == "hello, world"
    assert rows[0].created_at == RECORDS[0].created_at


def test_format_sniffed_without_extension():
    rows, _ = parse_import(b"id,note\nX1,hi\n", None, None)
    assert rows[0].id == "X1"
    assert rows[0].added_by is None

    rows, _ = parse_import(b'[{"id": "Y1"}]', "upload.bin", "application/octet-stream")
    assert rows[0].id == "Y1"


def test_rows_without_id_are_skipped():
    rows, skipped = parse_import(b'[{"id": ""}, {"note": "x"}, 42, {"id": "ok"}]', "a.json")

    assert [row.id for row in rows] == ["42", "ok"]
    assert skipped == 2


@pytest.mark.parametrize("payload,filename", [
    (b"", "a.json"),
    (b"{broken", "a.json"),
    (b'{"something": 1}', "a.json"),
    (b"name,value\nx,y\n", "a.csv"),
    (b"\xff\xfe\x00", "a.json"),
])
def test_unparseable_files_raise(payload, filename):
    with pytest.raises(ValidationError):
        parse_import(payload, filename)


def test_parse_timestamp_variants():
    assert parse_timestamp("2024-01-01T00:00:00Z") == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp("2024-01-01T00:00:00").tzinfo is not None
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp(None) is None
