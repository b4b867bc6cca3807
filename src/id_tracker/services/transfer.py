"""
Export encoding and import parsing for record files
"""

import csv
import io
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

from id_tracker.models.record import ImportRow, Record
from id_tracker.utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

EXPORT_FIELDS = ["id", "added_by", "note", "created_at"]

EXPORT_FORMATS = {
    "json": "application/json",
    "csv": "text/csv; charset=utf-8",
}


def get_file_type(filename: Optional[str]) -> str:
    """Get file type from filename extension"""
    if not filename:
        return ""
    return Path(filename).suffix.lower().lstrip('.')


def export_records(records: Iterable[Record], export_format: str = "json") -> Tuple[bytes, str]:
    """Serialise records for download; returns (body, media type)"""
    if export_format not in EXPORT_FORMATS:
        raise ValidationError(f"Unsupported export format: {export_format}")

    rows = [record.model_dump(mode="json") for record in records]

    if export_format == "csv":
        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=EXPORT_FIELDS)
        writer.writeheader()
        writer.writerows(rows)
        return buffer.getvalue().encode("utf-8"), EXPORT_FORMATS["csv"]

    return json.dumps(rows, indent=2, ensure_ascii=False).encode("utf-8"), EXPORT_FORMATS["json"]


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO timestamp; naive values are taken as UTC, garbage as missing"""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_row(raw: Any) -> Optional[ImportRow]:
    """Build an ImportRow from a parsed item; None when it carries no id"""
    if isinstance(raw, (str, int)):
        raw = {"id": raw}
    if not isinstance(raw, dict):
        return None

    record_id = _text(raw.get("id"))
    if record_id is None:
        return None

    note = raw.get("note")
    return ImportRow(
        id=record_id,
        added_by=_text(raw.get("added_by")),
        note=None if note is None else str(note),
        created_at=parse_timestamp(raw.get("created_at")),
    )


def _parse_json(text: str) -> List[Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Import file is not valid JSON: {e}")

    if isinstance(data, dict):
        for container in ("entries", "items", "ids"):
            if isinstance(data.get(container), list):
                return data[container]
        raise ValidationError("Import JSON must be a list or contain an 'entries', 'items' or 'ids' list")
    if not isinstance(data, list):
        raise ValidationError("Import JSON must be a list of records")
    return data


def _parse_csv(text: str) -> List[Any]:
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames or "id" not in [name.strip() for name in reader.fieldnames]:
        raise ValidationError("Import CSV must have a header row with an 'id' column")
    return [{(key or "").strip(): value for key, value in row.items()} for row in reader]


def parse_import(content: bytes, filename: Optional[str] = None, content_type: Optional[str] = None) -> Tuple[List[ImportRow], int]:
    """
    Parse an uploaded JSON or CSV file.

    The format is chosen by file extension, then content type, then by
    looking at the first non-blank character. Returns the usable rows and
    the number of items skipped for lacking an id.
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise ValidationError("Import file must be UTF-8 encoded")

    if not text.strip():
        raise ValidationError("Import file is empty")

    file_type = get_file_type(filename)
    if file_type not in ("json", "csv"):
        if content_type and "csv" in content_type:
            file_type = "csv"
        elif content_type and "json" in content_type:
            file_type = "json"
        else:
            file_type = "json" if text.lstrip()[0] in "[{" else "csv"

    items = _parse_csv(text) if file_type == "csv" else _parse_json(text)

    rows = []
    skipped = 0
    for item in items:
        row = _to_row(item)
        if row is None:
            skipped += 1
            continue
        rows.append(row)

    logger.info(f"Parsed import file {filename or '<upload>'} as {file_type}: {len(rows)} rows, {skipped} skipped")
    return rows, skipped
