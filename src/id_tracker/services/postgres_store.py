"""
Postgres record store using an asyncpg connection pool
"""

import logging
from datetime import datetime
from typing import Any, List, Mapping, Optional, Tuple

import asyncpg

from id_tracker.database.connection import close_database, init_database
from id_tracker.models.record import InsertResult, Record
from id_tracker.services.record_store import RecordStore
from id_tracker.utils.exceptions import StorageError

logger = logging.getLogger(__name__)

FILTER_CLAUSE = "(id ILIKE $1 ESCAPE '\\' OR added_by ILIKE $1 ESCAPE '\\' OR note ILIKE $1 ESCAPE '\\')"

INSERT_IGNORE_SQL = """
    INSERT INTO ids (id, added_by, note, created_at)
    VALUES ($1, $2, $3, COALESCE($4, NOW()))
    ON CONFLICT (id) DO NOTHING
    RETURNING id, added_by, note, created_at
"""

# xmax is 0 only for freshly inserted tuples
INSERT_UPDATE_SQL = """
    INSERT INTO ids (id, added_by, note, created_at)
    VALUES ($1, $2, $3, COALESCE($4, NOW()))
    ON CONFLICT (id) DO UPDATE
        SET added_by = EXCLUDED.added_by, created_at = EXCLUDED.created_at
    RETURNING id, added_by, note, created_at, (xmax = 0) AS inserted
"""


def like_pattern(text: str) -> str:
    """Build an ILIKE substring pattern with %, _ and \\ escaped"""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def row_to_record(row: Mapping[str, Any]) -> Record:
    """Convert a database row to a Record"""
    return Record(
        id=row["id"],
        added_by=row["added_by"] or "",
        note=row["note"] or "",
        created_at=row["created_at"],
    )


def parse_row_count(status: str) -> int:
    """Extract the row count from an asyncpg status string such as 'DELETE 3'"""
    try:
        return int(status.split()[-1])
    except (AttributeError, IndexError, ValueError):
        return 0


class PostgresRecordStore(RecordStore):
    """Record store backed by the ``ids`` table"""

    backend = "postgres"

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.db_pool: Optional[asyncpg.Pool] = None

    async def open(self) -> None:
        try:
            self.db_pool = await init_database(self.database_url)
        except (asyncpg.PostgresError, OSError) as e:
            raise StorageError(f"Cannot connect to database: {e}")

    async def close(self) -> None:
        await close_database(self.db_pool)
        self.db_pool = None

    def _pool(self) -> asyncpg.Pool:
        if self.db_pool is None:
            raise StorageError("Database pool is not initialised")
        return self.db_pool

    async def ping(self) -> bool:
        try:
            async with self._pool().acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except (StorageError, asyncpg.PostgresError, OSError) as e:
            logger.error(f"Database ping failed: {e}")
            return False

    async def insert(
        self,
        record_id: str,
        added_by: str,
        note: str = "",
        created_at: Optional[datetime] = None,
        conflict_policy: str = "ignore",
    ) -> InsertResult:
        try:
            async with self._pool().acquire() as conn:
                if conflict_policy == "update":
                    row = await conn.fetchrow(INSERT_UPDATE_SQL, record_id, added_by, note, created_at)
                    return InsertResult(record=row_to_record(row), created=bool(row["inserted"]))

                row = await conn.fetchrow(INSERT_IGNORE_SQL, record_id, added_by, note, created_at)
                if row is not None:
                    return InsertResult(record=row_to_record(row), created=True)
                existing = await conn.fetchrow(
                    "SELECT id, added_by, note, created_at FROM ids WHERE id = $1", record_id
                )
                return InsertResult(record=row_to_record(existing), created=False)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Insert failed for id {record_id}: {e}")
            raise StorageError(f"Failed to add id: {e}")

    async def get(self, record_id: str) -> Optional[Record]:
        try:
            async with self._pool().acquire() as conn:
                row = await conn.fetchrow(
                    "SELECT id, added_by, note, created_at FROM ids WHERE id = $1", record_id
                )
        except (asyncpg.PostgresError, OSError) as e:
            raise StorageError(f"Failed to read id: {e}")
        return row_to_record(row) if row else None

    async def list_page(
        self,
        offset: int,
        limit: int,
        text_filter: Optional[str] = None,
    ) -> Tuple[List[Record], int]:
        try:
            async with self._pool().acquire() as conn:
                if text_filter:
                    pattern = like_pattern(text_filter)
                    total = await conn.fetchval(f"SELECT COUNT(*) FROM ids WHERE {FILTER_CLAUSE}", pattern)
                    rows = await conn.fetch(
                        f"""
                        SELECT id, added_by, note, created_at FROM ids
                        WHERE {FILTER_CLAUSE}
                        ORDER BY created_at DESC, id ASC
                        LIMIT $2 OFFSET $3
                        """,
                        pattern, limit, offset,
                    )
                else:
                    total = await conn.fetchval("SELECT COUNT(*) FROM ids")
                    rows = await conn.fetch(
                        """
                        SELECT id, added_by, note, created_at FROM ids
                        ORDER BY created_at DESC, id ASC
                        LIMIT $1 OFFSET $2
                        """,
                        limit, offset,
                    )
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"List query failed: {e}")
            raise StorageError(f"Failed to list ids: {e}")
        return [row_to_record(row) for row in rows], int(total or 0)

    async def list_ids(self) -> List[str]:
        try:
            async with self._pool().acquire() as conn:
                rows = await conn.fetch("SELECT id FROM ids ORDER BY created_at DESC")
        except (asyncpg.PostgresError, OSError) as e:
            raise StorageError(f"Failed to list ids: {e}")
        return [row["id"] for row in rows]

    async def update_note(self, record_id: str, note: str) -> bool:
        try:
            async with self._pool().acquire() as conn:
                status = await conn.execute("UPDATE ids SET note = $1 WHERE id = $2", note, record_id)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Note update failed for id {record_id}: {e}")
            raise StorageError(f"Failed to update note: {e}")
        return parse_row_count(status) > 0

    async def delete_many(self, record_ids: List[str]) -> int:
        if not record_ids:
            return 0
        try:
            async with self._pool().acquire() as conn:
                status = await conn.execute("DELETE FROM ids WHERE id = ANY($1::text[])", record_ids)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Delete failed: {e}")
            raise StorageError(f"Failed to delete ids: {e}")
        return parse_row_count(status)

    async def clear(self) -> int:
        try:
            async with self._pool().acquire() as conn:
                status = await conn.execute("DELETE FROM ids")
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Clear failed: {e}")
            raise StorageError(f"Failed to clear ids: {e}")
        return parse_row_count(status)

    async def list_all(self) -> List[Record]:
        try:
            async with self._pool().acquire() as conn:
                rows = await conn.fetch(
                    "SELECT id, added_by, note, created_at FROM ids ORDER BY created_at DESC, id ASC"
                )
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"Export query failed: {e}")
            raise StorageError(f"Failed to export ids: {e}")
        return [row_to_record(row) for row in rows]
