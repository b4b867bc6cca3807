"""
Database connection and pool management
"""

import asyncpg
import logging

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS ids (
      id TEXT PRIMARY KEY,
      added_by TEXT,
      created_at TIMESTAMPTZ DEFAULT NOW(),
      note TEXT DEFAULT ''
    );
    CREATE INDEX IF NOT EXISTS ids_created_at_idx ON ids (created_at DESC);
"""


async def init_database(database_url: str) -> asyncpg.Pool:
    """Create the connection pool and make sure the ids table exists"""
    db_pool = await asyncpg.create_pool(
        database_url,
        min_size=2,
        max_size=10,
        command_timeout=60,
        statement_cache_size=0  # Fix for pgbouncer compatibility
    )

    # Test connection and create schema
    async with db_pool.acquire() as conn:
        await conn.fetchval("SELECT 1")
        await conn.execute(SCHEMA_SQL)

    logger.info("Database initialized successfully, ids table checked")
    return db_pool


async def close_database(db_pool: asyncpg.Pool):
    """Close database connection pool"""
    if db_pool:
        await db_pool.close()
    logger.info("Database connections closed")
