"""Database abstraction layer supporting both SQLite (aiosqlite) and PostgreSQL (asyncpg).

Backend is selected via the DATABASE_URL setting:
  - starts with "postgresql://" → asyncpg
  - absent / empty             → aiosqlite (uses DATABASE_PATH)

The PostgreSQL wrapper transparently converts:
  - ? placeholders → $1, $2, … (positional)
  - INSERT → INSERT … RETURNING id
  - Row access by column name (dict-like)
"""

import re
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, date
from pathlib import Path

from alembic import command
from alembic.config import Config

from learnpath.config import settings

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _is_postgres() -> bool:
    return settings.database_url.startswith("postgresql://")


# ── SQLite helpers ────────────────────────────────────────────────────

async def _connect_sqlite():
    import aiosqlite
    # Implicit transactions start with BEGIN IMMEDIATE: concurrent writers
    # queue on the busy timeout instead of failing mid-transaction.
    db = await aiosqlite.connect(settings.database_path, timeout=30, isolation_level="IMMEDIATE")
    db.row_factory = aiosqlite.Row
    await db.execute("PRAGMA foreign_keys = ON")
    return db


# ── PostgreSQL wrapper ────────────────────────────────────────────────

_pg_pool = None


async def _get_pg_pool():
    global _pg_pool
    if _pg_pool is None:
        import asyncpg
        _pg_pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=2,
            max_size=10,
        )
    return _pg_pool


def _sqlite_compat(value):
    """asyncpg returns datetime/date objects where SQLite returns ISO strings."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class PgRow:
    """asyncpg Record with sqlite3.Row-style access by column name."""

    __slots__ = ("_record",)

    def __init__(self, record):
        self._record = record

    def __getitem__(self, key):
        return _sqlite_compat(self._record[key])

    def keys(self):
        return self._record.keys()


# ? placeholders outside quoted strings
_PARAM_RE = re.compile(r"'[^']*'|(\?)")


def _convert_placeholders(sql: str) -> str:
    """Replace ? with $1, $2, … for asyncpg, skipping ?s inside string literals."""
    counter = [0]

    def _replacer(match):
        if match.group(1) is None:
            # Quoted string, leave unchanged
            return match.group(0)
        counter[0] += 1
        return f"${counter[0]}"

    return _PARAM_RE.sub(_replacer, sql)


def _is_insert(sql: str) -> bool:
    return sql.lstrip().upper().startswith("INSERT")


class PgCursor:
    """Buffered result with the aiosqlite cursor's fetch methods."""

    __slots__ = ("_rows", "_idx")

    def __init__(self, rows=None):
        self._rows = rows or []
        self._idx = 0

    async def fetchone(self):
        if self._idx >= len(self._rows):
            return None
        row = self._rows[self._idx]
        self._idx += 1
        return PgRow(row)

    async def fetchall(self):
        remaining = self._rows[self._idx:]
        self._idx = len(self._rows)
        return [PgRow(r) for r in remaining]


class PgConnection:
    """Wraps an asyncpg connection to present an aiosqlite-compatible interface.

    Supports:
      - execute(sql, params) with ? placeholders
      - transaction() for atomic batches, commit() / rollback() / close() as no-ops
      - fetchone() / fetchall() on returned cursor
    """

    def __init__(self, conn):
        self._conn = conn

    async def execute(self, sql: str, params=None):
        pg_sql = _convert_placeholders(sql)
        args = tuple(params) if params else ()
        if _is_insert(pg_sql):
            # Every table has an id column; ON CONFLICT DO NOTHING returns no row
            if "RETURNING" not in pg_sql.upper():
                pg_sql = pg_sql.rstrip().rstrip(";") + " RETURNING id"
            row = await self._conn.fetchrow(pg_sql, *args)
            return PgCursor(rows=[row] if row else [])

        stripped = pg_sql.lstrip().upper()
        if stripped.startswith("SELECT") or "RETURNING" in stripped:
            return PgCursor(rows=await self._conn.fetch(pg_sql, *args))
        await self._conn.execute(pg_sql, *args)
        return PgCursor()

    def transaction(self):
        return self._conn.transaction()

    async def commit(self):
        # Outside transaction() every statement is auto-committed
        pass

    async def rollback(self):
        pass

    async def close(self):
        # Pool release is handled by get_db()
        pass


# ── Public API ────────────────────────────────────────────────────────

async def get_db() -> AsyncGenerator:
    """FastAPI dependency that yields a database connection and closes it after the request."""
    if _is_postgres():
        pool = await _get_pg_pool()
        conn = await pool.acquire()
        pg_conn = PgConnection(conn)
        try:
            yield pg_conn
        finally:
            await pool.release(conn)
    else:
        db = await _connect_sqlite()
        try:
            yield db
        finally:
            await db.close()


@asynccontextmanager
async def atomic(db):
    """Run the enclosed statements as one transaction on either backend.

    Query helpers never commit on their own; callers group their writes here.
    """
    if isinstance(db, PgConnection):
        async with db.transaction():
            yield db
        return
    try:
        yield db
    except BaseException:
        await db.rollback()
        raise
    await db.commit()


def database_url() -> str:
    """SQLAlchemy URL for the configured backend (used by alembic)."""
    if _is_postgres():
        return settings.database_url
    return f"sqlite:///{settings.database_path}"


def run_migrations(url: str) -> None:
    """Run Alembic migrations to head (synchronous)."""
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    alembic_cfg.set_main_option("sqlalchemy.url", url)
    command.upgrade(alembic_cfg, "head")


async def init_db():
    if _is_postgres():
        logger.info("Using PostgreSQL backend: %s", settings.database_url.split("@")[-1])
    else:
        # Ensure parent directory exists (for Docker volume mounts)
        db_path = Path(settings.database_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Using SQLite backend: %s", settings.database_path)

    # Alembic handles all schema creation and migrations
    run_migrations(database_url())


async def close_db():
    """Shutdown hook: close the PostgreSQL pool if one was opened."""
    global _pg_pool
    if _pg_pool is not None:
        await _pg_pool.close()
        _pg_pool = None
