"""
Caisse Backend — Persistence Layer
====================================

What:  One async SQLAlchemy engine over a single SQLite file, plus the three
       statement primitives every service uses: execute, fetch_one, fetch_many.
How:   `Database` wraps an aiosqlite-backed engine. Each primitive opens a
       connection from the pool, runs one statement and releases it; writes
       commit immediately. Driver errors are translated into StorageError
       (or ConflictError for UNIQUE violations).
Who:   Created once in the lifespan handler and stored on `app.state.db`;
       route handlers receive it through the `get_database` dependency.

Schema initialization:
    `init_schema()` creates missing tables, then compares each table's live
    columns against the declared models and appends whatever is missing
    (`ALTER TABLE ... ADD COLUMN`, NULL default). Nothing is ever dropped,
    so the same initializer can run against a database created by an older
    release, and running it twice is a no-op.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from fastapi import Request
from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.sql import Executable

from app.exceptions import ConflictError, StorageError

logger = logging.getLogger(__name__)

Statement = Union[str, Executable]
Params = Optional[Mapping[str, Any]]


class Base(DeclarativeBase):
    """Base class for all table models; owns the shared metadata."""
    pass


@dataclass(frozen=True)
class ExecuteResult:
    """Metadata returned by `Database.execute`."""

    rowcount: int
    lastrowid: Optional[int] = None


def _as_executable(statement: Statement) -> Executable:
    # Raw SQL strings bind `:name` parameters
    if isinstance(statement, str):
        return text(statement)
    return statement


def _translate_error(exc: SQLAlchemyError, statement: Statement) -> StorageError:
    """Map a driver error onto the application's storage exceptions."""
    detail = str(getattr(exc, "orig", None) or exc)
    context = {
        "error_type": type(exc).__name__,
        "detail": detail,
        "statement": str(statement)[:500],
    }
    if isinstance(exc, IntegrityError) and "UNIQUE constraint failed" in detail:
        return ConflictError(context=context)
    return StorageError(context=context)


def _add_missing_columns(sync_conn: Connection) -> List[str]:
    """Append declared columns absent from existing tables. Returns what was added."""
    inspector = inspect(sync_conn)
    added: List[str] = []
    for table in Base.metadata.sorted_tables:
        existing = {column["name"] for column in inspector.get_columns(table.name)}
        for column in table.columns:
            if column.name in existing:
                continue
            column_type = column.type.compile(dialect=sync_conn.dialect)
            # No DEFAULT clause: SQLite rejects non-constant defaults in ADD COLUMN
            sync_conn.execute(
                text(f'ALTER TABLE "{table.name}" ADD COLUMN "{column.name}" {column_type}')
            )
            added.append(f"{table.name}.{column.name}")
    return added


class Database:
    """
    Process-wide handle on the SQLite database.

    Attributes:
        path:   Filesystem path of the database file (reported by /health)
        engine: Async SQLAlchemy engine (aiosqlite driver)
    """

    def __init__(self, path: str, echo: bool = False):
        self.path = path
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        self.engine: AsyncEngine = create_async_engine(
            f"sqlite+aiosqlite:///{path}",
            echo=echo,
        )

    # ── Statement Primitives ──────────────────────────────────────────────

    async def execute(self, statement: Statement, params: Params = None) -> ExecuteResult:
        """
        Run a write statement in its own transaction and commit it.

        Raises:
            ConflictError: A UNIQUE constraint was violated
            StorageError:  Any other driver failure
        """
        stmt = _as_executable(statement)
        try:
            async with self.engine.begin() as conn:
                if params:
                    result = await conn.execute(stmt, dict(params))
                else:
                    result = await conn.execute(stmt)
                return ExecuteResult(
                    rowcount=result.rowcount,
                    lastrowid=getattr(result, "lastrowid", None),
                )
        except SQLAlchemyError as exc:
            raise _translate_error(exc, statement) from exc

    async def fetch_one(self, statement: Statement, params: Params = None) -> Optional[Dict[str, Any]]:
        """Return the first row as a dict, or None when the query matches nothing."""
        stmt = _as_executable(statement)
        try:
            async with self.engine.connect() as conn:
                if params:
                    result = await conn.execute(stmt, dict(params))
                else:
                    result = await conn.execute(stmt)
                row = result.mappings().first()
        except SQLAlchemyError as exc:
            raise _translate_error(exc, statement) from exc
        return dict(row) if row is not None else None

    async def fetch_many(self, statement: Statement, params: Params = None) -> List[Dict[str, Any]]:
        """Return every matching row as a list of dicts."""
        stmt = _as_executable(statement)
        try:
            async with self.engine.connect() as conn:
                if params:
                    result = await conn.execute(stmt, dict(params))
                else:
                    result = await conn.execute(stmt)
                rows = result.mappings().all()
        except SQLAlchemyError as exc:
            raise _translate_error(exc, statement) from exc
        return [dict(row) for row in rows]

    # ── Schema & Lifecycle ────────────────────────────────────────────────

    async def init_schema(self) -> List[str]:
        """
        Create missing tables and columns. Idempotent and additive-only.

        Returns:
            The `table.column` names that had to be added (empty when the
            schema was already current).
        """
        # Register the table models on Base.metadata
        import app.models.sale  # noqa: F401
        import app.models.user  # noqa: F401

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
                added = await conn.run_sync(_add_missing_columns)
        except SQLAlchemyError as exc:
            raise _translate_error(exc, "init_schema") from exc

        if added:
            logger.info("Schema upgraded, added columns: %s", ", ".join(added))
        return added

    async def ping(self) -> bool:
        """Lightweight connectivity probe (SELECT 1)."""
        row = await self.fetch_one("SELECT 1 AS ok")
        return bool(row and row["ok"] == 1)

    async def dispose(self) -> None:
        """Close every pooled connection."""
        await self.engine.dispose()


# ── FastAPI Dependency ────────────────────────────────────────────────────
def get_database(request: Request) -> Database:
    """Return the process-wide Database stored on the application state."""
    return request.app.state.db
