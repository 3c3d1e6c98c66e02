"""SQLite storage for emitted span records."""

from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..models import SpanRecord


class IStorage(Protocol):
    """Persistent storage for span records (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    async def save_span_record(self, record: SpanRecord) -> None:
        """Save a record and make it the user's current span."""
        ...

    async def get_current_span(self, user_id: str) -> SpanRecord | None:
        """Get the user's current span."""
        ...

    async def get_next_span(self, user_id: str) -> SpanRecord | None:
        """Get the first span starting after the current one ends."""
        ...

    async def get_all_spans(self, user_id: str) -> list[SpanRecord]:
        """Get all of a user's spans ordered by start time."""
        ...

    async def clear(self) -> None:
        """Clear all data."""
        ...


_COLUMNS = "span_id, user_id, start_time, end_time, is_current"


def _record(row) -> SpanRecord:
    return SpanRecord(
        span_id=row[0],
        user_id=row[1],
        start_time=row[2],
        end_time=row[3],
        is_current=bool(row[4]),
    )


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    async def save_span_record(self, record: SpanRecord) -> None:
        """Save a record and make it the user's current span."""
        conn = self._require_conn()

        await conn.execute(
            "UPDATE spans SET is_current = 0 WHERE user_id = ?",
            (record.user_id,),
        )
        await conn.execute(
            """
            INSERT INTO spans (span_id, user_id, start_time, end_time, is_current)
            VALUES (?, ?, ?, ?, 1)
            """,
            (record.span_id, record.user_id, record.start_time, record.end_time),
        )
        await conn.commit()
        record.is_current = True

    async def get_current_span(self, user_id: str) -> SpanRecord | None:
        """Get the user's current span."""
        conn = self._require_conn()

        cursor = await conn.execute(
            f"""
            SELECT {_COLUMNS}
            FROM spans
            WHERE user_id = ? AND is_current = 1
            ORDER BY id DESC
            LIMIT 1
            """,
            (user_id,),
        )
        row = await cursor.fetchone()
        return _record(row) if row else None

    async def get_next_span(self, user_id: str) -> SpanRecord | None:
        """Get the first span starting after the current one ends."""
        conn = self._require_conn()

        current = await self.get_current_span(user_id)
        after = current.end_time if current else 0

        cursor = await conn.execute(
            f"""
            SELECT {_COLUMNS}
            FROM spans
            WHERE user_id = ? AND start_time > ?
            ORDER BY start_time ASC
            LIMIT 1
            """,
            (user_id, after),
        )
        row = await cursor.fetchone()
        return _record(row) if row else None

    async def get_all_spans(self, user_id: str) -> list[SpanRecord]:
        """Get all of a user's spans ordered by start time."""
        conn = self._require_conn()

        cursor = await conn.execute(
            f"""
            SELECT {_COLUMNS}
            FROM spans
            WHERE user_id = ?
            ORDER BY start_time ASC
            """,
            (user_id,),
        )
        rows = await cursor.fetchall()
        return [_record(row) for row in rows]

    async def clear(self) -> None:
        """Clear all data."""
        conn = self._require_conn()
        await conn.execute("DELETE FROM spans")
        await conn.commit()
