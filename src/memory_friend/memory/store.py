"""SQLite storage for memories, questions and daily summaries."""

import json
import sqlite3
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from ..errors import NotFoundError, StorageError
from .models import DailySummary, Memory, MemoryType, Question

# Largest value sqlite3 binds as INTEGER
SQLITE_MAX_INTEGER = 2**63 - 1

MEMORY_COLUMNS = (
    "id, elder_id, type, raw_text, image_url, structured_json, tags, "
    "emotional_tone, created_at, updated_at"
)


def local_timestamp() -> str:
    """Server-local ISO timestamp with millisecond precision."""
    return datetime.now().isoformat(timespec="milliseconds")


class MemoryStore:
    """Persistent storage for an elder's memories using SQLite.

    Timestamps are stored as server-local ISO strings so that day windows
    can be compared lexically.
    """

    def __init__(
        self,
        db_path: Path,
        clock: Callable[[], str] = local_timestamp,
    ) -> None:
        """Initialize the store with a database path.

        Args:
            db_path: Path to the SQLite database file.
            clock: Returns the timestamp used for new rows.
        """
        self.db_path = db_path
        self._clock = clock
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.RLock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            # Shared across threadpool workers; every use goes through _guard
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    @contextmanager
    def _guard(self, action: str) -> Iterator[sqlite3.Connection]:
        """Yield the connection under the store lock.

        The lock is held until the caller's block ends, so one operation's
        statements and commit never interleave with another's. sqlite errors
        roll back the open transaction and become StorageError.
        """
        with self._lock:
            conn = self._get_connection()
            try:
                yield conn
            except sqlite3.Error as e:
                conn.rollback()
                raise StorageError(f"Failed to {action}", detail=str(e)) from e

    def init_db(self) -> None:
        """Create the tables if they don't exist."""
        with self._guard("initialize database") as conn:
            conn.executescript("""
                CREATE TABLE IF NOT EXISTS memories (
                    id              INTEGER PRIMARY KEY AUTOINCREMENT,
                    elder_id        TEXT NOT NULL,
                    type            TEXT NOT NULL,
                    raw_text        TEXT NOT NULL,
                    image_url       TEXT,
                    structured_json TEXT NOT NULL DEFAULT '{}',
                    tags            TEXT NOT NULL DEFAULT '[]',
                    emotional_tone  TEXT,
                    created_at      TEXT NOT NULL,
                    updated_at      TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_memories_elder_created
                    ON memories(elder_id, created_at);

                CREATE TABLE IF NOT EXISTS questions (
                    id                 INTEGER PRIMARY KEY AUTOINCREMENT,
                    elder_id           TEXT NOT NULL,
                    question_text      TEXT NOT NULL,
                    answer_text        TEXT,
                    matched_memory_ids TEXT NOT NULL DEFAULT '[]',
                    created_at         TEXT NOT NULL
                );
                CREATE INDEX IF NOT EXISTS idx_questions_elder_created
                    ON questions(elder_id, created_at);

                CREATE TABLE IF NOT EXISTS daily_summaries (
                    id           INTEGER PRIMARY KEY AUTOINCREMENT,
                    elder_id     TEXT NOT NULL,
                    date         TEXT NOT NULL,
                    summary_text TEXT NOT NULL,
                    created_at   TEXT NOT NULL,
                    UNIQUE(elder_id, date)
                );
            """)
            conn.commit()

    # Memories

    def add_memory(self, memory: Memory) -> Memory:
        """Insert a memory.

        A preset created_at is kept (imports, tests); otherwise the clock
        provides it.

        Returns:
            The memory with its assigned id and timestamps.
        """
        now = memory.created_at or self._clock()
        with self._guard("create memory") as conn:
            cursor = conn.execute(
                f"""
                INSERT INTO memories (
                    elder_id, type, raw_text, image_url, structured_json,
                    tags, emotional_tone, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                RETURNING {MEMORY_COLUMNS}
                """,
                (
                    memory.elder_id,
                    memory.type.value,
                    memory.raw_text,
                    memory.image_url,
                    json.dumps(memory.structured),
                    json.dumps(memory.tags),
                    memory.emotional_tone,
                    now,
                    now,
                ),
            )
            row = cursor.fetchone()
            conn.commit()
        return self._row_to_memory(row)

    def get_memory(self, memory_id: int) -> Memory | None:
        if not 0 < memory_id <= SQLITE_MAX_INTEGER:
            return None
        with self._guard("fetch memory") as conn:
            row = conn.execute(
                f"SELECT {MEMORY_COLUMNS} FROM memories WHERE id = ?",
                (memory_id,),
            ).fetchone()
        return self._row_to_memory(row) if row else None

    def recent_memories(self, elder_id: str, limit: int) -> list[Memory]:
        """Get the newest memories of an elder, newest first."""
        with self._guard("fetch memories") as conn:
            cursor = conn.execute(
                f"""
                SELECT {MEMORY_COLUMNS} FROM memories
                WHERE elder_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (elder_id, limit),
            )
            return [self._row_to_memory(row) for row in cursor.fetchall()]

    def list_memories(
        self,
        elder_id: str,
        *,
        type: MemoryType | None = None,
        tag: str | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Memory], int]:
        """Get a filtered page of memories, newest first.

        Args:
            elder_id: Owner of the memories.
            type: Only memories of this type.
            tag: Only memories carrying this exact tag.
            search: Case-insensitive substring of the memory text.
            limit: Page size.
            offset: Rows to skip.

        Returns:
            The page and the total number of matching memories.
        """
        clauses = ["elder_id = ?"]
        params: list[Any] = [elder_id]
        if type is not None:
            clauses.append("type = ?")
            params.append(type.value)
        if tag:
            clauses.append(
                "EXISTS (SELECT 1 FROM json_each(memories.tags) WHERE json_each.value = ?)"
            )
            params.append(tag)
        if search:
            clauses.append("raw_text LIKE ? ESCAPE '\\'")
            params.append(f"%{_escape_like(search)}%")
        where = " AND ".join(clauses)

        with self._guard("fetch memories") as conn:
            total = conn.execute(
                f"SELECT COUNT(*) FROM memories WHERE {where}", params
            ).fetchone()[0]
            cursor = conn.execute(
                f"""
                SELECT {MEMORY_COLUMNS} FROM memories
                WHERE {where}
                ORDER BY created_at DESC, id DESC
                LIMIT ? OFFSET ?
                """,
                [*params, min(limit, SQLITE_MAX_INTEGER), min(offset, SQLITE_MAX_INTEGER)],
            )
            rows = cursor.fetchall()
        return [self._row_to_memory(row) for row in rows], total

    def memories_between(self, elder_id: str, start: str, end: str) -> list[Memory]:
        """Get memories created within [start, end], oldest first."""
        with self._guard("fetch memories") as conn:
            cursor = conn.execute(
                f"""
                SELECT {MEMORY_COLUMNS} FROM memories
                WHERE elder_id = ? AND created_at >= ? AND created_at <= ?
                ORDER BY created_at ASC, id ASC
                """,
                (elder_id, start, end),
            )
            return [self._row_to_memory(row) for row in cursor.fetchall()]

    def update_extraction(
        self, memory_id: int, structured: dict[str, Any], tags: list[str]
    ) -> Memory:
        """Store extraction results on an existing memory.

        Raises:
            NotFoundError: If the memory does not exist.
        """
        with self._guard("update memory") as conn:
            row = conn.execute(
                f"""
                UPDATE memories
                SET structured_json = ?, tags = ?, updated_at = ?
                WHERE id = ?
                RETURNING {MEMORY_COLUMNS}
                """,
                (json.dumps(structured), json.dumps(tags), self._clock(), memory_id),
            ).fetchone()
            conn.commit()
        if row is None:
            raise NotFoundError(f"Memory {memory_id} not found")
        return self._row_to_memory(row)

    # Questions

    def add_question(self, question: Question) -> Question:
        created_at = question.created_at or self._clock()
        with self._guard("store question") as conn:
            row = conn.execute(
                """
                INSERT INTO questions (
                    elder_id, question_text, answer_text, matched_memory_ids, created_at
                )
                VALUES (?, ?, ?, ?, ?)
                RETURNING id, created_at
                """,
                (
                    question.elder_id,
                    question.question_text,
                    question.answer_text,
                    json.dumps(question.matched_memory_ids),
                    created_at,
                ),
            ).fetchone()
            conn.commit()
        return Question(
            id=row["id"],
            elder_id=question.elder_id,
            question_text=question.question_text,
            answer_text=question.answer_text,
            matched_memory_ids=list(question.matched_memory_ids),
            created_at=row["created_at"],
        )

    def list_questions(self, elder_id: str, limit: int) -> list[Question]:
        """Get the newest questions of an elder, newest first."""
        with self._guard("fetch questions") as conn:
            cursor = conn.execute(
                """
                SELECT id, elder_id, question_text, answer_text, matched_memory_ids, created_at
                FROM questions
                WHERE elder_id = ?
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (elder_id, limit),
            )
            return [self._row_to_question(row) for row in cursor.fetchall()]

    def questions_between(self, elder_id: str, start: str, end: str) -> list[Question]:
        """Get questions asked within [start, end], oldest first."""
        with self._guard("fetch questions") as conn:
            cursor = conn.execute(
                """
                SELECT id, elder_id, question_text, answer_text, matched_memory_ids, created_at
                FROM questions
                WHERE elder_id = ? AND created_at >= ? AND created_at <= ?
                ORDER BY created_at ASC, id ASC
                """,
                (elder_id, start, end),
            )
            return [self._row_to_question(row) for row in cursor.fetchall()]

    # Daily summaries

    def upsert_summary(self, summary: DailySummary) -> DailySummary:
        """Save a summary, replacing any existing one for (elder_id, date)."""
        with self._guard("save summary") as conn:
            row = conn.execute(
                """
                INSERT INTO daily_summaries (elder_id, date, summary_text, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(elder_id, date) DO UPDATE SET
                    summary_text = excluded.summary_text,
                    created_at = excluded.created_at
                RETURNING id, created_at
                """,
                (summary.elder_id, summary.date, summary.summary_text, self._clock()),
            ).fetchone()
            conn.commit()
        return DailySummary(
            id=row["id"],
            elder_id=summary.elder_id,
            date=summary.date,
            summary_text=summary.summary_text,
            created_at=row["created_at"],
        )

    def get_summary(self, elder_id: str, date: str) -> DailySummary | None:
        with self._guard("fetch summary") as conn:
            row = conn.execute(
                """
                SELECT id, elder_id, date, summary_text, created_at
                FROM daily_summaries WHERE elder_id = ? AND date = ?
                """,
                (elder_id, date),
            ).fetchone()
        return self._row_to_summary(row) if row else None

    def list_summaries(self, elder_id: str, limit: int) -> list[DailySummary]:
        """Get the latest summaries of an elder, most recent date first."""
        with self._guard("fetch summaries") as conn:
            cursor = conn.execute(
                """
                SELECT id, elder_id, date, summary_text, created_at
                FROM daily_summaries
                WHERE elder_id = ?
                ORDER BY date DESC
                LIMIT ?
                """,
                (elder_id, limit),
            )
            return [self._row_to_summary(row) for row in cursor.fetchall()]

    def ping(self) -> None:
        """Run a trivial query, raising StorageError if the database is unusable."""
        with self._guard("reach database") as conn:
            conn.execute("SELECT 1 FROM memories LIMIT 1").fetchall()

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def _row_to_memory(self, row: sqlite3.Row) -> Memory:
        """Convert a database row to a Memory."""
        return Memory(
            id=row["id"],
            elder_id=row["elder_id"],
            type=MemoryType(row["type"]),
            raw_text=row["raw_text"],
            image_url=row["image_url"],
            structured=json.loads(row["structured_json"] or "{}"),
            tags=json.loads(row["tags"] or "[]"),
            emotional_tone=row["emotional_tone"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _row_to_question(self, row: sqlite3.Row) -> Question:
        return Question(
            id=row["id"],
            elder_id=row["elder_id"],
            question_text=row["question_text"],
            answer_text=row["answer_text"],
            matched_memory_ids=json.loads(row["matched_memory_ids"] or "[]"),
            created_at=row["created_at"],
        )

    def _row_to_summary(self, row: sqlite3.Row) -> DailySummary:
        return DailySummary(
            id=row["id"],
            elder_id=row["elder_id"],
            date=row["date"],
            summary_text=row["summary_text"],
            created_at=row["created_at"],
        )


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
