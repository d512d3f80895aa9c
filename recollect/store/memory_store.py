"""
Recollect SQLite Memory Store
-----------------------------
Persistent storage for user-declared memories. One row per (owner_id, key),
enforced by a UNIQUE constraint and written with a single indexed upsert, so
concurrent stores of the same key can never produce duplicate rows.

Embeddings live beside the row as JSON; memory search ranks an owner's rows by
cosine similarity with numpy.
"""

import sqlite3
import json
import time
import uuid
import logging
import threading
from pathlib import Path
from typing import Optional, List, Tuple

import numpy as np

from recollect.core.errors import (
    MemoryReadFailure,
    MemoryWriteFailure,
    SourceNotProvisioned,
    SourceUnavailable,
)
from recollect.core.types import Memory, MemoryCategory

logger = logging.getLogger("Recollect.Memory")

SCHEMA_VERSION = 1
SOURCE_NAME = "memory"

CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS user_memories (
    id              TEXT PRIMARY KEY,
    owner_id        TEXT NOT NULL,
    key             TEXT NOT NULL,
    value           TEXT NOT NULL,
    category        TEXT NOT NULL DEFAULT 'fact',
    embedding_json  TEXT,
    created_at      REAL NOT NULL,
    updated_at      REAL NOT NULL,
    UNIQUE (owner_id, key)
);
"""

CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_user_memories_owner_updated ON user_memories(owner_id, updated_at DESC);",
]

SCHEMA_META = """
CREATE TABLE IF NOT EXISTS schema_meta (
    key   TEXT PRIMARY KEY,
    value TEXT
);
"""

UPSERT = """
INSERT INTO user_memories (
    id, owner_id, key, value, category, embedding_json, created_at, updated_at
)
VALUES (?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(owner_id, key) DO UPDATE SET
    value = excluded.value,
    category = excluded.category,
    embedding_json = excluded.embedding_json,
    updated_at = excluded.updated_at
"""

SELECT_COLUMNS = "id, owner_id, key, value, category, embedding_json, created_at, updated_at"


def _is_missing_table(exc: sqlite3.OperationalError) -> bool:
    return "no such table" in str(exc).lower()


class SQLiteMemoryStore:
    """Upsert-by-key, list-by-owner, delete-by-id-and-owner, and vector search."""

    def __init__(self, db_path, create_schema: bool = True):
        self.db_path = Path(db_path) if not isinstance(db_path, Path) else db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()
        if create_schema:
            self.initialize()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
        return self._conn

    def initialize(self) -> None:
        """Create the memories table and indexes (idempotent)."""
        with self._lock:
            conn = self._get_conn()
            conn.execute(CREATE_TABLE)
            for idx in CREATE_INDEXES:
                conn.execute(idx)
            conn.execute(SCHEMA_META)
            conn.execute(
                "INSERT OR IGNORE INTO schema_meta (key, value) VALUES (?, ?)",
                ("version", str(SCHEMA_VERSION)),
            )
            conn.commit()
        logger.info("SQLite memory store initialized at %s", self.db_path)

    @staticmethod
    def _row_to_memory(row: sqlite3.Row) -> Memory:
        d = dict(row)
        embedding = None
        raw = d.pop("embedding_json", None)
        if raw:
            try:
                parsed = json.loads(raw)
                if isinstance(parsed, list):
                    embedding = [float(x) for x in parsed]
            except (json.JSONDecodeError, ValueError, TypeError):
                embedding = None
        try:
            category = MemoryCategory(d.get("category", "fact"))
        except ValueError:
            category = MemoryCategory.FACT
        d["category"] = category
        d["embedding"] = embedding
        return Memory(**d)

    def upsert(
        self,
        *,
        owner_id: str,
        key: str,
        value: str,
        category: MemoryCategory,
        embedding: Optional[List[float]],
    ) -> Memory:
        """Insert a memory or overwrite the existing (owner_id, key) row in place."""
        now = time.time()
        try:
            with self._lock:
                conn = self._get_conn()
                conn.execute(
                    UPSERT,
                    (
                        str(uuid.uuid4()),
                        owner_id,
                        key,
                        value,
                        category.value,
                        json.dumps(embedding) if embedding is not None else None,
                        now,
                        now,
                    ),
                )
                row = conn.execute(
                    f"SELECT {SELECT_COLUMNS} FROM user_memories WHERE owner_id = ? AND key = ?",
                    (owner_id, key),
                ).fetchone()
                conn.commit()
        except sqlite3.Error as exc:
            raise MemoryWriteFailure(f"Failed to store memory '{key}': {exc}") from exc

        if row is None:
            raise MemoryWriteFailure(f"Failed to store memory '{key}': row not found after upsert")
        return self._row_to_memory(row)

    def list(self, owner_id: str) -> List[Memory]:
        """All memories for an owner, most recently updated first."""
        try:
            with self._lock:
                rows = self._get_conn().execute(
                    f"""
                    SELECT {SELECT_COLUMNS}
                    FROM user_memories
                    WHERE owner_id = ?
                    ORDER BY updated_at DESC
                    """,
                    (owner_id,),
                ).fetchall()
        except sqlite3.OperationalError as exc:
            if _is_missing_table(exc):
                return []
            raise MemoryReadFailure(f"Failed to list memories: {exc}") from exc
        except sqlite3.Error as exc:
            raise MemoryReadFailure(f"Failed to list memories: {exc}") from exc
        return [self._row_to_memory(row) for row in rows]

    def delete(self, owner_id: str, memory_id: str) -> bool:
        """Delete a memory owned by owner_id. Returns False when nothing matched."""
        try:
            with self._lock:
                conn = self._get_conn()
                cursor = conn.execute(
                    "DELETE FROM user_memories WHERE id = ? AND owner_id = ?",
                    (memory_id, owner_id),
                )
                conn.commit()
        except sqlite3.OperationalError as exc:
            if _is_missing_table(exc):
                return False
            raise MemoryReadFailure(f"Failed to delete memory: {exc}") from exc
        except sqlite3.Error as exc:
            raise MemoryReadFailure(f"Failed to delete memory: {exc}") from exc
        return cursor.rowcount > 0

    def search(
        self,
        query_embedding: List[float],
        owner_id: str,
        *,
        threshold: float = 0.0,
        limit: int = 5,
    ) -> List[Tuple[Memory, float]]:
        """
        Rank an owner's memories by cosine similarity to the query vector.

        Raises SourceNotProvisioned when the table does not exist yet and
        SourceUnavailable on any other database error.
        """
        if limit <= 0:
            return []
        try:
            with self._lock:
                rows = self._get_conn().execute(
                    f"""
                    SELECT {SELECT_COLUMNS}
                    FROM user_memories
                    WHERE owner_id = ? AND embedding_json IS NOT NULL
                    """,
                    (owner_id,),
                ).fetchall()
        except sqlite3.OperationalError as exc:
            if _is_missing_table(exc):
                raise SourceNotProvisioned(SOURCE_NAME, "user_memories table not yet created") from exc
            raise SourceUnavailable(SOURCE_NAME, str(exc), cause=exc) from exc
        except sqlite3.Error as exc:
            raise SourceUnavailable(SOURCE_NAME, str(exc), cause=exc) from exc

        memories = [self._row_to_memory(row) for row in rows]
        memories = [m for m in memories if m.embedding and len(m.embedding) == len(query_embedding)]
        if not memories:
            return []

        query = np.asarray(query_embedding, dtype=np.float32)
        matrix = np.asarray([m.embedding for m in memories], dtype=np.float32)
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(norms > 0, matrix @ query / norms, 0.0)
        scores = np.clip(scores, 0.0, 1.0)

        ranked = sorted(
            ((memory, float(score)) for memory, score in zip(memories, scores) if score >= threshold),
            key=lambda pair: pair[1],
            reverse=True,
        )
        return ranked[:limit]

    def count(self, owner_id: Optional[str] = None) -> int:
        """Number of stored memories, optionally for one owner. 0 before the table exists."""
        try:
            with self._lock:
                conn = self._get_conn()
                if owner_id is None:
                    row = conn.execute("SELECT COUNT(*) FROM user_memories").fetchone()
                else:
                    row = conn.execute(
                        "SELECT COUNT(*) FROM user_memories WHERE owner_id = ?", (owner_id,)
                    ).fetchone()
        except sqlite3.OperationalError as exc:
            if _is_missing_table(exc):
                return 0
            raise MemoryReadFailure(f"Failed to count memories: {exc}") from exc
        except sqlite3.Error as exc:
            raise MemoryReadFailure(f"Failed to count memories: {exc}") from exc
        return int(row[0])

    def close(self) -> None:
        with self._lock:
            if self._conn:
                self._conn.close()
                self._conn = None
