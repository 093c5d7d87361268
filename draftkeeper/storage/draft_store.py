"""SQLite-backed persistent store for draft records."""

from __future__ import annotations

import json
import sqlite3
import threading
from datetime import UTC, datetime
from pathlib import Path

from loguru import logger

from draftkeeper.core.errors import DraftStoreError
from draftkeeper.core.models import ContextKey, DraftRecord
from draftkeeper.utils.helpers import ensure_dir, get_operational_data_path


class SqliteDraftStore:
    """Whole-record key-value store of drafts keyed by context.

    Every write replaces the full JSON payload for one key, so a record is never
    left half-updated. ``sqlite3.Error`` is surfaced as :class:`DraftStoreError`;
    rows whose payload cannot be decoded are skipped with a warning.
    """

    def __init__(self, db_path: Path | None = None) -> None:
        if db_path is not None:
            self.db_path = db_path.expanduser()
        else:
            self.db_path = get_operational_data_path() / "drafts.db"
        ensure_dir(self.db_path.parent)

        self._lock = threading.RLock()
        self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._create_schema()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _create_schema(self) -> None:
        with self._lock:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS drafts (
                    draft_key TEXT PRIMARY KEY,
                    conversation_id TEXT NOT NULL,
                    thread_id TEXT,
                    payload_json TEXT NOT NULL,
                    pending_deletion_at INTEGER,
                    updated_at TEXT NOT NULL
                )
                """
            )
            self._conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_drafts_pending_deletion
                ON drafts (pending_deletion_at)
                """
            )
            self._conn.commit()

    def get_all(self) -> dict[ContextKey, DraftRecord]:
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT draft_key, payload_json FROM drafts ORDER BY draft_key"
                ).fetchall()
        except sqlite3.Error as e:
            raise DraftStoreError("get_all", str(e)) from e

        drafts: dict[ContextKey, DraftRecord] = {}
        for row in rows:
            record = self._decode(row["draft_key"], row["payload_json"])
            if record is None:
                continue
            try:
                context = ContextKey.from_storage_key(row["draft_key"])
            except ValueError as e:
                logger.warning(f"Skipping draft with invalid key {row['draft_key']!r}: {e}")
                continue
            drafts[context] = record
        return drafts

    def get(self, context: ContextKey) -> DraftRecord | None:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT payload_json FROM drafts WHERE draft_key = ? LIMIT 1",
                    (context.storage_key,),
                ).fetchone()
        except sqlite3.Error as e:
            raise DraftStoreError("get", str(e)) from e
        if row is None:
            return None
        return self._decode(context.storage_key, row["payload_json"])

    def set(self, context: ContextKey, record: DraftRecord) -> None:
        payload = json.dumps(record.to_wire(), ensure_ascii=False)
        now_iso = datetime.now(UTC).isoformat()
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT INTO drafts (
                        draft_key, conversation_id, thread_id,
                        payload_json, pending_deletion_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(draft_key) DO UPDATE SET
                        payload_json = excluded.payload_json,
                        pending_deletion_at = excluded.pending_deletion_at,
                        updated_at = excluded.updated_at
                    """,
                    (
                        context.storage_key,
                        context.conversation_id,
                        context.thread_id,
                        payload,
                        record.pending_deletion_at,
                        now_iso,
                    ),
                )
                self._conn.commit()
        except sqlite3.Error as e:
            raise DraftStoreError("set", str(e)) from e

    def delete(self, context: ContextKey) -> bool:
        try:
            with self._lock:
                cur = self._conn.execute(
                    "DELETE FROM drafts WHERE draft_key = ?", (context.storage_key,)
                )
                self._conn.commit()
        except sqlite3.Error as e:
            raise DraftStoreError("delete", str(e)) from e
        return cur.rowcount > 0

    def clear(self) -> int:
        try:
            with self._lock:
                cur = self._conn.execute("DELETE FROM drafts")
                self._conn.commit()
        except sqlite3.Error as e:
            raise DraftStoreError("clear", str(e)) from e
        return max(0, cur.rowcount)

    def count(self) -> int:
        try:
            with self._lock:
                row = self._conn.execute("SELECT COUNT(*) AS n FROM drafts").fetchone()
        except sqlite3.Error as e:
            raise DraftStoreError("count", str(e)) from e
        return int(row["n"]) if row else 0

    @staticmethod
    def _decode(key: str, payload_json: str) -> DraftRecord | None:
        try:
            return DraftRecord.from_wire(json.loads(payload_json))
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            logger.warning(f"Skipping undecodable draft record {key}: {e}")
            return None
