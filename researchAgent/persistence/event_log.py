"""Append-only SQLite log of emitted envelopes, used for replay."""

from __future__ import annotations

import json
import os
import sqlite3
from datetime import datetime
from typing import Any, Dict, List

from langgraph.config import get_config

from researchAgent.events.emitter import EnvelopeSink
from researchAgent.utils.error_handler import safe_sink


class EventLog:
    """Stores every envelope of a thread in emission order.

    Replaying ``events_for_thread(thread_id)`` through the viewer's
    reconstructor rebuilds the same execution tree the live stream produced.
    """

    def __init__(self, db_path: str = "data/events.db"):
        """Initialize the event log.

        Args:
            db_path: Path to SQLite database file
        """
        db_dir = os.path.dirname(db_path)
        if db_dir and not os.path.exists(db_dir):
            os.makedirs(db_dir, exist_ok=True)

        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS envelopes (
                    position INTEGER PRIMARY KEY AUTOINCREMENT,
                    thread_id TEXT NOT NULL,
                    event_id TEXT NOT NULL,
                    payload_json TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_envelopes_thread ON envelopes (thread_id, position)"
            )
            conn.commit()
        finally:
            conn.close()

    def append(self, thread_id: str, payload: Dict[str, Any]) -> None:
        """Append one wire envelope to the thread's log."""
        conn = sqlite3.connect(self.db_path)
        try:
            conn.execute(
                """INSERT INTO envelopes (thread_id, event_id, payload_json, created_at)
                   VALUES (?, ?, ?, ?)""",
                (
                    thread_id,
                    payload.get("id", ""),
                    json.dumps(payload, ensure_ascii=False, default=str),
                    datetime.now().isoformat(),
                ),
            )
            conn.commit()
        finally:
            conn.close()

    def events_for_thread(self, thread_id: str) -> List[Dict[str, Any]]:
        """Return the thread's envelopes in emission order."""
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.execute(
                "SELECT payload_json FROM envelopes WHERE thread_id = ? ORDER BY position ASC",
                (thread_id,),
            )
            return [json.loads(row[0]) for row in cursor.fetchall()]
        finally:
            conn.close()

    def delete_thread(self, thread_id: str) -> int:
        """Delete a thread's envelopes.

        Returns:
            Number of envelopes removed
        """
        conn = sqlite3.connect(self.db_path)
        try:
            cursor = conn.execute("DELETE FROM envelopes WHERE thread_id = ?", (thread_id,))
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()

    def sink_for(self, thread_id: str) -> EnvelopeSink:
        """Emitter sink that appends to this log under ``thread_id``."""

        @safe_sink("event_log")
        def _append(payload: Dict[str, Any]) -> None:
            self.append(thread_id, payload)

        return _append

    def sink(self, default_thread_id: str = "default") -> EnvelopeSink:
        """Emitter sink that files each envelope under the thread of the current graph run.

        The thread id is read from the run config (``configurable.thread_id``);
        envelopes emitted outside a run go to ``default_thread_id``.
        """

        @safe_sink("event_log")
        def _append(payload: Dict[str, Any]) -> None:
            self.append(_current_thread_id(default_thread_id), payload)

        return _append


def _current_thread_id(default: str) -> str:
    try:
        config = get_config()
    except RuntimeError:
        return default
    return str(config.get("configurable", {}).get("thread_id") or default)
