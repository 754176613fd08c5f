"""SQLite-backed storage for templates, the active snapshot and run history."""

import json
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Optional

from ..config.defaults import SnapshotParams
from ..data.models import (
    SessionRun,
    SessionTemplate,
    run_from_dict,
    run_to_dict,
    template_from_dict,
    template_to_dict,
)
from ..errors import InvalidTemplateError, PersistenceError
from ..logging.config import get_persistence_logger
from ..utils.time import now_ms
from .base import RunStore, SnapshotStore, TemplateStore
from .snapshot_codec import ActiveSessionSnapshot


class SqliteStore(TemplateStore, SnapshotStore, RunStore):
    """SQLite persistence for every storage contract."""

    def __init__(self, db_path: str = "fitzig.db", snapshot_key: Optional[str] = None):
        self.db_path = Path(db_path)
        self.snapshot_key = snapshot_key or SnapshotParams().key
        self.logger = get_persistence_logger(__name__)
        self._lock = threading.Lock()

        self._init_database()

    def _init_database(self) -> None:
        """Initialize database schema."""
        with self._get_connection("init") as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS templates (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    payload TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS runs (
                    id TEXT PRIMARY KEY,
                    template_id TEXT NOT NULL,
                    completed_at INTEGER NOT NULL,
                    payload TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at INTEGER NOT NULL
                )
            """)

            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_runs_completed_at ON runs(completed_at)
            """)

            conn.commit()

    @contextmanager
    def _get_connection(self, operation: str):
        """Get database connection, translating sqlite failures."""
        conn = None
        try:
            conn = sqlite3.connect(self.db_path, timeout=30.0)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            if conn:
                conn.rollback()
            self.logger.error("Database error", operation=operation, error=str(e))
            raise PersistenceError(
                f"SQLite {operation} failed: {e}",
                operation=operation,
                target=str(self.db_path)
            ) from e
        finally:
            if conn:
                conn.close()

    # Templates

    def get_template(self, template_id: str) -> Optional[SessionTemplate]:
        with self._get_connection("get_template") as conn:
            row = conn.execute(
                "SELECT payload FROM templates WHERE id = ?", (template_id,)
            ).fetchone()

        if row is None:
            return None

        try:
            return template_from_dict(json.loads(row["payload"]))
        except (json.JSONDecodeError, InvalidTemplateError) as e:
            self.logger.warning("Stored template unreadable", template_id=template_id,
                                error=str(e))
            return None

    def save_template(self, template: SessionTemplate) -> None:
        with self._lock:
            with self._get_connection("save_template") as conn:
                conn.execute("""
                    INSERT OR REPLACE INTO templates (id, name, created_at, payload)
                    VALUES (?, ?, ?, ?)
                """, (
                    template.id,
                    template.name,
                    template.created_at,
                    json.dumps(template_to_dict(template)),
                ))
                conn.commit()

        self.logger.info("Template saved", template_id=template.id)

    def list_templates(self) -> list[SessionTemplate]:
        with self._get_connection("list_templates") as conn:
            rows = conn.execute(
                "SELECT payload FROM templates ORDER BY created_at DESC"
            ).fetchall()

        templates = []
        for row in rows:
            try:
                templates.append(template_from_dict(json.loads(row["payload"])))
            except (json.JSONDecodeError, InvalidTemplateError) as e:
                self.logger.warning("Skipping unreadable template", error=str(e))
        return templates

    # Active snapshot

    def get_snapshot(self) -> Optional[dict[str, Any]]:
        with self._get_connection("get_snapshot") as conn:
            row = conn.execute(
                "SELECT value FROM kv WHERE key = ?", (self.snapshot_key,)
            ).fetchone()

        if row is None:
            return None

        try:
            payload = json.loads(row["value"])
        except json.JSONDecodeError as e:
            self.logger.warning("Stored snapshot is not valid JSON", error=str(e))
            return None

        return payload if isinstance(payload, dict) else None

    def put_snapshot(self, snapshot: ActiveSessionSnapshot) -> None:
        with self._lock:
            with self._get_connection("put_snapshot") as conn:
                conn.execute("""
                    INSERT OR REPLACE INTO kv (key, value, updated_at) VALUES (?, ?, ?)
                """, (self.snapshot_key, snapshot.to_json(), snapshot.updated_at))
                conn.commit()

    def clear_snapshot(self) -> None:
        with self._lock:
            with self._get_connection("clear_snapshot") as conn:
                conn.execute("DELETE FROM kv WHERE key = ?", (self.snapshot_key,))
                conn.commit()

    # Run history

    def save_run(self, run: SessionRun) -> None:
        with self._lock:
            with self._get_connection("save_run") as conn:
                conn.execute("""
                    INSERT OR REPLACE INTO runs (id, template_id, completed_at, payload)
                    VALUES (?, ?, ?, ?)
                """, (run.id, run.template_id, run.completed_at, json.dumps(run_to_dict(run))))
                conn.commit()

        self.logger.info("Session run saved", run_id=run.id, template_id=run.template_id)

    def list_runs(self) -> list[SessionRun]:
        with self._get_connection("list_runs") as conn:
            rows = conn.execute(
                "SELECT payload FROM runs ORDER BY completed_at DESC"
            ).fetchall()

        return [run_from_dict(json.loads(row["payload"])) for row in rows]

    def clear_all(self) -> None:
        """Drop every template, run and snapshot."""
        with self._lock:
            with self._get_connection("clear_all") as conn:
                conn.execute("DELETE FROM templates")
                conn.execute("DELETE FROM runs")
                conn.execute("DELETE FROM kv")
                conn.commit()

        self.logger.info("All stored data cleared", cleared_at=now_ms())
