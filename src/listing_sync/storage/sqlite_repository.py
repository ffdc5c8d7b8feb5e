"""
SQLite-based repository.

Suitable for a single local process; every statement runs under one lock so
the job runner thread and apply workers can share the connection.
"""

import json
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ..catalog.locales import canonicalize
from ..core.exceptions import JobStateError, RepositoryError
from ..core.types import (
    AppRecord,
    JobStatus,
    LocaleDetail,
    StoreId,
    StoreScope,
    SyncJob,
    SyncJobLog,
)
from .repository import Repository


logger = logging.getLogger(__name__)

LOG_LEVELS = ("info", "warn", "error")

MEMORY = ":memory:"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class SqliteRepository(Repository):
    """
    SQLite implementation of the Repository interface.

    Example:
        >>> repo = SqliteRepository(":memory:")
        >>> app = repo.create_app("Acme", asc_app_id="123")
        >>> repo.replace_locales(app.id, StoreId.APP_STORE, ["en-US", "de-DE"])
    """

    def __init__(self, db_path: Union[str, Path] = MEMORY, auto_init: bool = True):
        self.db_path = str(db_path)
        self.conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()
        self._connect()

        if auto_init:
            self._init_schema()

    def _connect(self) -> None:
        if self.db_path != MEMORY:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        logger.debug(f"Connected to SQLite repository: {self.db_path}")

    def _init_schema(self) -> None:
        with self._lock:
            self.conn.executescript("""
                CREATE TABLE IF NOT EXISTS apps (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    source_locale TEXT NOT NULL DEFAULT 'en-US',
                    asc_app_id TEXT,
                    android_package_name TEXT,
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS store_locales (
                    app_id INTEGER NOT NULL REFERENCES apps(id) ON DELETE CASCADE,
                    store TEXT NOT NULL CHECK (store IN ('app_store', 'play_store')),
                    locale TEXT NOT NULL,
                    PRIMARY KEY (app_id, store, locale)
                );

                CREATE TABLE IF NOT EXISTS store_locale_details (
                    app_id INTEGER NOT NULL REFERENCES apps(id) ON DELETE CASCADE,
                    store TEXT NOT NULL CHECK (store IN ('app_store', 'play_store')),
                    locale TEXT NOT NULL,
                    fields_json TEXT NOT NULL,
                    lengths_json TEXT NOT NULL,
                    screenshots_json TEXT,
                    metadata_json TEXT NOT NULL,
                    fetched_at TEXT NOT NULL,
                    PRIMARY KEY (app_id, store, locale)
                );

                CREATE TABLE IF NOT EXISTS sync_jobs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    app_id INTEGER NOT NULL REFERENCES apps(id) ON DELETE CASCADE,
                    store_scope TEXT NOT NULL,
                    status TEXT NOT NULL
                        CHECK (status IN ('queued', 'running', 'succeeded', 'failed')),
                    payload_json TEXT NOT NULL,
                    summary_json TEXT,
                    error TEXT,
                    created_at TEXT NOT NULL,
                    started_at TEXT,
                    finished_at TEXT
                );

                CREATE INDEX IF NOT EXISTS ix_sync_jobs_app
                ON sync_jobs (app_id, id);

                CREATE TABLE IF NOT EXISTS sync_job_logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    job_id INTEGER NOT NULL REFERENCES sync_jobs(id) ON DELETE CASCADE,
                    level TEXT NOT NULL CHECK (level IN ('info', 'warn', 'error')),
                    message TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );
            """)
            self.conn.commit()
        logger.debug("Initialized repository schema")

    def _execute(self, sql: str, params: tuple = ()) -> sqlite3.Cursor:
        try:
            return self.conn.execute(sql, params)
        except sqlite3.Error as e:
            raise RepositoryError(f"SQLite error: {e}") from e

    # Apps

    def create_app(
        self,
        name: str,
        source_locale: str = "en-US",
        asc_app_id: Optional[str] = None,
        android_package_name: Optional[str] = None,
    ) -> AppRecord:
        with self._lock:
            cursor = self._execute(
                """
                INSERT INTO apps (name, source_locale, asc_app_id, android_package_name, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (name, canonicalize(source_locale), asc_app_id, android_package_name, _now()),
            )
            self.conn.commit()
            return self.get_app(cursor.lastrowid)

    def get_app(self, app_id: int) -> Optional[AppRecord]:
        with self._lock:
            row = self._execute("SELECT * FROM apps WHERE id = ?", (app_id,)).fetchone()
        return self._row_to_app(row) if row else None

    def list_apps(self) -> List[AppRecord]:
        with self._lock:
            rows = self._execute("SELECT * FROM apps ORDER BY id").fetchall()
        return [self._row_to_app(row) for row in rows]

    # Locales

    def list_locales(self, app_id: int, store: StoreId) -> List[str]:
        with self._lock:
            rows = self._execute(
                "SELECT locale FROM store_locales WHERE app_id = ? AND store = ? ORDER BY locale",
                (app_id, StoreId(store).value),
            ).fetchall()
        return [row["locale"] for row in rows]

    def replace_locales(self, app_id: int, store: StoreId, locales: Iterable[str]) -> None:
        codes = sorted({canonicalize(code) for code in locales if code})
        store_value = StoreId(store).value
        with self._lock:
            try:
                self.conn.execute(
                    "DELETE FROM store_locales WHERE app_id = ? AND store = ?",
                    (app_id, store_value),
                )
                self.conn.executemany(
                    "INSERT INTO store_locales (app_id, store, locale) VALUES (?, ?, ?)",
                    [(app_id, store_value, code) for code in codes],
                )
                self.conn.commit()
            except sqlite3.Error as e:
                self.conn.rollback()
                raise RepositoryError(f"Failed to replace locales: {e}") from e
        logger.debug(f"Replaced {store_value} locales for app {app_id}: {len(codes)} locales")

    # Locale details

    def list_locale_details(self, app_id: int, store: StoreId) -> Dict[str, LocaleDetail]:
        with self._lock:
            rows = self._execute(
                """
                SELECT * FROM store_locale_details
                WHERE app_id = ? AND store = ?
                ORDER BY locale
                """,
                (app_id, StoreId(store).value),
            ).fetchall()
        return {row["locale"]: self._row_to_detail(row) for row in rows}

    def get_locale_detail(self, app_id: int, store: StoreId, locale: str) -> Optional[LocaleDetail]:
        with self._lock:
            row = self._execute(
                """
                SELECT * FROM store_locale_details
                WHERE app_id = ? AND store = ? AND locale = ?
                """,
                (app_id, StoreId(store).value, canonicalize(locale)),
            ).fetchone()
        return self._row_to_detail(row) if row else None

    def replace_locale_details(self, app_id: int, store: StoreId, details: Iterable[LocaleDetail]) -> None:
        store_value = StoreId(store).value
        rows = [
            (
                app_id,
                store_value,
                detail.locale,
                json.dumps(detail.fields),
                json.dumps(detail.lengths),
                json.dumps(detail.screenshots) if detail.screenshots is not None else None,
                json.dumps(detail.metadata, default=str),
                detail.fetched_at.isoformat(),
            )
            for detail in details
        ]
        with self._lock:
            try:
                self.conn.execute(
                    "DELETE FROM store_locale_details WHERE app_id = ? AND store = ?",
                    (app_id, store_value),
                )
                self.conn.executemany(
                    """
                    INSERT INTO store_locale_details (
                        app_id, store, locale, fields_json, lengths_json,
                        screenshots_json, metadata_json, fetched_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )
                self.conn.commit()
            except sqlite3.Error as e:
                self.conn.rollback()
                raise RepositoryError(f"Failed to replace locale details: {e}") from e

    # Sync jobs

    def create_job(self, app_id: int, store_scope: StoreScope, payload: Optional[Dict[str, Any]] = None) -> SyncJob:
        with self._lock:
            cursor = self._execute(
                """
                INSERT INTO sync_jobs (app_id, store_scope, status, payload_json, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (app_id, StoreScope(store_scope).value, JobStatus.QUEUED.value,
                 json.dumps(payload or {}), _now()),
            )
            self.conn.commit()
            return self.get_job(cursor.lastrowid)

    def get_job(self, job_id: int) -> Optional[SyncJob]:
        with self._lock:
            row = self._execute("SELECT * FROM sync_jobs WHERE id = ?", (job_id,)).fetchone()
        return self._row_to_job(row) if row else None

    def list_jobs(self, app_id: int, limit: int = 50) -> List[SyncJob]:
        with self._lock:
            rows = self._execute(
                "SELECT * FROM sync_jobs WHERE app_id = ? ORDER BY id DESC LIMIT ?",
                (app_id, limit),
            ).fetchall()
        return [self._row_to_job(row) for row in rows]

    def _transition(self, job_id: int, target: JobStatus, assignments: str, params: tuple) -> SyncJob:
        with self._lock:
            job = self.get_job(job_id)
            if job is None:
                raise JobStateError(f"Sync job {job_id} not found")
            if not job.status.can_transition_to(target):
                raise JobStateError(
                    f"Sync job {job_id} cannot move from {job.status.value} to {target.value}"
                )
            self._execute(
                f"UPDATE sync_jobs SET status = ?, {assignments} WHERE id = ?",
                (target.value, *params, job_id),
            )
            self.conn.commit()
            return self.get_job(job_id)

    def mark_running(self, job_id: int) -> SyncJob:
        return self._transition(job_id, JobStatus.RUNNING, "started_at = ?", (_now(),))

    def mark_succeeded(self, job_id: int, summary: Dict[str, Any]) -> SyncJob:
        return self._transition(
            job_id,
            JobStatus.SUCCEEDED,
            "summary_json = ?, error = NULL, finished_at = ?",
            (json.dumps(summary, default=str), _now()),
        )

    def mark_failed(self, job_id: int, error: str) -> SyncJob:
        return self._transition(
            job_id,
            JobStatus.FAILED,
            "error = ?, finished_at = ?",
            (error, _now()),
        )

    def append_log(self, job_id: int, level: str, message: str) -> None:
        if level not in LOG_LEVELS:
            raise RepositoryError(f"Invalid log level: {level}")
        with self._lock:
            self._execute(
                "INSERT INTO sync_job_logs (job_id, level, message, created_at) VALUES (?, ?, ?, ?)",
                (job_id, level, message, _now()),
            )
            self.conn.commit()

    def list_logs(self, job_id: int) -> List[SyncJobLog]:
        with self._lock:
            rows = self._execute(
                "SELECT * FROM sync_job_logs WHERE job_id = ? ORDER BY id",
                (job_id,),
            ).fetchall()
        return [
            SyncJobLog(
                id=row["id"],
                job_id=row["job_id"],
                level=row["level"],
                message=row["message"],
                created_at=_parse_ts(row["created_at"]),
            )
            for row in rows
        ]

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    # Row mapping

    def _row_to_app(self, row: sqlite3.Row) -> AppRecord:
        return AppRecord(
            id=row["id"],
            name=row["name"],
            source_locale=row["source_locale"],
            asc_app_id=row["asc_app_id"],
            android_package_name=row["android_package_name"],
            created_at=_parse_ts(row["created_at"]),
        )

    def _row_to_detail(self, row: sqlite3.Row) -> LocaleDetail:
        return LocaleDetail(
            store=StoreId(row["store"]),
            locale=row["locale"],
            fields=json.loads(row["fields_json"]),
            lengths=json.loads(row["lengths_json"]),
            screenshots=json.loads(row["screenshots_json"]) if row["screenshots_json"] else None,
            fetched_at=_parse_ts(row["fetched_at"]),
            metadata=json.loads(row["metadata_json"]),
        )

    def _row_to_job(self, row: sqlite3.Row) -> SyncJob:
        return SyncJob(
            id=row["id"],
            app_id=row["app_id"],
            store_scope=StoreScope(row["store_scope"]),
            status=JobStatus(row["status"]),
            payload=json.loads(row["payload_json"]),
            summary=json.loads(row["summary_json"]) if row["summary_json"] else None,
            error=row["error"],
            created_at=_parse_ts(row["created_at"]),
            started_at=_parse_ts(row["started_at"]),
            finished_at=_parse_ts(row["finished_at"]),
        )
