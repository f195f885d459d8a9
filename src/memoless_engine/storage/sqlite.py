"""
Embedded registration store for `sqlite:` database URLs (single node, tests).
"""

import sqlite3
import threading
from typing import List, Optional

from loguru import logger

from ..errors import InvalidStateTransition
from .base import (
    RegistrationRecord,
    RegistrationStore,
    StoreStatus,
    new_registration_id,
    require_confirmation_fields,
)
from .schema import CREATE_INDEXES, CREATE_REGISTRATIONS_SQLITE


def sqlite_path(database_url: str) -> str:
    """sqlite:///abs/path.db, sqlite:relative.db or sqlite::memory: -> filesystem path."""
    path = database_url[len("sqlite:"):] if database_url.startswith("sqlite:") else database_url
    if path.startswith("//"):
        path = path[2:]
    return path or ":memory:"


class SqliteRegistrationStore(RegistrationStore):
    engine = "sqlite"

    def __init__(self, path: str = ":memory:"):
        self.path = path
        # shared across worker threads; every access goes through the lock
        self._conn = sqlite3.connect(path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        with self._lock, self._conn:
            self._conn.execute(CREATE_REGISTRATIONS_SQLITE)
            for stmt in CREATE_INDEXES:
                self._conn.execute(stmt)
        logger.info(f"[Store] registrations table ready (sqlite: {path})")

    def _update_pending(self, sql: str, params: tuple, registration_id: str):
        with self._lock, self._conn:
            cur = self._conn.execute(sql, params)
        if cur.rowcount != 1:
            raise InvalidStateTransition(f"Registration {registration_id} is not pending")

    def _fetch_one(self, sql: str, params: tuple) -> Optional[RegistrationRecord]:
        with self._lock:
            row = self._conn.execute(sql, params).fetchone()
        return RegistrationRecord.from_row(dict(row)) if row else None

    # ── Writes ───────────────────────────────────────────────────

    def create_pending(self, asset: str, memo: str, submitted_memo: Optional[str] = None) -> str:
        registration_id = new_registration_id()
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT INTO registrations (id, asset, memo, submitted_memo, status) "
                "VALUES (?, ?, ?, ?, 'pending')",
                (registration_id, asset, memo, submitted_memo or memo),
            )
        logger.info(f"[Store] pending registration {registration_id} ({asset})")
        return registration_id

    def attach_tx_hash(self, registration_id: str, tx_hash: str) -> None:
        self._update_pending(
            "UPDATE registrations SET tx_hash = ?, updated_at = CURRENT_TIMESTAMP "
            "WHERE id = ? AND status = 'pending'",
            (tx_hash, registration_id),
            registration_id,
        )

    def mark_confirmed(self, registration_id, reference_id, height, registration_hash, registered_by):
        require_confirmation_fields(reference_id, height, registered_by)
        self._update_pending(
            "UPDATE registrations SET status = 'confirmed', reference_id = ?, height = ?, "
            "registration_hash = ?, registered_by = ?, "
            "confirmed_at = CURRENT_TIMESTAMP, updated_at = CURRENT_TIMESTAMP "
            "WHERE id = ? AND status = 'pending'",
            (reference_id, str(height), registration_hash, registered_by, registration_id),
            registration_id,
        )
        return self.get(registration_id)

    def mark_failed(self, registration_id: str, error: str) -> None:
        self._update_pending(
            "UPDATE registrations SET status = 'failed', error = ?, updated_at = CURRENT_TIMESTAMP "
            "WHERE id = ? AND status = 'pending'",
            (error, registration_id),
            registration_id,
        )

    # ── Reads ────────────────────────────────────────────────────

    def get(self, registration_id: str) -> Optional[RegistrationRecord]:
        return self._fetch_one("SELECT * FROM registrations WHERE id = ?", (registration_id,))

    def get_by_tx_hash(self, tx_hash: str) -> Optional[RegistrationRecord]:
        return self._fetch_one("SELECT * FROM registrations WHERE tx_hash = ?", (tx_hash,))

    def find_by_reference(self, asset: str, reference_id: str) -> List[RegistrationRecord]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM registrations WHERE asset = ? AND reference_id = ? "
                "ORDER BY created_at DESC",
                (asset, reference_id),
            ).fetchall()
        return [RegistrationRecord.from_row(dict(r)) for r in rows]

    def status(self) -> StoreStatus:
        try:
            with self._lock:
                self._conn.execute("SELECT 1")
            connected = True
        except sqlite3.Error as e:
            logger.warning(f"[Store] sqlite health probe failed: {e}")
            connected = False
        return StoreStatus(enabled=True, engine=self.engine, connected=connected, note="Registrations will be persisted")

    def close(self) -> None:
        with self._lock:
            self._conn.close()
