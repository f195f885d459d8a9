"""
PostgreSQL registration store (psycopg2).

One short-lived connection per operation; writes commit or roll back as a unit.
"""

from typing import Callable, List, Optional

import psycopg2
from psycopg2.extras import RealDictCursor
from loguru import logger

from ..errors import InvalidStateTransition
from .base import (
    RegistrationRecord,
    RegistrationStore,
    StoreStatus,
    new_registration_id,
    require_confirmation_fields,
)
from .schema import CREATE_INDEXES, CREATE_REGISTRATIONS_POSTGRES


class PostgresRegistrationStore(RegistrationStore):
    engine = "postgres"

    def __init__(self, dsn: str, connect: Optional[Callable] = None):
        self._dsn = dsn
        self._connect = connect or psycopg2.connect
        self._initialized = False
        self._init_tables()

    # ── Connection ─────────────────────────────────────────────────

    def _get_connection(self):
        return self._connect(self._dsn)

    def _release(self, conn):
        conn.close()

    def _init_tables(self):
        """Create table + indexes (idempotent)."""
        try:
            conn = self._get_connection()
            try:
                with conn.cursor() as cur:
                    cur.execute(CREATE_REGISTRATIONS_POSTGRES)
                    for stmt in CREATE_INDEXES:
                        cur.execute(stmt)
                conn.commit()
                self._initialized = True
                logger.info("[Store] registrations table ready (postgres)")
            finally:
                self._release(conn)
        except psycopg2.Error as e:
            logger.error(f"[Store] failed to initialise registrations table: {e}")

    def _fetch_one(self, sql: str, params: tuple) -> Optional[RegistrationRecord]:
        conn = self._get_connection()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, params)
                row = cur.fetchone()
                return RegistrationRecord.from_row(dict(row)) if row else None
        finally:
            self._release(conn)

    def _write(self, sql: str, params: tuple) -> Optional[dict]:
        conn = self._get_connection()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(sql, params)
                row = cur.fetchone()
            conn.commit()
            return dict(row) if row else None
        except Exception:
            conn.rollback()
            raise
        finally:
            self._release(conn)

    # ── Writes ───────────────────────────────────────────────────

    def create_pending(self, asset: str, memo: str, submitted_memo: Optional[str] = None) -> str:
        registration_id = new_registration_id()
        self._write(
            """
            INSERT INTO registrations (id, asset, memo, submitted_memo, status)
            VALUES (%s, %s, %s, %s, 'pending')
            RETURNING id
            """,
            (registration_id, asset, memo, submitted_memo or memo),
        )
        logger.info(f"[Store] pending registration {registration_id} ({asset})")
        return registration_id

    def attach_tx_hash(self, registration_id: str, tx_hash: str) -> None:
        row = self._write(
            """
            UPDATE registrations SET tx_hash = %s, updated_at = NOW()
            WHERE id = %s AND status = 'pending'
            RETURNING id
            """,
            (tx_hash, registration_id),
        )
        if row is None:
            raise InvalidStateTransition(f"Registration {registration_id} is not pending")

    def mark_confirmed(self, registration_id, reference_id, height, registration_hash, registered_by):
        require_confirmation_fields(reference_id, height, registered_by)
        row = self._write(
            """
            UPDATE registrations
            SET status = 'confirmed', reference_id = %s, height = %s,
                registration_hash = %s, registered_by = %s,
                confirmed_at = NOW(), updated_at = NOW()
            WHERE id = %s AND status = 'pending'
            RETURNING *
            """,
            (reference_id, str(height), registration_hash, registered_by, registration_id),
        )
        if row is None:
            raise InvalidStateTransition(f"Registration {registration_id} is not pending")
        return RegistrationRecord.from_row(row)

    def mark_failed(self, registration_id: str, error: str) -> None:
        row = self._write(
            """
            UPDATE registrations SET status = 'failed', error = %s, updated_at = NOW()
            WHERE id = %s AND status = 'pending'
            RETURNING id
            """,
            (error, registration_id),
        )
        if row is None:
            raise InvalidStateTransition(f"Registration {registration_id} is not pending")

    # ── Reads ────────────────────────────────────────────────────

    def get(self, registration_id: str) -> Optional[RegistrationRecord]:
        return self._fetch_one("SELECT * FROM registrations WHERE id = %s", (registration_id,))

    def get_by_tx_hash(self, tx_hash: str) -> Optional[RegistrationRecord]:
        return self._fetch_one("SELECT * FROM registrations WHERE tx_hash = %s", (tx_hash,))

    def find_by_reference(self, asset: str, reference_id: str) -> List[RegistrationRecord]:
        conn = self._get_connection()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    """
                    SELECT * FROM registrations
                    WHERE asset = %s AND reference_id = %s
                    ORDER BY created_at DESC
                    """,
                    (asset, reference_id),
                )
                return [RegistrationRecord.from_row(dict(r)) for r in cur.fetchall()]
        finally:
            self._release(conn)

    def status(self) -> StoreStatus:
        try:
            conn = self._get_connection()
            try:
                with conn.cursor() as cur:
                    cur.execute("SELECT 1")
                connected = True
            finally:
                self._release(conn)
        except psycopg2.Error as e:
            logger.warning(f"[Store] postgres health probe failed: {e}")
            connected = False
        return StoreStatus(
            enabled=True,
            engine=self.engine,
            connected=connected and self._initialized,
            note="Registrations will be persisted",
        )
