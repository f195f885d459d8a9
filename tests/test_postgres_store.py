"""PostgreSQL store against a mocked psycopg2 connection."""

import unittest
from unittest.mock import MagicMock

import psycopg2

from memoless_engine.errors import InvalidStateTransition
from memoless_engine.storage.base import RegistrationStatus
from memoless_engine.storage.postgres import PostgresRegistrationStore


def _connection(fetchone=None, execute_error=None):
    cursor = MagicMock()
    cursor.fetchone.return_value = fetchone
    if execute_error is not None:
        cursor.execute.side_effect = execute_error
    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cursor
    return conn, cursor


class TestPostgresStore(unittest.TestCase):
    def _store(self, *connections):
        pool = list(connections)
        init_conn, _ = _connection()
        pool.insert(0, init_conn)
        return PostgresRegistrationStore("postgresql://test", connect=lambda dsn: pool.pop(0))

    def test_init_creates_table_and_indexes(self):
        init_conn, cursor = _connection()
        store = PostgresRegistrationStore("postgresql://test", connect=lambda dsn: init_conn)
        self.assertEqual(cursor.execute.call_count, 4)
        init_conn.commit.assert_called_once()
        init_conn.close.assert_called_once()
        self.assertTrue(store._initialized)

    def test_init_failure_is_logged_not_raised(self):
        def refuse(dsn):
            raise psycopg2.OperationalError("connection refused")

        store = PostgresRegistrationStore("postgresql://test", connect=refuse)
        self.assertFalse(store._initialized)

    def test_mark_confirmed_returns_record(self):
        row = {
            "id": "abc",
            "asset": "BTC.BTC",
            "memo": "m",
            "status": "confirmed",
            "reference_id": "00008",
            "height": 12,
            "registered_by": "thor1",
        }
        conn, cursor = _connection(fetchone=row)
        record = self._store(conn).mark_confirmed("abc", "00008", "12", "hash", "thor1")
        self.assertEqual(record.status, RegistrationStatus.CONFIRMED)
        self.assertEqual(record.height, "12")
        sql = cursor.execute.call_args[0][0]
        self.assertIn("status = 'pending'", sql)
        conn.commit.assert_called_once()

    def test_update_of_non_pending_row_rejected(self):
        conn, _ = _connection(fetchone=None)
        with self.assertRaises(InvalidStateTransition):
            self._store(conn).mark_failed("abc", "boom")

    def test_failed_write_rolls_back(self):
        conn, _ = _connection(execute_error=psycopg2.IntegrityError("duplicate tx_hash"))
        with self.assertRaises(psycopg2.IntegrityError):
            self._store(conn).attach_tx_hash("abc", "hash")
        conn.rollback.assert_called_once()
        conn.close.assert_called_once()

    def test_status_reports_connection(self):
        conn, _ = _connection()
        status = self._store(conn).status()
        self.assertTrue(status.connected)
        self.assertEqual(status.engine, "postgres")
