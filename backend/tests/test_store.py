"""Tests for the DuckDB entity store."""
from datetime import datetime

import duckdb
import pytest

from app.store import EntityStore, StoreClosedError


def _insert_schedule(cur, hall_id=1, slot_id=1, conference_id=1, title="Talk"):
    now = datetime.utcnow()
    cur.execute(
        """
        INSERT INTO schedules
          (conference_id, speaker_id, hall_id, slot_id, session_title, created_at, updated_at)
        VALUES (?, 1, ?, ?, ?, ?, ?)
        """,
        [conference_id, hall_id, slot_id, title, now, now],
    )


class TestLifecycle:
    def test_query_before_open_raises(self):
        store = EntityStore()
        with pytest.raises(StoreClosedError):
            store.query("SELECT 1")

    def test_open_is_idempotent_and_close_releases(self):
        store = EntityStore()
        store.open()
        store.open()
        assert store.is_open
        store.close()
        assert not store.is_open

    def test_context_manager(self, tmp_path):
        db_path = str(tmp_path / "portal.duckdb")
        with EntityStore(db_path=db_path) as store:
            assert store.query_one("SELECT COUNT(*) AS n FROM speakers") == {"n": 0}
        assert not store.is_open

    def test_schema_survives_reopen(self, tmp_path):
        db_path = str(tmp_path / "portal.duckdb")
        with EntityStore(db_path=db_path) as store:
            with store.transaction() as cur:
                _insert_schedule(cur)
        with EntityStore(db_path=db_path) as store:
            assert len(store.query("SELECT * FROM schedules")) == 1


class TestTransactions:
    def test_commit_on_success(self, store):
        with store.transaction() as cur:
            _insert_schedule(cur)
        assert len(store.query("SELECT * FROM schedules")) == 1

    def test_rollback_on_error(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction() as cur:
                _insert_schedule(cur)
                raise RuntimeError("boom")
        assert store.query("SELECT * FROM schedules") == []

    def test_hall_slot_unique_constraint(self, store):
        with store.transaction() as cur:
            _insert_schedule(cur, title="First")
        with pytest.raises(duckdb.ConstraintException):
            with store.transaction() as cur:
                _insert_schedule(cur, title="Second")
        rows = store.query("SELECT session_title FROM schedules")
        assert rows == [{"session_title": "First"}]

    def test_same_hall_slot_in_other_conference_is_allowed(self, store):
        with store.transaction() as cur:
            _insert_schedule(cur, conference_id=1)
            _insert_schedule(cur, conference_id=2)
        assert len(store.query("SELECT * FROM schedules")) == 2

    def test_query_one_returns_none_when_empty(self, store):
        assert store.query_one("SELECT * FROM halls WHERE id = ?", [42]) is None
