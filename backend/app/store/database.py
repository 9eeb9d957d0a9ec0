"""DuckDB-backed entity store for the conference portal.

Holds the relations the scheduling and upload services work on:

    conferences     - id, name, dates, total_days, venue
    halls           - per-conference venues, name unique within a conference
    time_slots      - per-conference slots, slot_order unique within a conference
    speakers        - speaker_code is unique (SP001, SP002, ...); ids are never reused
    schedules       - UNIQUE (conference_id, hall_id, slot_id)
    uploaded_files  - presentation uploads and their processing status

Thread Safety:
    A single DuckDB database is opened per store. Each operation runs on its
    own cursor (a duplicate connection to the same database); the number of
    cursors in use at once is bounded by ``pool_size``. Writes are serialized
    by a store-level lock and always run inside an explicit transaction, so a
    failing statement never leaves a half-written record behind.

Usage:
    store = EntityStore(db_path="portal.duckdb", pool_size=10)
    store.open()
    rows = store.query("SELECT * FROM halls WHERE conference_id = ?", [1])
    with store.transaction() as cur:
        cur.execute("INSERT INTO ...", [...])
    store.close()
"""
import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

import duckdb

logger = logging.getLogger(__name__)

_SCHEMA = [
    "CREATE SEQUENCE IF NOT EXISTS conferences_seq START 1",
    "CREATE SEQUENCE IF NOT EXISTS halls_seq START 1",
    "CREATE SEQUENCE IF NOT EXISTS time_slots_seq START 1",
    "CREATE SEQUENCE IF NOT EXISTS speakers_seq START 1",
    "CREATE SEQUENCE IF NOT EXISTS schedules_seq START 1",
    "CREATE SEQUENCE IF NOT EXISTS uploaded_files_seq START 1",
    """
    CREATE TABLE IF NOT EXISTS conferences (
        id          INTEGER DEFAULT nextval('conferences_seq') PRIMARY KEY,
        name        VARCHAR NOT NULL,
        start_date  DATE,
        end_date    DATE,
        total_days  INTEGER NOT NULL DEFAULT 1 CHECK (total_days >= 1),
        venue       VARCHAR
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS halls (
        id            INTEGER DEFAULT nextval('halls_seq') PRIMARY KEY,
        conference_id INTEGER NOT NULL,
        name          VARCHAR NOT NULL,
        capacity      INTEGER NOT NULL DEFAULT 0,
        location      VARCHAR,
        UNIQUE (conference_id, name)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS time_slots (
        id            INTEGER DEFAULT nextval('time_slots_seq') PRIMARY KEY,
        conference_id INTEGER NOT NULL,
        day_number    INTEGER NOT NULL CHECK (day_number >= 1),
        start_time    TIME NOT NULL,
        end_time      TIME NOT NULL,
        slot_name     VARCHAR,
        slot_order    INTEGER NOT NULL,
        UNIQUE (conference_id, slot_order)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS speakers (
        id            INTEGER PRIMARY KEY,
        speaker_code  VARCHAR NOT NULL UNIQUE,
        full_name     VARCHAR NOT NULL,
        email         VARCHAR,
        phone         VARCHAR,
        title         VARCHAR,
        bio           VARCHAR,
        created_at    TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS schedules (
        id                  INTEGER DEFAULT nextval('schedules_seq') PRIMARY KEY,
        conference_id       INTEGER NOT NULL,
        speaker_id          INTEGER NOT NULL,
        hall_id             INTEGER NOT NULL,
        slot_id             INTEGER NOT NULL,
        session_title       VARCHAR NOT NULL,
        session_description VARCHAR,
        status              VARCHAR NOT NULL DEFAULT 'scheduled',
        created_at          TIMESTAMP NOT NULL,
        updated_at          TIMESTAMP NOT NULL,
        UNIQUE (conference_id, hall_id, slot_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS uploaded_files (
        id                INTEGER DEFAULT nextval('uploaded_files_seq') PRIMARY KEY,
        schedule_id       INTEGER NOT NULL,
        speaker_id        INTEGER NOT NULL,
        hall_id           INTEGER NOT NULL,
        day_number        INTEGER NOT NULL,
        speaker_code      VARCHAR NOT NULL,
        slot_order_in_day INTEGER NOT NULL,
        original_name     VARCHAR NOT NULL,
        original_path     VARCHAR NOT NULL,
        stored_filename   VARCHAR NOT NULL,
        stored_path       VARCHAR NOT NULL,
        file_size         BIGINT NOT NULL,
        file_type         VARCHAR NOT NULL,
        upload_status     VARCHAR NOT NULL DEFAULT 'pending',
        upload_date       TIMESTAMP NOT NULL,
        processed_at      TIMESTAMP,
        error_message     VARCHAR,
        superseded_by     INTEGER
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_schedules_speaker ON schedules(speaker_id)",
    "CREATE INDEX IF NOT EXISTS idx_uploaded_files_status ON uploaded_files(upload_status)",
]


def rows_as_dicts(cur: duckdb.DuckDBPyConnection) -> List[Dict[str, Any]]:
    """Fetch the remaining rows of *cur* as column-name keyed dicts."""
    columns = [d[0] for d in cur.description]
    return [dict(zip(columns, row)) for row in cur.fetchall()]


class StoreClosedError(RuntimeError):
    """Raised when the store is used before ``open()`` or after ``close()``."""


class EntityStore:
    """Explicitly constructed handle over the portal's DuckDB database.

    Attributes:
        db_path: DuckDB file path, or ``":memory:"``.
        pool_size: Maximum number of cursors in use at once.
    """

    def __init__(self, db_path: str = ":memory:", pool_size: int = 10) -> None:
        self.db_path = db_path
        self.pool_size = pool_size
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._slots = threading.BoundedSemaphore(pool_size)
        self._write_lock = threading.RLock()

    # -----------------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------------

    def open(self) -> "EntityStore":
        """Connect and create the schema. Safe to call more than once."""
        if self._connection is not None:
            return self
        self._connection = duckdb.connect(self.db_path)
        for statement in _SCHEMA:
            self._connection.execute(statement)
        logger.info("[store] Opened db=%s pool_size=%d", self.db_path, self.pool_size)
        return self

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None
            logger.info("[store] Closed db=%s", self.db_path)

    @property
    def is_open(self) -> bool:
        return self._connection is not None

    def __enter__(self) -> "EntityStore":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    # -----------------------------------------------------------------------
    # Access
    # -----------------------------------------------------------------------

    @contextmanager
    def cursor(self) -> Iterator[duckdb.DuckDBPyConnection]:
        """Borrow a cursor from the pool for the duration of the block."""
        if self._connection is None:
            raise StoreClosedError("Entity store is not open")
        with self._slots:
            cur = self._connection.cursor()
            try:
                yield cur
            finally:
                cur.close()

    @contextmanager
    def transaction(self) -> Iterator[duckdb.DuckDBPyConnection]:
        """Run the block as one write transaction.

        Commits when the block exits normally and rolls back on any
        exception, which is then re-raised.
        """
        with self._write_lock, self.cursor() as cur:
            cur.begin()
            try:
                yield cur
            except BaseException:
                cur.rollback()
                raise
            cur.commit()

    def query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        with self.cursor() as cur:
            cur.execute(sql, list(params))
            return rows_as_dicts(cur)

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        rows = self.query(sql, params)
        return rows[0] if rows else None
