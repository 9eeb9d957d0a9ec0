"""Scheduling engine: conflict-free speaker/hall/slot assignment.

Invariant:
    Within a conference, a (hall, slot) pair hosts at most one session. The
    ``schedules`` table carries ``UNIQUE (conference_id, hall_id, slot_id)``
    and every insert or update runs in a write transaction, so the storage
    constraint decides the race between two concurrent bookings; exactly one
    of them commits and the other surfaces as ``ConflictError``.

    A speaker may not hold two sessions with the same title in the same hall
    on the same day. Uploads locate their session by those descriptive fields,
    so the combination has to identify a single entry.

Listing order:
    hall name, day number, slot order, then entry id.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import duckdb

from app.errors import ConflictError, NotFoundError
from app.store import EntityStore, rows_as_dicts

from .schemas import ScheduleCreate, ScheduleRow, ScheduleUpdate

logger = logging.getLogger(__name__)

_JOINED_SELECT = """
    SELECT
        sch.id AS schedule_id,
        sch.conference_id,
        sch.session_title,
        sch.session_description,
        sch.status,
        sp.id AS speaker_id,
        sp.speaker_code,
        sp.full_name AS speaker_name,
        sp.title AS speaker_title,
        sp.bio AS speaker_bio,
        sp.email,
        sp.phone,
        h.id AS hall_id,
        h.name AS hall_name,
        h.capacity,
        h.location,
        ts.id AS slot_id,
        ts.day_number,
        ts.start_time,
        ts.end_time,
        ts.slot_name,
        ts.slot_order
    FROM schedules sch
    JOIN speakers sp ON sch.speaker_id = sp.id
    JOIN halls h ON sch.hall_id = h.id
    JOIN time_slots ts ON sch.slot_id = ts.id
"""

_ORDER_BY = "ORDER BY h.name, ts.day_number, ts.slot_order, sch.id"


class SchedulingEngine:
    """Creates, edits, deletes and lists schedule entries."""

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    # -----------------------------------------------------------------------
    # Writes
    # -----------------------------------------------------------------------

    def create_schedule(self, body: ScheduleCreate) -> int:
        """Book a speaker into a hall and slot.

        Returns:
            The new schedule entry id.

        Raises:
            NotFoundError: Speaker, hall or slot does not exist (or the hall
                or slot belongs to another conference).
            ConflictError: The hall already hosts a session in that slot, or
                the speaker already has a same-titled session there that day.
        """
        now = datetime.utcnow()
        try:
            with self._store.transaction() as cur:
                day_number = self._check_references(
                    cur, body.speaker_id, body.hall_id, body.slot_id, body.conference_id
                )
                self._check_title_unique(
                    cur, body.speaker_id, body.hall_id, day_number, body.session_title
                )
                cur.execute(
                    """
                    INSERT INTO schedules
                      (conference_id, speaker_id, hall_id, slot_id, session_title,
                       session_description, status, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, 'scheduled', ?, ?)
                    RETURNING id
                    """,
                    [
                        body.conference_id, body.speaker_id, body.hall_id, body.slot_id,
                        body.session_title, body.session_description, now, now,
                    ],
                )
                (schedule_id,) = cur.fetchone()
        except duckdb.ConstraintException:
            logger.info(
                "[schedule] Rejected double booking hall=%s slot=%s conference=%s",
                body.hall_id, body.slot_id, body.conference_id,
            )
            raise ConflictError(
                f"Hall {body.hall_id} already has a session in slot {body.slot_id}"
            )

        logger.info(
            "[schedule] Created %s: speaker=%s hall=%s slot=%s",
            schedule_id, body.speaker_id, body.hall_id, body.slot_id,
        )
        return schedule_id

    def update_schedule(self, schedule_id: int, body: ScheduleUpdate) -> ScheduleRow:
        """Apply *body* to an entry, re-checking references and conflicts.

        Raises:
            NotFoundError: Unknown entry, or a changed reference does not resolve.
            ConflictError: The new hall/slot pair is taken by another entry.
        """
        fields = body.model_dump(exclude_unset=True, exclude_none=True)
        try:
            with self._store.transaction() as cur:
                cur.execute("SELECT * FROM schedules WHERE id = ?", [schedule_id])
                rows = rows_as_dicts(cur)
                if not rows:
                    raise NotFoundError(f"Schedule entry {schedule_id} not found")
                current = rows[0]
                fields = {k: v for k, v in fields.items() if current.get(k) != v}
                merged = {**current, **fields}

                day_number = self._check_references(
                    cur, merged["speaker_id"], merged["hall_id"],
                    merged["slot_id"], merged["conference_id"],
                )
                cur.execute(
                    """
                    SELECT id FROM schedules
                    WHERE conference_id = ? AND hall_id = ? AND slot_id = ? AND id <> ?
                    """,
                    [merged["conference_id"], merged["hall_id"], merged["slot_id"], schedule_id],
                )
                if cur.fetchone() is not None:
                    raise ConflictError(
                        f"Hall {merged['hall_id']} already has a session in slot {merged['slot_id']}"
                    )
                self._check_title_unique(
                    cur, merged["speaker_id"], merged["hall_id"], day_number,
                    merged["session_title"], exclude_id=schedule_id,
                )

                if fields:
                    fields["updated_at"] = datetime.utcnow()
                    set_clause = ", ".join(f"{k} = ?" for k in fields)
                    cur.execute(
                        f"UPDATE schedules SET {set_clause} WHERE id = ?",
                        list(fields.values()) + [schedule_id],
                    )
        except duckdb.ConstraintException:
            raise ConflictError(f"Schedule entry {schedule_id} conflicts with another booking")

        logger.info("[schedule] Updated %s: %s", schedule_id, sorted(fields))
        return self.get_schedule(schedule_id)

    def delete_schedule(self, schedule_id: int) -> None:
        """Delete an entry. Its uploaded files are left in place."""
        with self._store.transaction() as cur:
            cur.execute("DELETE FROM schedules WHERE id = ? RETURNING id", [schedule_id])
            if cur.fetchone() is None:
                raise NotFoundError(f"Schedule entry {schedule_id} not found")
            cur.execute(
                "SELECT COUNT(*) FROM uploaded_files WHERE schedule_id = ?", [schedule_id]
            )
            (orphaned,) = cur.fetchone()

        if orphaned:
            logger.warning(
                "[schedule] Deleted %s; %d uploaded file(s) now orphaned", schedule_id, orphaned
            )
        else:
            logger.info("[schedule] Deleted %s", schedule_id)

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    def get_schedule(self, schedule_id: int) -> ScheduleRow:
        row = self._store.query_one(f"{_JOINED_SELECT} WHERE sch.id = ?", [schedule_id])
        if row is None:
            raise NotFoundError(f"Schedule entry {schedule_id} not found")
        return ScheduleRow(**row)

    def list_schedule(
        self,
        conference_id: Optional[int] = None,
        hall_id: Optional[int] = None,
        day_number: Optional[int] = None,
        speaker_id: Optional[int] = None,
    ) -> List[ScheduleRow]:
        """List entries matching every given filter, in display order."""
        filters: Dict[str, Any] = {
            "sch.conference_id": conference_id,
            "sch.hall_id": hall_id,
            "ts.day_number": day_number,
            "sch.speaker_id": speaker_id,
        }
        clauses = [f"{column} = ?" for column, value in filters.items() if value is not None]
        params = [value for value in filters.values() if value is not None]
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._store.query(f"{_JOINED_SELECT} {where} {_ORDER_BY}", params)
        return [ScheduleRow(**r) for r in rows]

    # -----------------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------------

    @staticmethod
    def _check_references(
        cur: duckdb.DuckDBPyConnection,
        speaker_id: int,
        hall_id: int,
        slot_id: int,
        conference_id: int,
    ) -> int:
        """Resolve speaker, hall and slot; return the slot's day number."""
        cur.execute("SELECT id FROM speakers WHERE id = ?", [speaker_id])
        if cur.fetchone() is None:
            raise NotFoundError(f"Speaker {speaker_id} not found")

        cur.execute(
            "SELECT id FROM halls WHERE id = ? AND conference_id = ?", [hall_id, conference_id]
        )
        if cur.fetchone() is None:
            raise NotFoundError(f"Hall {hall_id} not found in conference {conference_id}")

        cur.execute(
            "SELECT day_number FROM time_slots WHERE id = ? AND conference_id = ?",
            [slot_id, conference_id],
        )
        row = cur.fetchone()
        if row is None:
            raise NotFoundError(f"Time slot {slot_id} not found in conference {conference_id}")
        return row[0]

    @staticmethod
    def _check_title_unique(
        cur: duckdb.DuckDBPyConnection,
        speaker_id: int,
        hall_id: int,
        day_number: int,
        session_title: str,
        exclude_id: Optional[int] = None,
    ) -> None:
        cur.execute(
            """
            SELECT sch.id
            FROM schedules sch
            JOIN time_slots ts ON sch.slot_id = ts.id
            WHERE sch.speaker_id = ? AND sch.hall_id = ? AND ts.day_number = ?
              AND sch.session_title = ? AND sch.id <> ?
            """,
            [speaker_id, hall_id, day_number, session_title, exclude_id or -1],
        )
        if cur.fetchone() is not None:
            raise ConflictError(
                f"Speaker {speaker_id} already has a session titled '{session_title}' "
                f"in hall {hall_id} on day {day_number}"
            )
