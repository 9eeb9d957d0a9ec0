"""CatalogService: conferences, halls, time slots and speakers."""
import logging
from datetime import datetime
from typing import List, Optional

import duckdb

from app.errors import ConflictError, NotFoundError, ValidationError
from app.store import EntityStore, rows_as_dicts

from .schemas import (
    Conference,
    ConferenceCreate,
    Hall,
    HallCreate,
    HallUpdate,
    Speaker,
    SpeakerCreate,
    SpeakerProfile,
    SpeakerSession,
    SpeakerUpdate,
    TimeSlot,
    TimeSlotCreate,
)

logger = logging.getLogger(__name__)

SPEAKER_CODE_PREFIX = "SP"


def format_speaker_code(speaker_id: int) -> str:
    """Return the portal login code for a speaker id (``7`` -> ``SP007``)."""
    return f"{SPEAKER_CODE_PREFIX}{speaker_id:03d}"


class CatalogService:
    """Reference data the schedule is built from."""

    def __init__(self, store: EntityStore) -> None:
        self._store = store

    # -----------------------------------------------------------------------
    # Conferences
    # -----------------------------------------------------------------------

    def create_conference(self, body: ConferenceCreate) -> Conference:
        with self._store.transaction() as cur:
            cur.execute(
                """
                INSERT INTO conferences (name, start_date, end_date, total_days, venue)
                VALUES (?, ?, ?, ?, ?)
                RETURNING *
                """,
                [body.name, body.start_date, body.end_date, body.total_days, body.venue],
            )
            row = rows_as_dicts(cur)[0]
        logger.info("[catalog] Created conference %s (%s days)", row["id"], row["total_days"])
        return Conference(**row)

    def list_conferences(self) -> List[Conference]:
        rows = self._store.query(
            "SELECT * FROM conferences ORDER BY start_date DESC NULLS LAST, id DESC"
        )
        return [Conference(**r) for r in rows]

    def get_conference(self, conference_id: int) -> Conference:
        row = self._store.query_one("SELECT * FROM conferences WHERE id = ?", [conference_id])
        if row is None:
            raise NotFoundError(f"Conference {conference_id} not found")
        return Conference(**row)

    # -----------------------------------------------------------------------
    # Halls
    # -----------------------------------------------------------------------

    def create_hall(self, body: HallCreate) -> Hall:
        self.get_conference(body.conference_id)
        try:
            with self._store.transaction() as cur:
                cur.execute(
                    """
                    INSERT INTO halls (conference_id, name, capacity, location)
                    VALUES (?, ?, ?, ?)
                    RETURNING *
                    """,
                    [body.conference_id, body.name, body.capacity, body.location],
                )
                row = rows_as_dicts(cur)[0]
        except duckdb.ConstraintException:
            raise ConflictError(f"Hall '{body.name}' already exists in this conference")
        logger.info("[catalog] Created hall %s '%s'", row["id"], row["name"])
        return Hall(**row)

    def update_hall(self, hall_id: int, body: HallUpdate) -> Hall:
        fields = body.model_dump(exclude_unset=True, exclude_none=True)
        hall = self.get_hall(hall_id)
        if not fields:
            return hall
        set_clause = ", ".join(f"{k} = ?" for k in fields)
        try:
            with self._store.transaction() as cur:
                cur.execute(
                    f"UPDATE halls SET {set_clause} WHERE id = ? RETURNING *",
                    list(fields.values()) + [hall_id],
                )
                row = rows_as_dicts(cur)[0]
        except duckdb.ConstraintException:
            raise ConflictError(f"Hall '{fields.get('name')}' already exists in this conference")
        return Hall(**row)

    def delete_hall(self, hall_id: int) -> None:
        """Delete a hall that no schedule entry references."""
        with self._store.transaction() as cur:
            cur.execute("SELECT id FROM halls WHERE id = ?", [hall_id])
            if cur.fetchone() is None:
                raise NotFoundError(f"Hall {hall_id} not found")
            cur.execute("SELECT COUNT(*) FROM schedules WHERE hall_id = ?", [hall_id])
            (in_use,) = cur.fetchone()
            if in_use:
                raise ConflictError(
                    f"Hall {hall_id} hosts {in_use} scheduled session(s); remove them first"
                )
            cur.execute("DELETE FROM halls WHERE id = ?", [hall_id])
        logger.info("[catalog] Deleted hall %s", hall_id)

    def get_hall(self, hall_id: int) -> Hall:
        row = self._store.query_one("SELECT * FROM halls WHERE id = ?", [hall_id])
        if row is None:
            raise NotFoundError(f"Hall {hall_id} not found")
        return Hall(**row)

    def list_halls(self, conference_id: int) -> List[Hall]:
        rows = self._store.query(
            "SELECT * FROM halls WHERE conference_id = ? ORDER BY name", [conference_id]
        )
        return [Hall(**r) for r in rows]

    # -----------------------------------------------------------------------
    # Time slots
    # -----------------------------------------------------------------------

    def create_time_slot(self, body: TimeSlotCreate) -> TimeSlot:
        """Add a slot, keeping ``slot_order`` monotonic in (day, start_time).

        Raises:
            NotFoundError: Unknown conference.
            ValidationError: Day outside the conference, or an order that
                would sort the slot before an earlier one (or after a later one).
            ConflictError: ``slot_order`` already taken.
        """
        conference = self.get_conference(body.conference_id)
        if body.day_number > conference.total_days:
            raise ValidationError(
                f"Day {body.day_number} is outside conference {conference.id} "
                f"({conference.total_days} day(s))"
            )

        key = (body.day_number, body.start_time)
        with self._store.transaction() as cur:
            cur.execute(
                "SELECT day_number, start_time, slot_order FROM time_slots WHERE conference_id = ?",
                [body.conference_id],
            )
            for existing in rows_as_dicts(cur):
                if existing["slot_order"] == body.slot_order:
                    raise ConflictError(f"Slot order {body.slot_order} is already in use")
                other = (existing["day_number"], existing["start_time"])
                if other == key or (other < key) != (existing["slot_order"] < body.slot_order):
                    raise ValidationError(
                        f"Slot order {body.slot_order} is inconsistent with slot "
                        f"#{existing['slot_order']} (day {other[0]}, {other[1]})"
                    )
            cur.execute(
                """
                INSERT INTO time_slots
                  (conference_id, day_number, start_time, end_time, slot_name, slot_order)
                VALUES (?, ?, ?, ?, ?, ?)
                RETURNING *
                """,
                [
                    body.conference_id, body.day_number, body.start_time,
                    body.end_time, body.slot_name, body.slot_order,
                ],
            )
            row = rows_as_dicts(cur)[0]
        return TimeSlot(**row)

    def get_time_slot(self, slot_id: int) -> TimeSlot:
        row = self._store.query_one("SELECT * FROM time_slots WHERE id = ?", [slot_id])
        if row is None:
            raise NotFoundError(f"Time slot {slot_id} not found")
        return TimeSlot(**row)

    def list_time_slots(self, conference_id: int) -> List[TimeSlot]:
        rows = self._store.query(
            "SELECT * FROM time_slots WHERE conference_id = ? ORDER BY day_number, slot_order",
            [conference_id],
        )
        return [TimeSlot(**r) for r in rows]

    # -----------------------------------------------------------------------
    # Speakers
    # -----------------------------------------------------------------------

    def create_speaker(self, body: SpeakerCreate) -> Speaker:
        """Insert a speaker with the next code.

        Ids come from a sequence, so a deleted speaker's code is never handed
        to someone else.
        """
        with self._store.transaction() as cur:
            cur.execute("SELECT nextval('speakers_seq')")
            (speaker_id,) = cur.fetchone()
            cur.execute(
                """
                INSERT INTO speakers
                  (id, speaker_code, full_name, email, phone, title, bio, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                RETURNING *
                """,
                [
                    speaker_id, format_speaker_code(speaker_id), body.full_name,
                    body.email, body.phone, body.title, body.bio, datetime.utcnow(),
                ],
            )
            row = rows_as_dicts(cur)[0]
        logger.info("[catalog] Created speaker %s (%s)", row["speaker_code"], row["full_name"])
        return Speaker(**row)

    def list_speakers(self) -> List[Speaker]:
        rows = self._store.query("SELECT * FROM speakers ORDER BY speaker_code")
        return [Speaker(**r) for r in rows]

    def get_speaker(self, speaker_id: int) -> Speaker:
        row = self._store.query_one("SELECT * FROM speakers WHERE id = ?", [speaker_id])
        if row is None:
            raise NotFoundError(f"Speaker {speaker_id} not found")
        return Speaker(**row)

    def get_speaker_by_code(self, speaker_code: str) -> Speaker:
        row = self._store.query_one(
            "SELECT * FROM speakers WHERE speaker_code = ?", [speaker_code]
        )
        if row is None:
            raise NotFoundError(f"Speaker '{speaker_code}' not found")
        return Speaker(**row)

    def update_speaker(self, speaker_id: int, body: SpeakerUpdate) -> Speaker:
        fields = body.model_dump(exclude_unset=True, exclude_none=True)
        speaker = self.get_speaker(speaker_id)
        if not fields:
            return speaker
        set_clause = ", ".join(f"{k} = ?" for k in fields)
        with self._store.transaction() as cur:
            cur.execute(
                f"UPDATE speakers SET {set_clause} WHERE id = ? RETURNING *",
                list(fields.values()) + [speaker_id],
            )
            row = rows_as_dicts(cur)[0]
        return Speaker(**row)

    def delete_speaker(self, speaker_id: int) -> int:
        """Delete a speaker together with their schedule entries.

        Uploaded files of those entries are left in place, the same as a
        direct schedule deletion.

        Returns:
            Number of schedule entries removed.
        """
        with self._store.transaction() as cur:
            cur.execute("SELECT id FROM speakers WHERE id = ?", [speaker_id])
            if cur.fetchone() is None:
                raise NotFoundError(f"Speaker {speaker_id} not found")
            cur.execute("DELETE FROM schedules WHERE speaker_id = ? RETURNING id", [speaker_id])
            removed = len(cur.fetchall())
            cur.execute("DELETE FROM speakers WHERE id = ?", [speaker_id])
        logger.info("[catalog] Deleted speaker %s and %d session(s)", speaker_id, removed)
        return removed

    # -----------------------------------------------------------------------
    # Speaker portal
    # -----------------------------------------------------------------------

    def speaker_profile(self, speaker_code: Optional[str]) -> SpeakerProfile:
        """Look a speaker up by code and return their sessions.

        Raises:
            ValidationError: Blank code.
            NotFoundError: Unknown code.
        """
        speaker_code = (speaker_code or "").strip()
        if not speaker_code:
            raise ValidationError("Speaker code is required")
        speaker = self.get_speaker_by_code(speaker_code)
        rows = self._store.query(
            """
            SELECT
                sch.id AS schedule_id,
                sch.session_title,
                h.name AS hall_name,
                h.capacity,
                ts.day_number,
                ts.start_time,
                ts.end_time,
                ts.slot_name
            FROM schedules sch
            JOIN halls h ON sch.hall_id = h.id
            JOIN time_slots ts ON sch.slot_id = ts.id
            WHERE sch.speaker_id = ?
            ORDER BY ts.day_number, ts.start_time
            """,
            [speaker.id],
        )
        sessions = [SpeakerSession(**r) for r in rows]
        return SpeakerProfile(speaker=speaker, schedule=sessions, total_sessions=len(sessions))
