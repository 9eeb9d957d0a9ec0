"""Upload resolver: from speaker code and session descriptor to a stored file.

Flow for one upload:
    1. Check the file: ``.ppt``/``.pptx`` only, non-empty, within the size limit.
    2. Resolve the speaker by code and the schedule entry by hall name, day
       number and exact session title (or by an explicit schedule id).
    3. Derive the slot ordinal and the canonical name and directory.
    4. Write the bytes to the staging area (temp file, fsync, rename).
    5. Insert the ``uploaded_files`` row as ``pending``.

The row is only written once the staged file is on disk; if the insert
fails the staged file is removed again.
"""
import logging
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from app.config import StorageSettings
from app.errors import NotFoundError, ValidationError
from app.files.schemas import PRESENTATION_MIME_TYPES, UploadedFile, UploadStatus
from app.store import EntityStore, rows_as_dicts

from .paths import (
    compose_stored_filename,
    compose_stored_path,
    slot_order_in_day,
    split_filename,
)
from .schemas import ResolvedSession

logger = logging.getLogger(__name__)

_RESOLVE_SELECT = """
    SELECT
        sch.id AS schedule_id,
        sch.speaker_id,
        sch.hall_id,
        h.name AS hall_name,
        ts.day_number,
        sch.session_title,
        ts.slot_order,
        c.total_days
    FROM schedules sch
    JOIN halls h ON sch.hall_id = h.id
    JOIN time_slots ts ON sch.slot_id = ts.id
    JOIN conferences c ON sch.conference_id = c.id
"""


class UploadResolver:
    """Accepts presentation uploads and records them as pending files."""

    def __init__(self, store: EntityStore, storage: StorageSettings) -> None:
        self._store = store
        self._storage = storage

    @property
    def staging_dir(self) -> Path:
        return Path(self._storage.base_dir) / self._storage.staging_dir

    # -----------------------------------------------------------------------
    # Validation & resolution
    # -----------------------------------------------------------------------

    def validate_file(self, filename: str, size_bytes: int) -> str:
        """Check type and size of an upload; return its extension.

        Raises:
            ValidationError: Disallowed extension, empty file, or too large.
        """
        _, ext = split_filename(filename or "")
        allowed = self._storage.allowed_extensions
        if ext.lower() not in allowed:
            raise ValidationError(
                f"Only {', '.join(allowed)} files are accepted (got '{ext or filename}')"
            )
        if size_bytes <= 0:
            raise ValidationError("Uploaded file is empty")
        if size_bytes > self._storage.max_upload_bytes:
            raise ValidationError(
                f"File size ({size_bytes} bytes) exceeds limit of "
                f"{self._storage.max_upload_mb}MB"
            )
        return ext

    def resolve_session(
        self,
        speaker_code: str,
        hall_name: Optional[str] = None,
        day_number: Optional[int] = None,
        session_title: Optional[str] = None,
        schedule_id: Optional[int] = None,
    ) -> ResolvedSession:
        """Find the schedule entry an upload belongs to.

        With *schedule_id* the entry is taken directly (it must belong to the
        speaker). Otherwise hall name, day number and the exact,
        case-sensitive session title must match exactly one entry.

        Raises:
            NotFoundError: Unknown speaker, or no unique matching entry.
            ValidationError: Neither a schedule id nor a full descriptor given.
        """
        speaker = self._store.query_one(
            "SELECT id, speaker_code FROM speakers WHERE speaker_code = ?", [speaker_code]
        )
        if speaker is None:
            raise NotFoundError(f"Speaker '{speaker_code}' not found")

        if schedule_id is not None:
            rows = self._store.query(
                f"{_RESOLVE_SELECT} WHERE sch.id = ? AND sch.speaker_id = ?",
                [schedule_id, speaker["id"]],
            )
        else:
            if not hall_name or day_number is None or not session_title:
                raise ValidationError(
                    "hallName, dayNumber and sessionTitle are required without scheduleId"
                )
            rows = self._store.query(
                f"""{_RESOLVE_SELECT}
                WHERE sch.speaker_id = ? AND h.name = ? AND ts.day_number = ?
                  AND sch.session_title = ?
                """,
                [speaker["id"], hall_name, day_number, session_title],
            )

        if len(rows) != 1:
            if rows:
                logger.warning(
                    "[uploads] %d sessions match speaker=%s hall=%s day=%s title=%r",
                    len(rows), speaker_code, hall_name, day_number, session_title,
                )
            raise NotFoundError(
                f"No unique session found for speaker '{speaker_code}' matching the upload"
            )

        row = rows[0]
        return ResolvedSession(
            speaker_code=speaker["speaker_code"],
            slot_order_in_day=slot_order_in_day(row["slot_order"], row["total_days"]),
            **row,
        )

    # -----------------------------------------------------------------------
    # Upload
    # -----------------------------------------------------------------------

    def upload_presentation(
        self,
        speaker_code: str,
        content: bytes,
        original_filename: str,
        hall_name: Optional[str] = None,
        day_number: Optional[int] = None,
        session_title: Optional[str] = None,
        schedule_id: Optional[int] = None,
    ) -> UploadedFile:
        """Stage a presentation and record it as a pending upload.

        Returns:
            The new ``uploaded_files`` row.
        """
        ext = self.validate_file(original_filename, len(content))
        session = self.resolve_session(
            speaker_code,
            hall_name=hall_name,
            day_number=day_number,
            session_title=session_title,
            schedule_id=schedule_id,
        )

        stored_filename = compose_stored_filename(
            session.slot_order_in_day, session.speaker_code, original_filename
        )
        stored_path = compose_stored_path(
            session.hall_name, session.day_number, self._storage.uploads_dir
        )

        staged = self._stage(content, stored_filename)
        try:
            with self._store.transaction() as cur:
                cur.execute(
                    """
                    INSERT INTO uploaded_files
                      (schedule_id, speaker_id, hall_id, day_number, speaker_code,
                       slot_order_in_day, original_name, original_path, stored_filename,
                       stored_path, file_size, file_type, upload_status, upload_date)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    RETURNING *
                    """,
                    [
                        session.schedule_id, session.speaker_id, session.hall_id,
                        session.day_number, session.speaker_code, session.slot_order_in_day,
                        original_filename, str(staged), stored_filename, stored_path,
                        len(content), PRESENTATION_MIME_TYPES.get(ext.lower(), "application/octet-stream"),
                        UploadStatus.PENDING.value, datetime.utcnow(),
                    ],
                )
                row = rows_as_dicts(cur)[0]
        except Exception:
            staged.unlink(missing_ok=True)
            raise

        logger.info(
            "[uploads] Staged %s for schedule %s -> %s%s (%d bytes)",
            original_filename, session.schedule_id, stored_path, stored_filename, len(content),
        )
        return UploadedFile(**row)

    def list_speaker_files(self, speaker_code: str) -> List[UploadedFile]:
        """Return a speaker's uploads, newest first."""
        speaker = self._store.query_one(
            "SELECT id FROM speakers WHERE speaker_code = ?", [speaker_code]
        )
        if speaker is None:
            raise NotFoundError(f"Speaker '{speaker_code}' not found")
        rows = self._store.query(
            "SELECT * FROM uploaded_files WHERE speaker_id = ? ORDER BY upload_date DESC, id DESC",
            [speaker["id"]],
        )
        return [UploadedFile(**r) for r in rows]

    # -----------------------------------------------------------------------
    # Internal
    # -----------------------------------------------------------------------

    def _stage(self, content: bytes, stored_filename: str) -> Path:
        """Durably write *content* into the staging area and return its path."""
        self.staging_dir.mkdir(parents=True, exist_ok=True)
        target = self.staging_dir / f"{uuid.uuid4().hex}_{stored_filename}"
        partial = target.with_name(target.name + ".part")
        with partial.open("wb") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(partial, target)
        return target
