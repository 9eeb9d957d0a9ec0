"""File lifecycle manager for presentation uploads.

Moves staged uploads to their canonical location and tracks their status:

    pending --copy ok--> processed
    pending --error----> failed      (re-triggered only by an operator)

Processing copies rather than moves, verifies the copy by size, and only
then (optionally) removes the staged source, so a pass can be repeated
safely. Files are stored in: {base_dir}/uploads/{hall}/Day_{n}/{name}

Re-uploading the same filename for the same session maps to the same
canonical file. The latest processed copy replaces it on disk and earlier
rows get ``superseded_by`` set to the row that replaced them.
"""
import logging
import shutil
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import duckdb

from app.config import StorageSettings
from app.errors import NotFoundError, ValidationError
from app.store import EntityStore

from .schemas import ProcessSummary, UploadedFile, UploadStatus

logger = logging.getLogger(__name__)


class FileLifecycleManager:
    """Processes pending uploads and deletes stored files.

    At most one ``process_pending`` pass runs at a time. A call that arrives
    while a pass is active returns straight away and makes the active pass
    scan once more before finishing, so rows staged meanwhile are picked up.
    """

    def __init__(self, store: EntityStore, storage: StorageSettings) -> None:
        self._store = store
        self._storage = storage
        self._state_lock = threading.Lock()
        self._running = False
        self._rerun = False

    @property
    def base_dir(self) -> Path:
        return Path(self._storage.base_dir)

    def canonical_path(self, row: Dict[str, Any]) -> Path:
        return self.base_dir / row["stored_path"] / row["stored_filename"]

    # -----------------------------------------------------------------------
    # Processing
    # -----------------------------------------------------------------------

    def process_pending(self) -> ProcessSummary:
        """Copy every pending upload into place.

        One bad row never stops the batch: it is marked ``failed`` with the
        reason and the pass moves on.

        Returns:
            Counts of processed and failed rows, or ``already_running`` when
            another pass holds the guard.
        """
        with self._state_lock:
            if self._running:
                self._rerun = True
                logger.info("[files] Processing already in progress; queued another pass")
                return ProcessSummary(already_running=True)
            self._running = True

        summary = ProcessSummary()
        try:
            while True:
                pending = self._store.query(
                    "SELECT * FROM uploaded_files WHERE upload_status = ? ORDER BY id",
                    [UploadStatus.PENDING.value],
                )
                for row in pending:
                    if self._process_one(row):
                        summary.processed += 1
                    else:
                        summary.failed += 1
                with self._state_lock:
                    if not self._rerun:
                        self._running = False
                        break
                    self._rerun = False
        except BaseException:
            with self._state_lock:
                self._running = False
                self._rerun = False
            raise

        if summary.processed or summary.failed:
            logger.info(
                "[files] Processed %d upload(s), %d failed", summary.processed, summary.failed
            )
        return summary

    def _process_one(self, row: Dict[str, Any]) -> bool:
        file_id = row["id"]
        source = Path(row["original_path"])
        target = self.canonical_path(row)

        if not source.exists():
            logger.warning("[files] Staged source missing for file %s: %s", file_id, source)
            return self._mark(row, UploadStatus.FAILED, f"Staged file missing: {source}")

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            if source.resolve() == target.resolve():
                logger.debug("[files] File %s already in place: %s", file_id, target)
            else:
                shutil.copyfile(source, target)
                copied, expected = target.stat().st_size, source.stat().st_size
                if copied != expected:
                    raise OSError(f"Copied {copied} of {expected} bytes to {target}")
                if self._storage.remove_staging_after_copy:
                    source.unlink()
        except OSError as exc:
            logger.error("[files] Processing file %s failed: %s", file_id, exc)
            return self._mark(row, UploadStatus.FAILED, str(exc))

        logger.info("[files] File %s stored at %s", file_id, target)
        return self._mark(row, UploadStatus.PROCESSED)

    def _mark(self, row: Dict[str, Any], status: UploadStatus, error: Optional[str] = None) -> bool:
        """Record the outcome for one row; True when it ended up processed.

        A processed row now owns its canonical file, so earlier uploads at
        the same location are marked as superseded by it.
        """
        file_id = row["id"]
        processed = status is UploadStatus.PROCESSED
        processed_at = datetime.utcnow() if processed else None
        try:
            with self._store.transaction() as cur:
                cur.execute(
                    """
                    UPDATE uploaded_files
                    SET upload_status = ?, processed_at = ?, error_message = ?,
                        superseded_by = NULL
                    WHERE id = ?
                    """,
                    [status.value, processed_at, error, file_id],
                )
                if processed:
                    cur.execute(
                        """
                        UPDATE uploaded_files
                        SET superseded_by = ?
                        WHERE stored_path = ? AND stored_filename = ?
                          AND id <> ? AND upload_status = ?
                        RETURNING id
                        """,
                        [
                            file_id, row["stored_path"], row["stored_filename"],
                            file_id, UploadStatus.PROCESSED.value,
                        ],
                    )
                    replaced = [r[0] for r in cur.fetchall()]
                    if replaced:
                        logger.info(
                            "[files] File %s replaced earlier upload(s) %s on disk",
                            file_id, replaced,
                        )
        except duckdb.Error:
            logger.exception("[files] Could not record status %s for file %s", status.value, file_id)
            return False
        return status is UploadStatus.PROCESSED

    # -----------------------------------------------------------------------
    # Operator actions
    # -----------------------------------------------------------------------

    def reprocess(self, file_id: int) -> UploadedFile:
        """Put a failed upload back into the pending queue.

        Raises:
            NotFoundError: Unknown file id.
            ValidationError: The upload is not in the failed state.
        """
        current = self.get_file(file_id)
        if current.upload_status is not UploadStatus.FAILED:
            raise ValidationError(
                f"File {file_id} is {current.upload_status.value}; only failed uploads can be reprocessed"
            )
        with self._store.transaction() as cur:
            cur.execute(
                "UPDATE uploaded_files SET upload_status = ?, error_message = NULL WHERE id = ?",
                [UploadStatus.PENDING.value, file_id],
            )
        logger.info("[files] File %s queued for reprocessing", file_id)
        return self.get_file(file_id)

    def delete_file(self, file_id: int) -> UploadedFile:
        """Delete an upload's row and, best effort, its files on disk.

        A missing file on disk is logged and ignored; the row is always
        removed. The canonical file is kept while another row that has not
        been superseded still points at the same location.

        Raises:
            NotFoundError: Unknown file id.
        """
        with self._store.transaction() as cur:
            cur.execute("DELETE FROM uploaded_files WHERE id = ? RETURNING *", [file_id])
            columns = [d[0] for d in cur.description]
            deleted = cur.fetchone()
            if deleted is None:
                raise NotFoundError(f"File {file_id} not found")
            row = dict(zip(columns, deleted))
            cur.execute(
                """
                SELECT COUNT(*) FROM uploaded_files
                WHERE stored_path = ? AND stored_filename = ?
                  AND superseded_by IS NULL
                """,
                [row["stored_path"], row["stored_filename"]],
            )
            (shared,) = cur.fetchone()

        paths = [Path(row["original_path"])]
        if shared:
            logger.info(
                "[files] Keeping %s; still referenced by %d other upload(s)",
                self.canonical_path(row), shared,
            )
        else:
            paths.append(self.canonical_path(row))
        for path in paths:
            self._remove_quietly(path)

        logger.info("[files] Deleted file %s (%s)", file_id, row["original_name"])
        return UploadedFile(**row)

    @staticmethod
    def _remove_quietly(path: Path) -> None:
        try:
            path.unlink()
            logger.info("[files] Removed %s", path)
        except FileNotFoundError:
            logger.info("[files] %s already absent", path)
        except OSError as exc:
            logger.warning("[files] Could not remove %s: %s", path, exc)

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def get_file(self, file_id: int) -> UploadedFile:
        row = self._store.query_one("SELECT * FROM uploaded_files WHERE id = ?", [file_id])
        if row is None:
            raise NotFoundError(f"File {file_id} not found")
        return UploadedFile(**row)

    def list_files(
        self,
        status: Optional[UploadStatus] = None,
        schedule_id: Optional[int] = None,
    ) -> List[UploadedFile]:
        clauses, params = [], []
        if status is not None:
            clauses.append("upload_status = ?")
            params.append(status.value)
        if schedule_id is not None:
            clauses.append("schedule_id = ?")
            params.append(schedule_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self._store.query(f"SELECT * FROM uploaded_files {where} ORDER BY id", params)
        return [UploadedFile(**r) for r in rows]
