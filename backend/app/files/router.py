"""FastAPI router for stored presentation files."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse
from starlette.concurrency import run_in_threadpool

from app.dependencies import get_file_manager
from app.errors import NotFoundError

from .schemas import ProcessSummary, UploadedFile, UploadStatus
from .service import FileLifecycleManager

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])


@router.get("", response_model=List[UploadedFile])
def list_files(
    status: Optional[UploadStatus] = None,
    schedule_id: Optional[int] = None,
    manager: FileLifecycleManager = Depends(get_file_manager),
):
    """List uploads, optionally filtered by status or schedule entry."""
    return manager.list_files(status=status, schedule_id=schedule_id)


@router.post("/process", response_model=ProcessSummary)
async def process_files(manager: FileLifecycleManager = Depends(get_file_manager)):
    """Run one processing pass over pending uploads and return its summary.

    Returns ``already_running: true`` without doing work when another pass
    is in progress; that pass will pick up anything still pending.
    """
    summary = await run_in_threadpool(manager.process_pending)
    logger.info(
        "[files] Manual processing: processed=%d failed=%d already_running=%s",
        summary.processed, summary.failed, summary.already_running,
    )
    return summary


@router.get("/{file_id}", response_model=UploadedFile)
def get_file(file_id: int, manager: FileLifecycleManager = Depends(get_file_manager)):
    return manager.get_file(file_id)


@router.get("/{file_id}/download")
def download_file(file_id: int, manager: FileLifecycleManager = Depends(get_file_manager)):
    """Download a processed presentation.

    Raises:
        NotFoundError: Unknown file, superseded by a later upload, or nothing
            on disk at its canonical path.
    """
    metadata = manager.get_file(file_id)
    if metadata.superseded_by is not None:
        raise NotFoundError(
            f"File {file_id} was replaced on disk by upload {metadata.superseded_by}"
        )
    file_path = manager.canonical_path(metadata.model_dump())
    if not file_path.exists():
        raise NotFoundError(f"File {file_id} is not available on disk")
    return FileResponse(
        path=file_path,
        filename=metadata.stored_filename,
        media_type=metadata.file_type,
    )


@router.post("/{file_id}/reprocess", response_model=UploadedFile)
def reprocess_file(file_id: int, manager: FileLifecycleManager = Depends(get_file_manager)):
    """Re-queue a failed upload; the next processing pass retries it."""
    return manager.reprocess(file_id)


@router.delete("/{file_id}")
def delete_file(file_id: int, manager: FileLifecycleManager = Depends(get_file_manager)) -> dict:
    deleted = manager.delete_file(file_id)
    return {"success": True, "deleted": deleted.id}
