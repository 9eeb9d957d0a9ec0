"""FastAPI router for presentation uploads."""
import logging
import os
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile

from app.dependencies import get_file_manager, get_upload_resolver
from app.files.schemas import UploadedFile
from app.files.service import FileLifecycleManager

from .schemas import UploadResponse
from .service import UploadResolver

logger = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])


def _upload_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, os.SEEK_END)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


@router.post("/uploads/presentation", response_model=UploadResponse)
def upload_presentation(
    background_tasks: BackgroundTasks,
    presentation: UploadFile = File(...),
    speakerCode: str = Form(...),
    hallName: Optional[str] = Form(None),
    dayNumber: Optional[int] = Form(None),
    sessionTitle: Optional[str] = Form(None),
    scheduleId: Optional[int] = Form(None),
    resolver: UploadResolver = Depends(get_upload_resolver),
    manager: FileLifecycleManager = Depends(get_file_manager),
) -> UploadResponse:
    """Upload a presentation for one of the speaker's sessions.

    The session is identified by hall name, day number and exact session
    title, or directly by ``scheduleId``. Only .ppt/.pptx files up to the
    configured size limit are accepted.

    The file is staged and recorded as pending; copying it to its canonical
    location happens in a background processing pass.

    Raises:
        ValidationError (400): Wrong file type, empty or oversized file.
        NotFoundError (404): Unknown speaker or no matching session.
    """
    filename = presentation.filename or ""
    # Type and size are checked against the spooled upload before it is
    # pulled into memory.
    resolver.validate_file(filename, _upload_size(presentation))
    content = presentation.file.read()
    uploaded = resolver.upload_presentation(
        speaker_code=speakerCode,
        content=content,
        original_filename=filename,
        hall_name=hallName,
        day_number=dayNumber,
        session_title=sessionTitle,
        schedule_id=scheduleId,
    )
    background_tasks.add_task(manager.process_pending)

    return UploadResponse(
        success=True,
        message="File uploaded successfully!",
        file_id=uploaded.id,
        stored_filename=uploaded.stored_filename,
        stored_path=uploaded.stored_path,
    )


@router.get("/speakers/by-code/{speaker_code}/files", response_model=List[UploadedFile])
def list_speaker_files(
    speaker_code: str, resolver: UploadResolver = Depends(get_upload_resolver)
):
    """List a speaker's uploaded files, newest first."""
    return resolver.list_speaker_files(speaker_code)
