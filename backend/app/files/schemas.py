"""Pydantic schemas for uploaded presentation files.

This module defines the data models for presentation storage:
- UploadStatus: processing state of an upload (pending, processed, failed)
- UploadedFile: a row of ``uploaded_files`` as returned by the API
- ProcessSummary: result of one ``process_pending`` run

An upload is staged first (``original_path``) and later copied to its
canonical location ``stored_path + stored_filename`` by the lifecycle manager.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class UploadStatus(str, Enum):
    """Processing state of an upload.

    ``pending`` moves to ``processed`` or ``failed``; both are terminal
    until an operator re-triggers a failed upload.
    """
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


class UploadedFile(BaseModel):
    """A presentation file attached to one schedule entry."""
    id: int = Field(..., description="File ID")
    schedule_id: int = Field(..., description="Owning schedule entry")
    speaker_id: int
    hall_id: int
    day_number: int
    speaker_code: str
    slot_order_in_day: int = Field(..., description="Position of the session within its day")
    original_name: str = Field(..., description="Filename as uploaded")
    original_path: str = Field(..., description="Staging location")
    stored_filename: str = Field(..., description="Canonical filename")
    stored_path: str = Field(..., description="Canonical directory, e.g. uploads/Main_Hall/Day_2/")
    file_size: int = Field(..., description="File size in bytes")
    file_type: str = Field(..., description="MIME type")
    upload_status: UploadStatus
    upload_date: datetime
    processed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    superseded_by: Optional[int] = Field(
        default=None, description="Later upload whose copy replaced this file on disk"
    )


class ProcessSummary(BaseModel):
    """Counts from one pass over pending uploads."""
    processed: int = 0
    failed: int = 0
    already_running: bool = False


PRESENTATION_MIME_TYPES = {
    ".ppt": "application/vnd.ms-powerpoint",
    ".pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
}
