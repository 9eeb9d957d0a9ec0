"""Pydantic schemas for the presentation upload flow."""
from typing import Optional

from pydantic import BaseModel, Field


class ResolvedSession(BaseModel):
    """The schedule entry an upload belongs to, plus its derived ordinal."""
    schedule_id: int
    speaker_id: int
    speaker_code: str
    hall_id: int
    hall_name: str
    day_number: int
    session_title: str
    slot_order: int
    total_days: int
    slot_order_in_day: int


class UploadResponse(BaseModel):
    """Response after a presentation has been staged."""
    success: bool = Field(..., description="Whether the upload was accepted")
    message: str = Field(..., description="Human readable result")
    file_id: Optional[int] = Field(None, description="ID of the uploaded_files row")
    stored_filename: Optional[str] = None
    stored_path: Optional[str] = None
