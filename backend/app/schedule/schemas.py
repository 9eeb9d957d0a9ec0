"""Pydantic schemas for schedule entries.

A schedule entry binds one speaker to one hall and one time slot within a
conference. ``ScheduleRow`` is the joined view returned by listings, carrying
the hall, speaker and slot display fields alongside the entry itself.
"""
from datetime import time
from typing import Literal, Optional

from pydantic import BaseModel, Field


ScheduleStatus = Literal["scheduled", "confirmed", "cancelled"]


class ScheduleCreate(BaseModel):
    """Request body for assigning a speaker to a hall and slot."""
    speaker_id: int
    hall_id: int
    slot_id: int
    conference_id: int
    session_title: str = Field(..., min_length=1, max_length=255)
    session_description: Optional[str] = None


class ScheduleUpdate(BaseModel):
    """Request body for editing an entry (all fields optional)."""
    speaker_id: Optional[int] = None
    hall_id: Optional[int] = None
    slot_id: Optional[int] = None
    conference_id: Optional[int] = None
    session_title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    session_description: Optional[str] = None
    status: Optional[ScheduleStatus] = None


class ScheduleCreated(BaseModel):
    schedule_id: int


class ScheduleRow(BaseModel):
    """A schedule entry joined with its hall, speaker and time slot."""
    schedule_id: int
    conference_id: int
    session_title: str
    session_description: Optional[str] = None
    status: str

    speaker_id: int
    speaker_code: str
    speaker_name: str
    speaker_title: Optional[str] = None
    speaker_bio: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    hall_id: int
    hall_name: str
    capacity: int
    location: Optional[str] = None

    slot_id: int
    day_number: int
    start_time: time
    end_time: time
    slot_name: Optional[str] = None
    slot_order: int
