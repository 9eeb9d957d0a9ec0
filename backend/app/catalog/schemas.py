"""Pydantic schemas for the conference catalog.

The catalog holds the reference data a schedule entry points at:
- Conference: name, date range and ``total_days``
- Hall: venue within a conference (name unique per conference)
- TimeSlot: interval on a conference day, globally ordered by ``slot_order``
- Speaker: person with a portal login code (``SP001``, ``SP002``, ...)
"""
from datetime import date, datetime, time
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# =============================================================================
# Conferences
# =============================================================================


class ConferenceCreate(BaseModel):
    """Request body for creating a conference.

    ``total_days`` may be omitted when both dates are given; it is then
    derived from the inclusive date range.
    """
    name: str = Field(..., min_length=1, max_length=200)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_days: Optional[int] = Field(default=None, ge=1)
    venue: Optional[str] = None

    @model_validator(mode="after")
    def _check_dates(self) -> "ConferenceCreate":
        if self.start_date and self.end_date:
            if self.end_date < self.start_date:
                raise ValueError("end_date must not be before start_date")
            if self.total_days is None:
                self.total_days = (self.end_date - self.start_date).days + 1
        if self.total_days is None:
            self.total_days = 1
        return self


class Conference(BaseModel):
    id: int
    name: str
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total_days: int
    venue: Optional[str] = None


# =============================================================================
# Halls
# =============================================================================


class HallCreate(BaseModel):
    conference_id: int
    name: str = Field(..., min_length=1, max_length=100)
    capacity: int = Field(default=0, ge=0)
    location: Optional[str] = None


class HallUpdate(BaseModel):
    """Request body for editing a hall (all fields optional)."""
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    capacity: Optional[int] = Field(default=None, ge=0)
    location: Optional[str] = None


class Hall(BaseModel):
    id: int
    conference_id: int
    name: str
    capacity: int
    location: Optional[str] = None


# =============================================================================
# Time slots
# =============================================================================


class TimeSlotCreate(BaseModel):
    conference_id: int
    day_number: int = Field(..., ge=1)
    start_time: time
    end_time: time
    slot_name: Optional[str] = None
    slot_order: int = Field(..., ge=1)

    @field_validator("end_time")
    @classmethod
    def _end_after_start(cls, v, info):
        start = info.data.get("start_time")
        if start is not None and v <= start:
            raise ValueError("end_time must be after start_time")
        return v


class TimeSlot(BaseModel):
    id: int
    conference_id: int
    day_number: int
    start_time: time
    end_time: time
    slot_name: Optional[str] = None
    slot_order: int


# =============================================================================
# Speakers
# =============================================================================


class SpeakerCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    bio: Optional[str] = None


class SpeakerUpdate(BaseModel):
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    bio: Optional[str] = None


class Speaker(BaseModel):
    id: int
    speaker_code: str
    full_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    title: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime


class SpeakerLoginRequest(BaseModel):
    speakerCode: str = ""


class SpeakerSession(BaseModel):
    """One of a speaker's sessions as shown in the speaker portal."""
    schedule_id: int
    session_title: str
    hall_name: str
    capacity: int
    day_number: int
    start_time: time
    end_time: time
    slot_name: Optional[str] = None


class SpeakerProfile(BaseModel):
    speaker: Speaker
    schedule: List[SpeakerSession]
    total_sessions: int
