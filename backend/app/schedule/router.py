"""Schedule REST endpoints.

Endpoints:
    POST   /schedules        - Book a speaker into a hall/slot (201, 404, 409)
    GET    /schedules        - Joined listing, filterable, in display order
    GET    /schedules/{id}   - One joined entry
    PUT    /schedules/{id}   - Edit an entry (200, 404, 409)
    DELETE /schedules/{id}   - Delete an entry (200, 404)
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends

from app.dependencies import get_scheduler

from .schemas import ScheduleCreate, ScheduleCreated, ScheduleRow, ScheduleUpdate
from .service import SchedulingEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedules", tags=["schedules"])


@router.post("", response_model=ScheduleCreated, status_code=201)
def create_schedule(
    body: ScheduleCreate, engine: SchedulingEngine = Depends(get_scheduler)
) -> ScheduleCreated:
    """Assign a speaker to a hall and time slot.

    Returns:
        ``{"schedule_id": ...}`` with 201 Created.
    """
    return ScheduleCreated(schedule_id=engine.create_schedule(body))


@router.get("", response_model=List[ScheduleRow])
def list_schedule(
    conference_id: Optional[int] = None,
    hall_id: Optional[int] = None,
    day_number: Optional[int] = None,
    speaker_id: Optional[int] = None,
    engine: SchedulingEngine = Depends(get_scheduler),
) -> List[ScheduleRow]:
    """List entries ordered by hall name, day, then slot order."""
    return engine.list_schedule(
        conference_id=conference_id,
        hall_id=hall_id,
        day_number=day_number,
        speaker_id=speaker_id,
    )


@router.get("/{schedule_id}", response_model=ScheduleRow)
def get_schedule(
    schedule_id: int, engine: SchedulingEngine = Depends(get_scheduler)
) -> ScheduleRow:
    return engine.get_schedule(schedule_id)


@router.put("/{schedule_id}", response_model=ScheduleRow)
def update_schedule(
    schedule_id: int,
    body: ScheduleUpdate,
    engine: SchedulingEngine = Depends(get_scheduler),
) -> ScheduleRow:
    return engine.update_schedule(schedule_id, body)


@router.delete("/{schedule_id}")
def delete_schedule(
    schedule_id: int, engine: SchedulingEngine = Depends(get_scheduler)
) -> dict:
    engine.delete_schedule(schedule_id)
    return {"deleted": schedule_id}
