"""Catalog REST endpoints.

Endpoints:
    GET  /conferences                      - List conferences
    POST /conferences                      - Create a conference
    GET  /conferences/{id}                 - Get one conference
    GET  /halls?conference_id=             - Halls of a conference, by name
    POST /halls                            - Create a hall
    PUT  /halls/{id}                       - Edit a hall
    DELETE /halls/{id}                     - Delete an unused hall
    GET  /timeslots?conference_id=         - Slots by day, then slot order
    POST /timeslots                        - Create a slot
    GET  /speakers                         - Speakers by code
    POST /speakers                         - Create a speaker (code assigned)
    GET/PUT/DELETE /speakers/{id}          - Read, edit, delete a speaker
    POST /speakers/login                   - Speaker portal login by code
    GET  /speakers/by-code/{code}          - Speaker profile and sessions
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends

from app.config import AppConfig
from app.dependencies import get_catalog, get_config

from .schemas import (
    Conference,
    ConferenceCreate,
    Hall,
    HallCreate,
    HallUpdate,
    Speaker,
    SpeakerCreate,
    SpeakerLoginRequest,
    SpeakerProfile,
    SpeakerUpdate,
    TimeSlot,
    TimeSlotCreate,
)
from .service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["catalog"])


def _conference_or_default(conference_id: Optional[int], config: AppConfig) -> int:
    return conference_id if conference_id is not None else config.conference.default_conference_id


# -----------------------------------------------------------------------------
# Conferences
# -----------------------------------------------------------------------------


@router.get("/conferences", response_model=List[Conference])
def list_conferences(catalog: CatalogService = Depends(get_catalog)):
    return catalog.list_conferences()


@router.post("/conferences", response_model=Conference, status_code=201)
def create_conference(
    body: ConferenceCreate, catalog: CatalogService = Depends(get_catalog)
):
    return catalog.create_conference(body)


@router.get("/conferences/{conference_id}", response_model=Conference)
def get_conference(conference_id: int, catalog: CatalogService = Depends(get_catalog)):
    return catalog.get_conference(conference_id)


# -----------------------------------------------------------------------------
# Halls
# -----------------------------------------------------------------------------


@router.get("/halls", response_model=List[Hall])
def list_halls(
    conference_id: Optional[int] = None,
    catalog: CatalogService = Depends(get_catalog),
    config: AppConfig = Depends(get_config),
):
    """List the halls of a conference (defaults to the configured one)."""
    return catalog.list_halls(_conference_or_default(conference_id, config))


@router.post("/halls", response_model=Hall, status_code=201)
def create_hall(body: HallCreate, catalog: CatalogService = Depends(get_catalog)):
    return catalog.create_hall(body)


@router.put("/halls/{hall_id}", response_model=Hall)
def update_hall(
    hall_id: int, body: HallUpdate, catalog: CatalogService = Depends(get_catalog)
):
    return catalog.update_hall(hall_id, body)


@router.delete("/halls/{hall_id}")
def delete_hall(hall_id: int, catalog: CatalogService = Depends(get_catalog)) -> dict:
    catalog.delete_hall(hall_id)
    return {"deleted": hall_id}


# -----------------------------------------------------------------------------
# Time slots
# -----------------------------------------------------------------------------


@router.get("/timeslots", response_model=List[TimeSlot])
def list_time_slots(
    conference_id: Optional[int] = None,
    catalog: CatalogService = Depends(get_catalog),
    config: AppConfig = Depends(get_config),
):
    return catalog.list_time_slots(_conference_or_default(conference_id, config))


@router.post("/timeslots", response_model=TimeSlot, status_code=201)
def create_time_slot(
    body: TimeSlotCreate, catalog: CatalogService = Depends(get_catalog)
):
    return catalog.create_time_slot(body)


# -----------------------------------------------------------------------------
# Speakers
# -----------------------------------------------------------------------------


@router.get("/speakers", response_model=List[Speaker])
def list_speakers(catalog: CatalogService = Depends(get_catalog)):
    return catalog.list_speakers()


@router.post("/speakers", response_model=Speaker, status_code=201)
def create_speaker(body: SpeakerCreate, catalog: CatalogService = Depends(get_catalog)):
    speaker = catalog.create_speaker(body)
    logger.info("[speakers] Registered %s", speaker.speaker_code)
    return speaker


@router.post("/speakers/login", response_model=SpeakerProfile)
def speaker_login(
    body: SpeakerLoginRequest, catalog: CatalogService = Depends(get_catalog)
):
    """Authenticate a speaker by code and return their sessions."""
    return catalog.speaker_profile(body.speakerCode)


@router.get("/speakers/by-code/{speaker_code}", response_model=SpeakerProfile)
def speaker_profile(speaker_code: str, catalog: CatalogService = Depends(get_catalog)):
    return catalog.speaker_profile(speaker_code)


@router.get("/speakers/{speaker_id}", response_model=Speaker)
def get_speaker(speaker_id: int, catalog: CatalogService = Depends(get_catalog)):
    return catalog.get_speaker(speaker_id)


@router.put("/speakers/{speaker_id}", response_model=Speaker)
def update_speaker(
    speaker_id: int, body: SpeakerUpdate, catalog: CatalogService = Depends(get_catalog)
):
    return catalog.update_speaker(speaker_id, body)


@router.delete("/speakers/{speaker_id}")
def delete_speaker(speaker_id: int, catalog: CatalogService = Depends(get_catalog)) -> dict:
    """Delete a speaker and their scheduled sessions."""
    removed = catalog.delete_speaker(speaker_id)
    return {"deleted": speaker_id, "sessions_removed": removed}
