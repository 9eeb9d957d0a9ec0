"""Shared test fixtures and configuration for backend tests."""
from datetime import time
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from app.catalog.schemas import ConferenceCreate, HallCreate, SpeakerCreate, TimeSlotCreate
from app.catalog.service import CatalogService
from app.config import AppConfig, DatabaseSettings, ProcessingSettings, StorageSettings
from app.files.service import FileLifecycleManager
from app.main import create_app
from app.schedule.service import SchedulingEngine
from app.store import EntityStore
from app.uploads.service import UploadResolver


@pytest.fixture
def store():
    """An in-memory entity store, closed after the test."""
    store = EntityStore(db_path=":memory:", pool_size=4).open()
    yield store
    store.close()


@pytest.fixture
def storage(tmp_path):
    return StorageSettings(base_dir=str(tmp_path))


@pytest.fixture
def catalog(store):
    return CatalogService(store)


@pytest.fixture
def engine(store):
    return SchedulingEngine(store)


@pytest.fixture
def resolver(store, storage):
    return UploadResolver(store, storage)


@pytest.fixture
def manager(store, storage):
    return FileLifecycleManager(store, storage)


def seed_conference(catalog: CatalogService) -> SimpleNamespace:
    """Create a three-day conference with two halls, six slots, three speakers.

    Slot orders: day 1 -> 1, 2, 3; day 2 -> 4, 5; day 3 -> 7.
    """
    conference = catalog.create_conference(
        ConferenceCreate(name="PyConf", total_days=3, venue="Expo Centre")
    )
    main_hall = catalog.create_hall(
        HallCreate(conference_id=conference.id, name="Main Hall", capacity=500, location="Ground floor")
    )
    room_b = catalog.create_hall(
        HallCreate(conference_id=conference.id, name="Room B", capacity=80, location="Level 1")
    )

    def slot(day, hour, order):
        return catalog.create_time_slot(
            TimeSlotCreate(
                conference_id=conference.id,
                day_number=day,
                start_time=time(hour, 0),
                end_time=time(hour + 1, 30),
                slot_name=f"Day {day} {hour}:00",
                slot_order=order,
            )
        )

    slots = {
        1: slot(1, 9, 1),
        2: slot(1, 11, 2),
        3: slot(1, 14, 3),
        4: slot(2, 9, 4),
        5: slot(2, 11, 5),
        7: slot(3, 9, 7),
    }
    ada = catalog.create_speaker(SpeakerCreate(full_name="Ada Lovelace", email="ada@example.com"))
    alan = catalog.create_speaker(SpeakerCreate(full_name="Alan Turing", title="Researcher"))
    grace = catalog.create_speaker(SpeakerCreate(full_name="Grace Hopper"))
    return SimpleNamespace(
        conference=conference,
        main_hall=main_hall,
        room_b=room_b,
        slots=slots,
        ada=ada,
        alan=alan,
        grace=grace,
    )


@pytest.fixture
def seeded(catalog):
    return seed_conference(catalog)


@pytest.fixture
def app_config(tmp_path):
    return AppConfig(
        database=DatabaseSettings(path=":memory:"),
        storage=StorageSettings(base_dir=str(tmp_path)),
        processing=ProcessingSettings(run_on_startup=False),
    )


@pytest.fixture
def api_client(app_config):
    """Provide a TestClient with the lifespan (store, services) running."""
    with TestClient(create_app(app_config)) as client:
        yield client
