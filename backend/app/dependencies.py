"""FastAPI dependencies that hand routers the services built at startup.

Everything lives on ``app.state`` and is created by the lifespan in
``app.main``; nothing here constructs a service on its own.
"""
from fastapi import Request

from app.catalog.service import CatalogService
from app.config import AppConfig
from app.files.service import FileLifecycleManager
from app.schedule.service import SchedulingEngine
from app.uploads.service import UploadResolver


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def get_catalog(request: Request) -> CatalogService:
    return request.app.state.catalog


def get_scheduler(request: Request) -> SchedulingEngine:
    return request.app.state.scheduler


def get_upload_resolver(request: Request) -> UploadResolver:
    return request.app.state.uploads


def get_file_manager(request: Request) -> FileLifecycleManager:
    return request.app.state.files
