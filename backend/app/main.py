"""Conference Portal Backend Application.

This is the main entry point for the conference portal service. Admins
manage speakers, halls, time slots and session assignments; the public site
reads the schedule; speakers log in with their code and upload slides.

Modules:
    - store: DuckDB entity store (explicit open/close, injected via app.state)
    - catalog: conferences, halls, time slots, speakers, speaker login
    - schedule: conflict-free speaker/hall/slot assignment
    - uploads: presentation upload resolution and canonical naming
    - files: staged-to-canonical file processing and deletion
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool

from app.catalog.router import router as catalog_router
from app.catalog.service import CatalogService
from app.config import AppConfig, get_config
from app.errors import register_exception_handlers
from app.files.router import router as files_router
from app.files.service import FileLifecycleManager
from app.schedule.router import router as schedule_router
from app.schedule.service import SchedulingEngine
from app.store import EntityStore
from app.uploads.router import router as uploads_router
from app.uploads.service import UploadResolver

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence per-request connection chatter from the HTTP stack.
for _noisy in ("multipart", "python_multipart", "httpx", "httpcore"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


async def _process_after_delay(manager: FileLifecycleManager, delay: float) -> None:
    """Run one processing pass once the store has had time to warm up."""
    await asyncio.sleep(delay)
    try:
        summary = await run_in_threadpool(manager.process_pending)
    except Exception:
        logger.exception("Startup file processing failed")
        return
    logger.info(
        "Startup file processing done: processed=%d failed=%d",
        summary.processed, summary.failed,
    )


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """Build the FastAPI application.

    Args:
        config: Settings to run with. Defaults to ``get_config()``.
    """
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Open the store, wire the services, and tear down on shutdown."""
        # Startup
        configured_level = getattr(logging, config.logging.level.upper(), None)
        if configured_level is not None:
            logging.getLogger().setLevel(configured_level)
            logger.info("Root logger level set to %s", config.logging.level.upper())

        store = EntityStore(
            db_path=config.database.path,
            pool_size=config.database.pool_size,
        ).open()
        app.state.config = config
        app.state.store = store
        app.state.catalog = CatalogService(store)
        app.state.scheduler = SchedulingEngine(store)
        app.state.uploads = UploadResolver(store, config.storage)
        app.state.files = FileLifecycleManager(store, config.storage)

        startup_task = None
        if config.processing.run_on_startup:
            logger.info(
                "Processing pending uploads in %.1fs",
                config.processing.startup_delay_seconds,
            )
            startup_task = asyncio.create_task(
                _process_after_delay(app.state.files, config.processing.startup_delay_seconds)
            )
        else:
            logger.info("Startup file processing disabled in config.")

        yield  # Application runs here

        # Shutdown
        if startup_task is not None and not startup_task.done():
            startup_task.cancel()
            try:
                await startup_task
            except asyncio.CancelledError:
                pass
        store.close()
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Conference Portal API",
        description="Schedule management and presentation uploads for conferences",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.allowed_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    # Register all routers
    app.include_router(catalog_router)
    app.include_router(schedule_router)
    app.include_router(uploads_router)
    app.include_router(files_router)

    @app.get("/health")
    async def health() -> dict:
        """Health check endpoint.

        Returns:
            dict: Status object indicating the server is running.
        """
        return {"status": "ok"}

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn using the configured host/port."""
    import uvicorn

    config = get_config()
    uvicorn.run("app.main:app", host=config.server.host, port=config.server.port)


if __name__ == "__main__":
    run()
