"""
FastAPI application entry point.

Run:  cd microscope-canvas && python -m uvicorn app.main:app --reload --port 8000
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(name)s  %(levelname)s  %(message)s",
)

from fastapi import FastAPI

from app.routes import router, init_service
from app.settings import CanvasSettings
from infrastructure.persistence import GameStore
from infrastructure.snapshot_persistence import SnapshotStore
from services.game_service import GameService

logger = logging.getLogger(__name__)


def build_service(settings: CanvasSettings) -> GameService:
    """Open both stores on the configured database and wire the service."""
    if settings.db_path is not None:
        settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("Using database %s", settings.database)
    return GameService(
        GameStore(settings.database),
        SnapshotStore(settings.database),
        history_limit=settings.history_limit,
        snapshot_limit=settings.snapshot_limit,
        autosave_delay=settings.autosave_delay,
    )


def create_app(settings: CanvasSettings | None = None) -> FastAPI:
    settings = settings if settings is not None else CanvasSettings.from_env()
    service = build_service(settings)
    init_service(service)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        yield
        service.shutdown()

    application = FastAPI(title="Microscope Canvas", lifespan=lifespan)
    application.include_router(router)
    return application


app = create_app()
