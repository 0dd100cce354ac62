"""FastAPI application bootstrap and lifecycle wiring.

Usage (direct uvicorn):
    uvicorn availability_engine.main:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from availability_engine.controllers.admin_controller import router as admin_router
from availability_engine.controllers.availability_controller import router as availability_router
from availability_engine.repository.data_repository import DataRepository
from availability_engine.services.auth_service import AuthService
from availability_engine.services.availability_service import AvailabilityService
from availability_engine.utils.clock import Clock, utc_now
from availability_engine.utils.config import Settings, get_settings
from availability_engine.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None, clock: Clock = utc_now) -> FastAPI:
    """Build the app with every service created here and parked on app.state."""
    settings = settings or get_settings()

    # --- Repository (keyed bookings/rules documents) ---
    repository = DataRepository(settings)

    # --- Services ---
    availability_service = AvailabilityService(
        repository=repository,
        settings=settings,
        clock=clock,
    )
    auth_service = AuthService(settings=settings, clock=clock)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.include_router(availability_router)
    app.include_router(admin_router)

    app.state.repository = repository
    app.state.availability_service = availability_service
    app.state.auth_service = auth_service

    return app


def startup(app: FastAPI) -> None:
    """Create the store schema; safe to re-run on every restart."""
    repository: DataRepository = app.state.repository
    repository.initialize_database()
    logger.info("System startup completed | database=%s", repository.database_path)


app = create_app()
