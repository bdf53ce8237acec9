"""FastAPI application for the liftplan JSON API."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .. import __version__
from ..db.engine import get_db_path, init_db
from ..errors import (
    ConcurrencyConflict,
    LiftplanError,
    NotFoundError,
    StateError,
    ValidationError,
)
from ..services import TrainingService
from .routers import enrollment, progressions, sessions, workouts

logger = logging.getLogger(__name__)

# Most specific first
ERROR_STATUS = [
    (ValidationError, 422),
    (NotFoundError, 404),
    (ConcurrencyConflict, 409),
    (StateError, 409),
]


def status_for(error: LiftplanError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 400


def create_app(db_path: Path | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    db_path = db_path or get_db_path()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Initialize the database on startup."""
        await init_db(db_path)
        yield

    app = FastAPI(
        title="liftplan",
        description="Strength-training program engine",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.service = TrainingService(db_path)

    @app.exception_handler(LiftplanError)
    async def liftplan_error(request: Request, exc: LiftplanError):
        status = status_for(exc)
        logger.info("%s %s -> %s: %s", request.method, request.url.path, status, exc)
        return JSONResponse(
            status_code=status,
            content={"error": type(exc).__name__, "detail": str(exc)},
        )

    # Include routers
    app.include_router(workouts.router)
    app.include_router(sessions.router)
    app.include_router(enrollment.router)
    app.include_router(progressions.router)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    return app
