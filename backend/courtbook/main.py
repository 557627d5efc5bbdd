# backend/courtbook/main.py
"""
FastAPI application for the court booking engine.

All routes are mounted under /api/v1. Domain exceptions raised outside a
route's own handling are converted to the standard
{"message", "code", "details"} error body by the exception handler below.
"""

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from . import __version__
from .core.config import is_running_tests, settings
from .core.exceptions import DomainException
from .database import init_db
from .monitoring.prometheus_metrics import prometheus_metrics
from .routes.v1 import admin as admin_v1
from .routes.v1 import availability as availability_v1
from .routes.v1 import bookings as bookings_v1
from .routes.v1 import courts as courts_v1
from .routes.v1 import credits as credits_v1
from .routes.v1 import ledger as ledger_v1
from .routes.v1 import points as points_v1

# Configure logging
logging.basicConfig(
    level=settings.log_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info("courtbook API starting up...")
    logger.info(
        f"Environment: {settings.environment}, facility zone: {settings.facility_timezone}"
    )
    if is_running_tests():
        logger.info("Running under pytest (test mode active)")
    else:
        init_db()
    yield
    logger.info("courtbook API shutting down...")


app = FastAPI(
    title="courtbook",
    description="Court booking scheduling and ledger engine",
    version=__version__,
    lifespan=app_lifespan,
)


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Unhandled service failure on %s: %s", request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})


api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(courts_v1.router, prefix="/courts")
api_v1.include_router(availability_v1.router, prefix="/availability")
api_v1.include_router(bookings_v1.router, prefix="/bookings")
api_v1.include_router(ledger_v1.router, prefix="/ledger")
api_v1.include_router(credits_v1.router, prefix="/credits")
api_v1.include_router(points_v1.router, prefix="/points")
api_v1.include_router(admin_v1.router, prefix="/admin")
app.include_router(api_v1)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "version": __version__}


@app.get("/metrics")
async def metrics() -> Response:
    return Response(
        content=prometheus_metrics.get_metrics(), media_type=prometheus_metrics.get_content_type()
    )
