"""FHIR Lite API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map every failure to an OperationOutcome
    - Every response carries X-Request-ID
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fhir_lite.api.error_handlers import register_error_handlers
from fhir_lite.api.routes import health, patient
from fhir_lite.config import get_settings
from fhir_lite.infrastructure.database import init_db
from fhir_lite.infrastructure.observability import request_id_middleware, setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info(f"FHIR Lite API started (engine={settings.document_engine})")
    yield
    await manager.dispose()
    logger.info("FHIR Lite API shutting down")


app = FastAPI(
    title="FHIR Lite API", version="0.1.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Location", "ETag", "Last-Modified", "X-Request-ID"],
)
app.middleware("http")(request_id_middleware)

# Routes: explicit registration
app.include_router(health.router)
app.include_router(patient.router)

register_error_handlers(app)
