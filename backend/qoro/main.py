"""Qoro API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map QoroError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py to keep this module's imports small
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qoro.api.error_handlers import register_error_handlers
from qoro.api.routes import (
    auth, billing, crm, finance, health, organization, pulse, qualification, tasks,
)
from qoro.config import get_settings
from qoro.infrastructure import database
from qoro.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Qoro API started")
    yield
    if database.db_manager is not None:
        await database.db_manager.dispose()
    logger.info("Qoro API shutting down")


app = FastAPI(title="Qoro API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(organization.router)
app.include_router(billing.router)
app.include_router(crm.router)
app.include_router(finance.router)
app.include_router(tasks.router)
app.include_router(pulse.router)
app.include_router(qualification.router)

register_error_handlers(app)
