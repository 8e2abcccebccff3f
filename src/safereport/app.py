"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from safereport.api.chat import router as chat_router
from safereport.api.evidence import router as evidence_router
from safereport.api.exceptions import register_exception_handlers
from safereport.api.health import router as health_router
from safereport.api.incidents import router as incidents_router
from safereport.configs.config import AppConfig, get_app_config
from safereport.core.metrics import setup_metrics
from safereport.infra.db import build_db
from safereport.infra.lifespan import inject
from safereport.infra.logging import setup_logging
from safereport.infra.storage import build_evidence_storage
from safereport.infra.telemetry import init_telemetry

logger = logging.getLogger(__name__)


@inject
async def lifespan(
    app: FastAPI,
    _db: Annotated[None, Depends(build_db)],
    _storage: Annotated[None, Depends(build_evidence_storage)],
) -> AsyncGenerator[None, None]:
    """Application lifespan: incident store and evidence storage."""
    logger.info("Starting SafeReport application...")
    yield
    logger.info("Shutting down SafeReport application...")


def get_app(config: AppConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Middleware and exception handlers are registered here, before the
    app starts; the lifespan only owns resources.
    """
    config = config or get_app_config()
    setup_logging(config.logging)

    app = FastAPI(
        title="SafeReport",
        description="Guided incident reporting with an LLM-assisted intake chat",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app, config.api)
    setup_metrics(app, config.tracing)
    init_telemetry(app, config.tracing)

    app.include_router(health_router)
    app.include_router(chat_router)
    app.include_router(incidents_router)
    app.include_router(evidence_router)

    app.mount(
        config.evidence.public_base_url,
        StaticFiles(directory=config.evidence.storage_dir, check_dir=False),
        name="evidence",
    )

    return app


app = get_app()
