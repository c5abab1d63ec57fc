"""FastAPI application entry point for ISMS Workbench.

The lifespan owns the database engine and the evidence store; routers reach
them through ``app.state``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from isms.api.boundaries import router as boundaries_router
from isms.api.errors import register_error_handlers
from isms.api.evidence_gaps import files_router as evidence_files_router
from isms.api.evidence_gaps import router as evidence_gaps_router
from isms.api.projects import router as projects_router
from isms.api.records import questions_router
from isms.api.records import router as records_router
from isms.api.register import router as register_router
from isms.api.risk import router as risk_router
from isms.api.soa import controls_router
from isms.api.soa import router as soa_router
from isms.config.settings import Environment, Settings, get_settings
from isms.db.session import build_engine, build_session_factory
from isms.storage.evidence_store import EvidenceStore

APP_VERSION = "0.1.0"

_LOG_NAME_TO_LEVEL: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def configure_logging(settings: Settings) -> None:
    level = _LOG_NAME_TO_LEVEL[settings.LOG_LEVEL.value]
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer() if settings.ENVIRONMENT == Environment.DEV
            else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)
    logger: structlog.stdlib.BoundLogger = structlog.get_logger()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        engine = build_engine(settings)
        app.state.session_factory = build_session_factory(engine)
        app.state.evidence_store = EvidenceStore(
            settings.OBJECT_STORAGE_PATH,
            secret=settings.EVIDENCE_URL_SECRET,
            ttl_seconds=settings.EVIDENCE_URL_TTL_SECONDS,
        )
        logger.info("startup", environment=settings.ENVIRONMENT.value)
        try:
            yield
        finally:
            await engine.dispose()
            logger.info("shutdown")

    app = FastAPI(
        title="ISMS Workbench API",
        description="ISO 27001 compliance workflow: scope, SOA, evidence and risk.",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    # --- CORS middleware ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.ENVIRONMENT == Environment.DEV else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)

    # --- Routers ---
    # Global routers (not project-scoped)
    app.include_router(controls_router)
    app.include_router(questions_router)
    app.include_router(evidence_files_router)

    # Project routers (all under /v1/projects/...)
    app.include_router(projects_router)
    app.include_router(boundaries_router)
    app.include_router(soa_router)
    app.include_router(evidence_gaps_router)
    app.include_router(records_router)
    app.include_router(risk_router)
    app.include_router(register_router)

    @app.get("/health")
    async def health_check(request: Request) -> dict:
        """Liveness probe with component health checks.

        Returns 200 always (degraded status if components are down).
        """
        checks: dict[str, bool] = {"api": True}

        try:
            async with request.app.state.session_factory() as session:
                await session.execute(text("SELECT 1"))
            checks["database"] = True
        except Exception:
            logger.warning("health_check_database_failed", exc_info=True)
            checks["database"] = False

        all_ok = all(checks.values())

        return {
            "status": "ok" if all_ok else "degraded",
            "version": APP_VERSION,
            "environment": settings.ENVIRONMENT.value,
            "checks": checks,
        }

    @app.get("/api/version")
    async def get_version() -> dict[str, str]:
        """Return application name, version, and environment."""
        return {
            "name": "ISMS Workbench",
            "version": APP_VERSION,
            "environment": settings.ENVIRONMENT.value,
        }

    return app


app = create_app()
