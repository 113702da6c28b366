"""
HTTP entry point for the workshop ledger.

``app`` is built at import time so ``uvicorn workshop.api.main:app`` works.
Startup migrates the schema before the pool is opened, so no request ever
runs against a half-migrated database.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from workshop import __version__
from workshop.api.middleware import ErrorHandlerMiddleware, LoggingMiddleware
from workshop.api.middleware.error_handler import setup_exception_handlers
from workshop.api.routes import (
    health_router,
    materials_router,
    movements_router,
    purchases_router,
)
from workshop.config import Settings, configure_logging, get_logger, get_settings

logger = get_logger(__name__)


async def _open_ledger(settings: Settings) -> None:
    from workshop.infrastructure.storage.sqlite import get_pool
    from workshop.infrastructure.storage.sqlite.migrations import run_migrations

    results = await run_migrations()
    failed = [r.version for r in results if not r.success]
    if failed:
        raise RuntimeError(f"Migrations failed: {', '.join(failed)}")

    pool = await get_pool()
    logger.info("ledger_database_ready", db_path=str(pool.db_path), migrated=len(results))

    if settings.ledger.check_consistency_on_start:
        from workshop.application.use_cases import CheckStockConsistencyUseCase

        result = await CheckStockConsistencyUseCase().execute()
        log = logger.warning if result.drifted else logger.info
        log(
            "startup_consistency_check",
            checked=len(result.reports),
            drifted=[r.material_id for r in result.drifted],
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger.info("application_starting", host=settings.api.host, port=settings.api.port)

    try:
        await _open_ledger(settings)
    except Exception as e:
        logger.error("ledger_startup_failed", error=str(e))
        raise

    yield

    from workshop.infrastructure.storage.sqlite import close_pool

    await close_pool()
    logger.info("application_stopped")


def create_app() -> FastAPI:
    """Build the FastAPI app: middleware, exception handlers and routers."""
    settings = get_settings()
    configure_logging()

    app = FastAPI(
        title="Workshop Ledger API",
        description="Material stock ledger with purchase-receipt automation",
        version=__version__,
        docs_url="/docs" if settings.api.debug else None,
        redoc_url="/redoc" if settings.api.debug else None,
        lifespan=lifespan,
    )

    # Starlette runs the last-added middleware first
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    if settings.api.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.api.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    setup_exception_handlers(app)

    for router in (health_router, materials_router, movements_router, purchases_router):
        app.include_router(router)

    @app.get("/health", include_in_schema=False)
    async def liveness() -> dict[str, str]:
        """Liveness probe; does not touch the database."""
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()
