"""Bazaar Portal API — FastAPI application factory."""


import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.db.base import engine, get_db
from app.routers.v1.events import router as events_v1_router
from app.routers.v1.payments import router as payments_v1_router
from app.routers.v1.vendor_applications import router as vendor_applications_v1_router
from app.routers.v1.vendors import router as vendors_v1_router
from app.routers.v1.visitor_passes import router as visitor_passes_v1_router
from app.schemas.common import HealthResponse

logger = logging.getLogger("app")

API_V1 = "/api/v1"


def _configure_logging() -> None:
    level = logging.DEBUG if settings.app_env == "development" else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    for noisy in ("sqlalchemy.engine", "httpcore", "httpx", "PIL"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    if not settings.payment_gateway_enabled:
        logger.warning("Card payments are disabled: PAYMENT_GATEWAY_SECRET_KEY is not set")
    logger.info("%s started (%s)", settings.app_name, settings.app_env)
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    _configure_logging()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.app_env == "development" else None,
        redoc_url=None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Stripe-Signature"],
    )

    register_exception_handlers(app)

    for router in (
        vendor_applications_v1_router,
        vendors_v1_router,
        events_v1_router,
        payments_v1_router,
        visitor_passes_v1_router,
    ):
        app.include_router(router, prefix=API_V1)

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health(session: AsyncSession = Depends(get_db)):
        try:
            await session.execute(text("SELECT 1"))
            database = "ok"
        except SQLAlchemyError:
            logger.exception("Health check could not reach the database")
            database = "unavailable"
        return HealthResponse(
            status="ok" if database == "ok" else "degraded",
            app=settings.app_name,
            env=settings.app_env,
            database=database,
            payments="enabled" if settings.payment_gateway_enabled else "disabled",
        )

    return app


app = create_app()
