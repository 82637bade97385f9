"""
FastAPI application entry point.
Configures routes, error mapping, and lifecycle events.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.database import engine, init_db, close_db
from app.logging_config import configure_logging
from app.redis import RedisClient
from app.services.background import drain
from app.services.chart_engine import ChartEngineError
from app.services.content_oracle import ContentOracleError
from app.services.billing import BillingError
from app.services.profile_store import ProfileNotFoundError, ProfilePersistenceError
from app.services.validation import InputValidationError

from app.api.content import router as content_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifecycle manager."""
    configure_logging()
    logger.info("Starting up Astra...")

    await init_db()

    if settings.forecast_cache_backend == "redis":
        try:
            RedisClient.get_client()
        except Exception as e:
            logger.warning(f"Failed to initialize Redis: {e}")

    yield

    # Let in-flight background saves finish
    await drain()
    await RedisClient.close()
    await close_db()
    logger.info("Shutting down...")


app = FastAPI(
    title="Astra",
    description="Personal astrology content with freshness and cache orchestration",
    version="1.0.0",
    lifespan=lifespan,
    debug=settings.debug,
)


@app.exception_handler(InputValidationError)
async def validation_error_handler(request: Request, exc: InputValidationError):
    return JSONResponse(
        status_code=422,
        content={
            "status": "error",
            "message": "Invalid input",
            "errors": [{"field": e.field, "message": e.message} for e in exc.errors],
        },
    )


@app.exception_handler(ProfileNotFoundError)
async def not_found_handler(request: Request, exc: ProfileNotFoundError):
    return JSONResponse(
        status_code=404,
        content={"status": "error", "message": "Profile not found. Complete onboarding first."},
    )


@app.exception_handler(ChartEngineError)
@app.exception_handler(ContentOracleError)
async def upstream_error_handler(request: Request, exc: Exception):
    logger.error(f"Upstream failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=502,
        content={"status": "error", "message": "Generation failed, please try again", "retryable": True},
    )


@app.exception_handler(ProfilePersistenceError)
@app.exception_handler(BillingError)
async def storage_error_handler(request: Request, exc: Exception):
    logger.error(f"Storage failure on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=503,
        content={"status": "error", "message": "Could not save your data, please try again", "retryable": True},
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"status": "error", "message": "Internal Server Error"},
    )


origins = ["https://web.telegram.org"]
if settings.is_development:
    origins.append("*")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(content_router)


@app.get("/health")
async def health():
    checks = {"database": "configured" if engine else "disabled"}
    if settings.forecast_cache_backend == "redis":
        checks["redis"] = "ok" if await RedisClient.ping() else "unavailable"
    return {"status": "ok", "app": settings.app_name, "env": settings.app_env, "checks": checks}
