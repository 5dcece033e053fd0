"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text

from config.settings import settings
from src.pp_admin.api.router import router as admin_router
from src.pp_allowance.api.router import router as allowance_router
from src.pp_common.database import engine
from src.pp_common.errors import AppError
from src.pp_common.redis_client import close_redis, get_redis
from src.pp_common.response import error_response
from src.pp_event.api.router import router as events_router
from src.pp_gateway.api.router import router as auth_router
from src.pp_gateway.middleware.rate_limit import RateLimitMiddleware
from src.pp_gateway.middleware.request_log import RequestLogMiddleware
from src.pp_ledger.api.router import points_router, tokens_router
from src.pp_prediction.api.router import router as predictions_router
from src.pp_reward.api.router import router as rewards_router
from src.pp_settlement.application.runtime import background_jobs

APP_VERSION = "0.1.0"

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis, start background jobs. Shutdown: stop and dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    if settings.RATE_LIMIT_ENABLED:
        await get_redis()
    if settings.BACKGROUND_JOBS_ENABLED:
        background_jobs.start()
    logger.info("%s %s started", settings.APP_NAME, APP_VERSION)
    yield
    await background_jobs.stop()
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version=APP_VERSION,
    lifespan=lifespan,
)

# Added last runs first: request ids exist before the rate limiter answers
if settings.RATE_LIMIT_ENABLED:
    app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(auth_router, prefix="/api/v1")
app.include_router(events_router, prefix="/api/v1")
app.include_router(predictions_router, prefix="/api/v1")
app.include_router(allowance_router, prefix="/api/v1")
app.include_router(tokens_router, prefix="/api/v1")
app.include_router(points_router, prefix="/api/v1")
app.include_router(rewards_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, object]:
    return {
        "status": "ok",
        "version": APP_VERSION,
        "background_jobs": background_jobs.running,
    }
