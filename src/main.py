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
from src.p2p_admin.api.router import router as admin_router
from src.p2p_common.database import engine
from src.p2p_common.errors import AppError, InvariantViolationError
from src.p2p_common.redis_client import close_redis, get_redis
from src.p2p_common.response import error_response
from src.p2p_dispute.api.router import router as dispute_router
from src.p2p_gateway.api.router import router as auth_router
from src.p2p_gateway.middleware.request_log import RequestLogMiddleware
from src.p2p_offer.api.router import router as offer_router
from src.p2p_order.api.internal_router import router as order_internal_router
from src.p2p_order.api.router import router as order_router
from src.p2p_wallet.api.internal_router import router as wallet_internal_router
from src.p2p_wallet.api.router import router as wallet_router

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis connections. Shutdown: dispose."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()
    yield
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, InvariantViolationError):
        logger.critical("%s %s: %s", request.method, request.url.path, exc.message)
    resp = error_response(exc.code, exc.message)
    resp.request_id = getattr(request.state, "request_id", resp.request_id)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(auth_router, prefix="/api/v1")
app.include_router(wallet_router, prefix="/api/v1")
app.include_router(offer_router, prefix="/api/v1")
app.include_router(order_router, prefix="/api/v1")
app.include_router(dispute_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")
app.include_router(wallet_internal_router, prefix="/api/v1")
app.include_router(order_internal_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
