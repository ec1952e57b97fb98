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
from src.p2p_common.errors import AppError
from src.p2p_common.redis_client import close_redis, get_redis
from src.p2p_common.response import error_response
from src.p2p_dispute.api.router import admin_router as dispute_admin_router
from src.p2p_dispute.api.router import router as dispute_router
from src.p2p_gateway.middleware.rate_limit import RateLimitMiddleware
from src.p2p_gateway.middleware.request_log import RequestLogMiddleware
from src.p2p_holding.api.router import admin_router as holding_admin_router
from src.p2p_holding.api.router import funding_router
from src.p2p_ledger.api.router import router as ledger_router
from src.p2p_ledger.api.router import settings_router
from src.p2p_offer.api.router import router as offer_router
from src.p2p_trade.api.router import router as trade_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB + Redis connections. Shutdown: dispose."""
    # Startup
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    await get_redis()
    yield
    # Shutdown
    await engine.dispose()
    await close_redis()


app = FastAPI(
    title=settings.APP_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# Last added runs first: request logging wraps rate limiting.
app.add_middleware(RateLimitMiddleware)
app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    resp = error_response(exc.code, exc.message, request)
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


app.include_router(offer_router, prefix="/api/v1")
app.include_router(trade_router, prefix="/api/v1")
app.include_router(dispute_router, prefix="/api/v1")
app.include_router(ledger_router, prefix="/api/v1")
app.include_router(settings_router, prefix="/api/v1")
app.include_router(funding_router, prefix="/api/v1")
app.include_router(holding_admin_router, prefix="/api/v1")
app.include_router(dispute_admin_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "version": "0.1.0"}
