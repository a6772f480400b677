# app/main.py
"""
FastAPI application for the crowdfunding mirror.

- REST API under /api (campaigns, users, health)
- Chain gateway + event reconciler started in the lifespan
- Domain errors rendered as `{success: false, message, ...}`
"""
import asyncio
import logging
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import (
    APP_ENV, IS_PRODUCTION, PORT, LOG_LEVEL, CLIENT_URL,
    CHAIN_RPC_URL, CONTRACT_ADDRESS, CHAIN_ID, CHAIN_POLL_INTERVAL,
    CHAIN_MAX_BLOCK_RANGE, CHAIN_REQUEST_TIMEOUT, RECONCILER_START_DELAY,
    RECONCILER_SETUP_RETRY_SECONDS, RECONCILER_RECONNECT_SECONDS, SHUTDOWN_GRACE_SECONDS
)
from app.core.exceptions import AppError
from app.core.logging_config import setup_logging
from app.db.session import init_db, test_db_connection
from app.api.v1.router import api_router
from app.chain.gateway import ChainGateway
from app.chain.reconciler import EventReconciler
from app.schemas.common import error_response
from app.services import get_campaign_service
from app.services.chain_handlers import register_handlers

setup_logging("crowdfund", LOG_LEVEL)
log = logging.getLogger("crowdfund")


def _attach_chain_handlers(gateway: ChainGateway) -> None:
    register_handlers(gateway, get_campaign_service())


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("=" * 80)
    log.info(f"🚀 Crowdfunding API starting (env: {APP_ENV})")
    log.info("=" * 80)

    try:
        init_db()
        if test_db_connection():
            log.info("✅ Database initialized")
    except Exception as e:
        log.error(f"❌ Database error: {e}")

    gateway = ChainGateway(
        CHAIN_RPC_URL,
        CONTRACT_ADDRESS,
        chain_id=CHAIN_ID,
        max_block_range=CHAIN_MAX_BLOCK_RANGE,
        request_timeout=CHAIN_REQUEST_TIMEOUT
    )
    reconciler = EventReconciler(
        gateway,
        _attach_chain_handlers,
        setup_retry_seconds=RECONCILER_SETUP_RETRY_SECONDS,
        reconnect_seconds=RECONCILER_RECONNECT_SECONDS,
        poll_interval=CHAIN_POLL_INTERVAL,
        start_delay=RECONCILER_START_DELAY
    )
    app.state.chain_gateway = gateway
    app.state.reconciler = reconciler

    if gateway.configured:
        reconciler.start()
        log.info("⛓️  Event reconciler scheduled")
    else:
        log.warning("⚠️  Chain not configured (CHAIN_RPC_URL / CONTRACT_ADDRESS), event sync disabled")

    yield

    log.info("🛑 Shutting down...")
    try:
        await asyncio.wait_for(reconciler.shutdown(), timeout=SHUTDOWN_GRACE_SECONDS)
    except asyncio.TimeoutError:
        log.error(f"❌ Reconciler did not stop within {SHUTDOWN_GRACE_SECONDS}s, forcing shutdown")
    gateway.close()
    log.info("✅ Shutdown complete")


# FastAPI app
app = FastAPI(
    title="Crowdfunding API",
    description="Off-chain mirror of on-chain crowdfunding campaigns",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# ────────────────────────────────────────────
# CORS Configuration
# ────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=[CLIENT_URL],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


# ────────────────────────────────────────────
# Public routes
# ────────────────────────────────────────────

@app.get("/api/health", tags=["System"])
def health(request: Request):
    """Health check endpoint"""
    db_ok = test_db_connection()

    reconciler = getattr(request.app.state, "reconciler", None)
    if reconciler is not None:
        chain = reconciler.status()
    else:
        chain = {"configured": bool(CHAIN_RPC_URL and CONTRACT_ADDRESS), "state": "disconnected"}

    return {
        "success": True,
        "message": "Crowdfunding API is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "status": "ok" if db_ok else "degraded",
        "database_ok": db_ok,
        "chain": chain,
    }


# ────────────────────────────────────────────
# Exception handlers
# ────────────────────────────────────────────

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        log.error(f"❌ {request.method} {request.url.path}: {exc.message}")
    else:
        log.warning(f"⚠️  {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.message, errors=exc.errors, data=exc.data)
    )


def _validation_messages(errors) -> list:
    messages = []
    for err in errors:
        loc = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path"))
        messages.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg"))
    return messages


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content=error_response("Validation Error", errors=_validation_messages(exc.errors()))
    )


@app.exception_handler(PydanticValidationError)
async def pydantic_validation_handler(request: Request, exc: PydanticValidationError):
    return JSONResponse(
        status_code=400,
        content=error_response("Validation Error", errors=_validation_messages(exc.errors()))
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return JSONResponse(status_code=404, content=error_response("Route not found"))
    return JSONResponse(status_code=exc.status_code, content=error_response(str(exc.detail)))


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    log.error(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    log.error(traceback.format_exc())

    content = error_response("Internal Server Error", error=str(exc))
    if not IS_PRODUCTION:
        content["details"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(status_code=500, content=content)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=PORT, reload=not IS_PRODUCTION)
