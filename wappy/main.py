# wappy/main.py
"""
FastAPI application for the Wappy Business console.

Serves the chat console API for many hotel tenants at once: every request
names its tenant, which is resolved through the central registry before
its own database or Kaleyra account is used.
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wappy.core import config
from wappy.core.config import settings
from wappy.core.errors import WappyError
from wappy.core.logging_config import setup_logging
from wappy.db.registry import check_registry_connection
from wappy.api.v1.router import api_router

setup_logging("wappy")

log = logging.getLogger("wappy")


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info("="*80)
    log.info("🚀 Wappy starting")
    log.info(f"Kaleyra API: {settings.KALEYRA_API_BASE}")
    log.info(
        f"Session window: {settings.SESSION_WINDOW_HOURS}h, policy={settings.SESSION_WINDOW_POLICY}, "
        f"enforced={settings.ENFORCE_SESSION_WINDOW}"
    )
    log.info("="*80)
    if check_registry_connection():
        log.info("✅ Registry database reachable")
    else:
        log.error("❌ Registry database not reachable, tenant requests will fail")
    yield
    log.info("👋 Wappy stopped")


# FastAPI app
app = FastAPI(
    title="Wappy - WhatsApp Business Console",
    description="Multi-tenant WhatsApp console API on Kaleyra",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ────────────────────────────────────────────
# CORS Configuration
# ────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials="*" not in config.CORS_ORIGINS,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=86400,
)


# ────────────────────────────────────────────
# Request Logging Middleware
# ────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.monotonic()
    response = await call_next(request)
    elapsed = int((time.monotonic() - start) * 1000)
    if request.url.path.startswith("/api/"):
        log.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed}ms)")
    return response


# Include API routes
app.include_router(api_router, prefix="/api/v1")


# ────────────────────────────────────────────
# Public routes
# ────────────────────────────────────────────

@app.get("/health", tags=["System"])
def health():
    """Liveness check; does not touch any database"""
    return {
        "status": "ok",
        "kaleyra_api": config.KALEYRA_API_BASE,
        "session_window_hours": config.SESSION_WINDOW_HOURS,
        "session_window_policy": config.SESSION_WINDOW_POLICY,
        "enforce_session_window": config.ENFORCE_SESSION_WINDOW,
    }


# ────────────────────────────────────────────
# Exception Handlers
# ────────────────────────────────────────────

@app.exception_handler(WappyError)
async def wappy_error_handler(request: Request, exc: WappyError):
    """Business and infrastructure errors, with a stable code"""
    if exc.status_code >= 500:
        log.error(f"❌ {request.method} {request.url.path}: {exc.code} - {exc.message}")
    else:
        log.warning(f"⚠️ {request.method} {request.url.path}: {exc.code} - {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Missing or malformed input is a 400, like every other invalid request"""
    errors = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={
            "error": "invalid_request",
            "message": "Invalid or missing parameters",
            "retryable": False,
            "details": errors,
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception(f"❌ Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_error",
            "message": "Internal server error",
            "retryable": False,
        },
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8100)
