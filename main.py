"""
MEALY Backend API
Household "who has eaten" tracker

FastAPI application entry point with the daily reset scheduler.
"""

import logging
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from shared.utils import LOG_DATE_FORMAT, LOG_FORMAT, setup_logger

# ============================================
# Configure Root Logger First
# ============================================
logging.basicConfig(
    level=logging.INFO,
    format=LOG_FORMAT,
    datefmt=LOG_DATE_FORMAT,
    handlers=[logging.StreamHandler(sys.stdout)]
)

# Service routers
from core.users import router as users_router
from meal_service.router import router as meal_router

# Core utilities
from core.config import settings
from core.database import init_firebase, is_mock_mode
from core.exceptions import MealyError
from core.notifications import fcm_service
from core.scheduler import scheduler_manager

LOG_LEVEL = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
logging.getLogger().setLevel(LOG_LEVEL)

# Setup logging
logger = setup_logger("mealy.main", level=LOG_LEVEL)
request_logger = setup_logger("mealy.requests", level=LOG_LEVEL)


# ============================================
# Request Logging Middleware
# ============================================

class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all incoming requests and responses with timing."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        has_auth = "🔐" if request.headers.get("Authorization") else "🔓"
        request_logger.info(f"➡️  {has_auth} {request.method} {request.url.path}")

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = (time.time() - start_time) * 1000
            request_logger.error(
                f"💥 {request.method} {request.url.path} → ERROR: {type(e).__name__}: {e} ({process_time:.1f}ms)"
            )
            raise

        process_time = (time.time() - start_time) * 1000
        if response.status_code < 400:
            status_emoji = "✅"
        elif response.status_code < 500:
            status_emoji = "⚠️"
        else:
            status_emoji = "❌"

        request_logger.info(
            f"{status_emoji} {request.method} {request.url.path} → {response.status_code} ({process_time:.1f}ms)"
        )
        return response


# ============================================
# Exception Handlers
# ============================================

async def mealy_exception_handler(request: Request, exc: MealyError):
    if exc.http_status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
        if settings.is_production:
            return JSONResponse(status_code=exc.http_status, content={"error": "Internal server error"})

    headers = {"WWW-Authenticate": "Bearer"} if exc.http_status == 401 else None
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict(), headers=headers)


def _describe_validation_errors(errors) -> str:
    parts = []
    for error in errors:
        # Drop the "body" / "query" prefix FastAPI puts on every location
        loc = ".".join(str(part) for part in error.get("loc", ())[1:])
        parts.append(f"{loc}: {error.get('msg')}" if loc else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request"


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"error": _describe_validation_errors(exc.errors())})


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None)
    )


async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    message = "Internal server error" if settings.is_production else str(exc)
    return JSONResponse(status_code=500, content={"error": message})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown."""
    # ===== STARTUP =====
    logger.info("🚀 MEALY API starting up...")

    if init_firebase():
        logger.info("🔥 Firebase connected")
    elif settings.is_production:
        logger.error("❌ Firebase unavailable in production, every authenticated request will get 401")
    else:
        logger.warning("⚠️ Running in MOCK MODE (no Firebase)")

    fcm_service.initialize()

    if settings.RESET_SCHEDULER_ENABLED:
        scheduler_manager.initialize(timezone=settings.TIMEZONE)
        scheduler_manager.start()

    logger.info("✅ MEALY API ready!")

    yield  # Application runs here

    # ===== SHUTDOWN =====
    logger.info("👋 MEALY API shutting down...")
    scheduler_manager.shutdown(wait=False)
    logger.info("✅ Shutdown complete")


app = FastAPI(
    title="MEALY API",
    description="Who has eaten? Household meal tracker",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS", "PATCH", "DELETE", "POST", "PUT"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

app.add_exception_handler(MealyError, mealy_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)


@app.get("/")
async def root():
    return {"message": "Welcome to the API"}


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "service": "mealy-api",
        "firebase": "mock" if is_mock_mode() else "connected",
    }


@app.get("/stats")
async def get_stats():
    """Get service statistics."""
    return {
        "fcm": fcm_service.get_stats(),
        "scheduler": scheduler_manager.get_jobs(),
    }


# Include service routers
app.include_router(users_router, prefix="/api/users", tags=["Users"])
app.include_router(meal_router, prefix="/api", tags=["Meals"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
