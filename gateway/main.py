import logging
import time
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from gateway.common.config import settings
from gateway.common.database import init_db, close_db, async_session_maker
from gateway.common.exceptions import AppException
from gateway.common.responses import error_response
from gateway.common.rate_limit import limiter
from gateway.common.startup import ensure_bootstrap_admin
from gateway.common.usage_middleware import UsageLogMiddleware
from gateway.domain.query_builder import QueryBuilder
from gateway.usecase.data_usecase import MetadataCache
from gateway.usecase.usage_usecase import UsageRecorder


# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.debug else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
DATA_PLANE_PREFIX = f"{API_PREFIX}/data"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    await init_db()

    async with async_session_maker() as session:
        await ensure_bootstrap_admin(session, settings)

    yield

    # Shutdown: flush pending usage writes before the engine goes away
    await app.state.usage_recorder.drain()
    await close_db()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)

# Built at import so a bad ADMIN_COLUMN_OVERRIDES aborts startup
app.state.query_builder = QueryBuilder.from_settings(settings)
app.state.metadata_cache = MetadataCache(settings.metadata_cache_ttl_seconds)
app.state.usage_recorder = UsageRecorder(async_session_maker)


def custom_rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handler for per-IP limits enforced by slowapi.

    Calculates the actual retry-after time from the limiter's window
    statistics and renders the standard error envelope.
    """
    limiter_instance = request.app.state.limiter
    view_rate_limit = getattr(request.state, "view_rate_limit", None)

    if view_rate_limit:
        window_stats = limiter_instance.limiter.get_window_stats(
            view_rate_limit[0], *view_rate_limit[1]
        )
        # reset time is an absolute timestamp
        retry_after = max(1, int(1 + window_stats[0] - time.time()))
    else:
        retry_after = 60

    request.state.usage_error = "Too many requests from this address"
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=error_response(
            error="TooManyRequests",
            message="Too many requests from this address",
            data={"retry_after": retry_after},
        ),
        headers={"Retry-After": str(retry_after)},
    )


# Add rate limiter to app state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, custom_rate_limit_handler)

# Add SlowAPI middleware to enable rate limiting
app.add_middleware(SlowAPIMiddleware)

# Usage logging wraps everything below it so it sees final status codes
app.add_middleware(UsageLogMiddleware, path_prefix=DATA_PLANE_PREFIX)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "Retry-After"],
)


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Handle custom application exceptions."""
    request.state.usage_error = exc.message

    response_data = error_response(
        error=exc.error_kind,
        message=exc.message,
    )
    headers = None

    # Add retry_after for rate limit exceptions
    if hasattr(exc, "retry_after"):
        data = {"retry_after": exc.retry_after}
        if hasattr(exc, "window"):
            data["window"] = exc.window
        response_data["data"] = data
        headers = {"Retry-After": str(exc.retry_after)}

    return JSONResponse(
        status_code=exc.status_code,
        content=response_data,
        headers=headers,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(
            error="InternalServerError",
            message=str(exc) if settings.debug else "An error occurred"
        ),
    )


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Import and include routers
from gateway.api.v1 import admin_auth, admin_tokens, data

app.include_router(data.router, prefix=API_PREFIX, tags=["data"])
app.include_router(admin_auth.router, prefix=API_PREFIX, tags=["admin-auth"])
app.include_router(admin_tokens.router, prefix=API_PREFIX, tags=["admin-tokens"])
