from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from astro_api import __version__
from astro_api.config import Settings, get_settings
from astro_api.exceptions import AstroApiException
from astro_api.logger import configure_logging, logger
from astro_api.middleware import CorrelationIdMiddleware
from astro_api.n8n import n8n_router
from astro_api.n8n.client import N8nClient
from astro_api.n8n.events import InMemoryEventLog
from astro_api.services.redis_store import RedisEventLog, RedisUserStore, get_redis_client
from astro_api.users import users_router
from astro_api.users.store import InMemoryUserStore


async def init_state(app: FastAPI, settings: Settings) -> None:
    """Create the stores and the relay client for this process."""
    app.state.settings = settings
    app.state.redis = None

    if settings.storage_backend == "redis":
        app.state.redis = await get_redis_client(settings)
        if app.state.redis is None:
            logger.warning("storage_fallback", storage="memory", message="Redis unavailable")

    if app.state.redis is not None:
        app.state.user_store = RedisUserStore(app.state.redis)
        app.state.event_log = RedisEventLog(app.state.redis, capacity=settings.webhook_event_capacity)
    else:
        app.state.user_store = InMemoryUserStore()
        app.state.event_log = InMemoryEventLog(capacity=settings.webhook_event_capacity)

    app.state.n8n_client = N8nClient.from_settings(settings)
    logger.info(
        "app_state_ready",
        storage="redis" if app.state.redis is not None else "memory",
        n8n_configured=app.state.n8n_client.is_configured,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    await init_state(app, settings)
    logger.info("app_startup", version=__version__, environment=settings.environment)

    yield

    if app.state.redis is not None:
        await app.state.redis.aclose()
    logger.info("app_shutdown")


app = FastAPI(
    title="Astro API",
    description="""
# Astro API

Backend for the astrology mobile app.

## Features

- **Accounts**: registration with salted PBKDF2 password hashing, profile read/update/delete
- **n8n relay**: forward app events to an n8n workflow and poll the workflow's callbacks

Storage is in memory by default; set `STORAGE_BACKEND=redis` to keep data in Redis.
    """,
    version=__version__,
    lifespan=lifespan,
    openapi_tags=[
        {
            "name": "users",
            "description": "Account registration and profile management",
        },
        {
            "name": "n8n",
            "description": "Workflow relay and inbound webhook log",
        },
        {
            "name": "health",
            "description": "Health check endpoints",
        },
    ],
)


@app.exception_handler(AstroApiException)
async def astro_api_exception_handler(request: Request, exc: AstroApiException):
    """Render application exceptions with their own status and error code."""
    logger.warning(
        "astro_api_exception",
        error_code=exc.code,
        message=exc.message,
        status_code=exc.status_code,
        path=request.url.path,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors with field-level details."""
    field_errors = []
    for error in exc.errors():
        loc = error.get("loc", [])
        field = ".".join(str(part) for part in loc if part != "body")
        field_errors.append({"field": field, "message": error.get("msg", "Invalid value")})

    logger.warning("validation_error", path=request.url.path, errors=field_errors)

    return JSONResponse(
        status_code=400,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Invalid request data",
            "details": {"errors": field_errors},
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle standard HTTP exceptions with consistent format."""
    logger.warning(
        "http_exception",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTP_ERROR",
            "message": str(exc.detail) if exc.detail else "An error occurred",
            "details": {"status_code": exc.status_code},
        },
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Turn anything unexpected into a generic 500 without leaking internals."""
    logger.exception(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again later.",
            "details": {},
        },
    )


_settings = get_settings()

# Last added runs first: CORS must see preflight requests before anything else
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins_list,
    allow_credentials=_settings.cors_origins_list != ["*"],
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID"],
)

app.include_router(users_router)
app.include_router(n8n_router)


@app.get("/health", tags=["health"])
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "version": __version__}


@app.get("/health/live", tags=["health"])
async def liveness_check():
    """Liveness probe: the process is up and serving requests."""
    return {"status": "alive"}


@app.get("/health/ready", tags=["health"])
async def readiness_check(request: Request):
    """
    Readiness probe.

    Returns 200 when the user store answers, 503 otherwise.
    """
    storage_ok = await request.app.state.user_store.ping()
    checks = {
        "storage": "redis" if request.app.state.redis is not None else "memory",
        "storage_ok": storage_ok,
        "status": "ready" if storage_ok else "not_ready",
    }
    if not storage_ok:
        return JSONResponse(status_code=503, content=checks)
    return checks


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("astro_api.main:app", host="0.0.0.0", port=5000, reload=True)
