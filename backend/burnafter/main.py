from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import inspect

from burnafter.config import settings
from burnafter.database import engine
from burnafter.exceptions import SecretValidationError
from burnafter.logging_config import setup_logging
from burnafter.middleware.logging import LoggingMiddleware
from burnafter.middleware.rate_limit import limiter
from burnafter.models.secret import Secret
from burnafter.routers import secrets
from burnafter.scheduler import shutdown_scheduler, start_scheduler
from burnafter.services.crypto_utils import SecretCipher

# Database tables are managed by Alembic migrations
# Run: alembic upgrade head

REQUIRED_TABLES = {Secret.__tablename__}

logger = structlog.get_logger()


def check_database_tables() -> None:
    """Fail fast when migrations have not been applied."""
    existing = set(inspect(engine).get_table_names())
    missing = REQUIRED_TABLES - existing
    if missing:
        raise RuntimeError(
            f"Database tables missing: {', '.join(sorted(missing))}. "
            "Run migrations first: alembic upgrade head"
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the encryption key, verify the schema, start/stop the scheduler."""
    setup_logging()
    # Key is loaded once and held in memory for the process lifetime
    app.state.cipher = SecretCipher.from_settings(settings)
    check_database_tables()
    if settings.scheduler_enabled:
        start_scheduler()
    yield
    shutdown_scheduler()


app = FastAPI(
    title="BurnAfterReading",
    description="One-time secret sharing: encrypted at rest, deleted on first read",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(SecretValidationError)
async def secret_validation_error_handler(request: Request, exc: SecretValidationError):
    return JSONResponse(
        status_code=422,
        content={"message": exc.message, "errors": {exc.field: [exc.message]}},
    )


def _error_field(loc) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "body"


def _error_message(error: dict) -> str:
    # Validators raise ValueError with the user-facing text; pydantic prefixes it
    if error.get("type") == "value_error" and "error" in error.get("ctx", {}):
        return str(error["ctx"]["error"])
    return error["msg"]


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Same 422 envelope as SecretValidationError: message plus per-field lists."""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        errors.setdefault(_error_field(error["loc"]), []).append(_error_message(error))
    first = next(iter(errors.values()))[0] if errors else "The given data was invalid."
    return JSONResponse(status_code=422, content={"message": first, "errors": errors})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Log internal failures with detail; return nothing revealing to the caller."""
    logger.error("unhandled_exception", error_type=type(exc).__name__, error=str(exc))
    headers = {}
    correlation_id = structlog.contextvars.get_contextvars().get("correlation_id")
    if correlation_id:
        headers["X-Correlation-ID"] = correlation_id
    return JSONResponse(
        status_code=500, content={"detail": "Internal Server Error"}, headers=headers
    )


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

# Routers
app.include_router(secrets.router, prefix="/api/v1", tags=["secrets"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
