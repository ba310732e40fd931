"""
api/main.py -- FastAPI application entry point for E-Store.

Run with:  uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- lets the browser front-end call the API
  3. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Error envelope: every non-2xx response body has a "message" key; validation
failures also carry "errors": {field: [messages]}. The client parses exactly
these two shapes.

Lifespan handles startup (stores, token issuer, expired-token purge task)
and shutdown (cancel purge task, dispose engines) symmetrically.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from addresses.store import AddressStore
from api.limiter import limiter
from api.models import HealthResponse, MessageResponse, ValidationErrorResponse
from api.routes.v1.addresses import router as addresses_router
from api.routes.v1.auth import router as auth_router
from auth.store import UserStore
from auth.tokens import TokenIssuer
from core.config import get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("estore.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI) -> None:
    """Delete expired token records every hour.

    A no-op in the default revocation-only mode (no record has expires_at).
    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine.
    """
    while True:
        await asyncio.sleep(60 * 60)
        removed = app.state.user_store.delete_expired_tokens()
        if removed:
            logger.info("Purged %d expired tokens", removed)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. The token issuer wraps the user store, so the store comes first.
    """
    logger.info("E-Store API starting up")
    app.state.user_store = UserStore(_settings.database_url)
    app.state.address_store = AddressStore(_settings.database_url)
    app.state.token_issuer = TokenIssuer(app.state.user_store)
    logger.info(
        "Auth initialized (users=%d, token_ttl=%s)",
        app.state.user_store.count_users(),
        _settings.token_expire_seconds or "none",
    )
    app.state.purge_task = asyncio.create_task(_purge_loop(app))

    yield

    app.state.purge_task.cancel()
    app.state.address_store.close()
    app.state.user_store.close()
    logger.info("E-Store API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="E-Store Admin API",
    description="Users, addresses and token authentication for the E-Store admin front-end.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "Accept"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(addresses_router, prefix="/api/v1", tags=["Addresses"])


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


def _field_name(loc: tuple) -> str:
    """("body", "email") -> "email"; ("body",) -> "body"."""
    tail = [str(part) for part in loc[1:]]
    return ".".join(tail) if tail else str(loc[0])


def validation_errors_to_fields(errors: list[dict]) -> dict[str, list[str]]:
    """Fold pydantic error dicts into {field: [messages]} preserving order."""
    fields: dict[str, list[str]] = {}
    for err in errors:
        fields.setdefault(_field_name(tuple(err.get("loc", ("body",)))), []).append(err.get("msg", "Invalid value."))
    return fields


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with Retry-After when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=MessageResponse(message="Too many attempts. Please try again later.").model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with per-field messages when input fails validation."""
    fields = validation_errors_to_fields(list(exc.errors()))
    first = next(iter(fields.values()))[0] if fields else "The given data was invalid."
    return JSONResponse(
        status_code=422,
        content=ValidationErrorResponse(message=first, errors=fields).model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with detail={"code": ..., "message": ...}.
    That dict becomes the body as-is; plain string details are wrapped in
    {"message": ...}. Headers (WWW-Authenticate on 401) are preserved.
    """
    if isinstance(exc.detail, dict):
        content = dict(exc.detail)
    else:
        content = MessageResponse(message=str(exc.detail)).model_dump()
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=MessageResponse(message="An unexpected error occurred.").model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable.
# No rate limit -- load balancer probes must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return API liveness, version and database reachability."""
    try:
        database = "ok" if request.app.state.user_store.ping() else "error"
    except SQLAlchemyError:
        logger.exception("Health check database ping failed")
        database = "error"
    return HealthResponse(version=__version__, components={"app": "ok", "database": database})
