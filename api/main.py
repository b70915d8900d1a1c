"""
api/main.py -- FastAPI application entry point for TodoAuth.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware        -- adds CORS headers for allowed browser origins
  2. SlowAPIMiddleware     -- enforces per-route rate limits from api.limiter

Lifespan loads Settings (a ConfigurationError aborts startup before any
request is served), then builds the core components once and attaches them
to app.state:

  app.state.settings   Settings
  app.state.store      DataStore (users + todos)
  app.state.hasher     PasswordHasher
  app.state.issuer     TokenIssuer
  app.state.verifier   TokenVerifier
  app.state.policy     AuthorizationPolicy
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.todos import router as todos_router
from api.routes.v1.users import router as users_router
from auth.models import User
from auth.passwords import PasswordHasher
from auth.policy import AuthorizationPolicy
from auth.tokens import TokenIssuer, TokenVerifier
from core.config import Settings, get_settings
from store.datastore import DataStore

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("todoauth.api")

# ---------------------------------------------------------------------------
# State wiring
# ---------------------------------------------------------------------------


def init_state(app: FastAPI, settings: Settings, store: DataStore | None = None) -> None:
    """Build every core component from settings and attach it to app.state.

    Separate from lifespan so tests can wire a fresh DataStore without
    starting a server.
    """
    app.state.settings = settings
    app.state.store = store if store is not None else DataStore()
    app.state.hasher = PasswordHasher(iterations=settings.hash_iterations)
    app.state.issuer = TokenIssuer.from_settings(settings)
    app.state.verifier = TokenVerifier.from_settings(settings)
    app.state.policy = AuthorizationPolicy(
        admin_role=settings.admin_role,
        allow_self_delete=settings.allow_self_delete,
    )
    _bootstrap_admin(app, settings)


def _bootstrap_admin(app: FastAPI, settings: Settings) -> None:
    """Seed the first admin account from BOOTSTRAP_ADMIN_* if both are set.

    Registration never grants roles, so without this there is no way to
    obtain an admin token. An existing record with that username is left as is.
    """
    if not (settings.bootstrap_admin_username and settings.bootstrap_admin_password):
        return
    digest, salt = app.state.hasher.hash_password(settings.bootstrap_admin_password)
    admin = User(
        username=settings.bootstrap_admin_username,
        name="Administrator",
        email="",
        password_digest=digest,
        salt=salt,
        roles=frozenset({settings.admin_role, settings.default_role}),
    )
    if app.state.store.users.add(admin):
        logger.info("Bootstrap admin %r created", admin.username)
    else:
        logger.info("Bootstrap admin %r already exists", admin.username)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load configuration and build the core components.

    get_settings() raises ConfigurationError for a missing or short secret or
    a missing issuer/audience; it propagates out of startup on purpose.
    A store already wired by init_state() (tests) is kept.
    """
    logger.info("TodoAuth API starting up")
    settings = get_settings()
    init_state(app, settings, store=getattr(app.state, "store", None))
    logger.info(
        "Auth initialized (issuer=%s, audience=%s, ttl=%ds)",
        settings.jwt_issuer,
        settings.jwt_audience,
        settings.token_expire_seconds,
    )

    yield

    logger.info("TodoAuth API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="TodoAuth API",
    description="Todo items and user accounts behind JWT bearer authentication.",
    version=VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost", "http://localhost:3000", "http://127.0.0.1"],
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


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
app.include_router(users_router, prefix="/api/v1", tags=["Users"])
app.include_router(todos_router, prefix="/api/v1", tags=["Todos"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or path params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Route handlers raise HTTPException with a {"code", "message"} dict as
    detail; that dict becomes the error field as is. Headers such as
    WWW-Authenticate are passed through.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=exc.headers,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# No rate limit applied -- health checks from load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
async def health(request: Request) -> HealthResponse:
    """Return API liveness, version, and record counts."""
    store: DataStore = request.app.state.store
    return HealthResponse(version=VERSION, users=len(store.users), todos=len(store.todos))
