"""
api/main.py -- FastAPI application entry point for the library service.

Run with:  uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware     -- adds CORS headers for allowed browser origins
  2. SlowAPIMiddleware  -- enforces per-route rate limits from api.limiter
  3. log_requests       -- one log line per request with latency

Lifespan builds the object graph once per process:

  Settings -> UserStore, CatalogStore
           -> TokenCodec(secret_key, token_ttl_seconds)
           -> SessionDirectory(user_store.engine)
           -> AccessGuard, AuthService

and stores it on app.state, where auth.dependencies and the routes find it.
Tests call init_state() with their own stores and codec instead.
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
from api.routes.v1.authors import router as authors_router
from api.routes.v1.books import router as books_router
from api.routes.v1.users import router as users_router
from auth.errors import AuthError
from auth.guard import AccessGuard, Clock, utc_now
from auth.passwords import BCRYPT_ROUNDS
from auth.service import AuthService
from auth.sessions import SessionDirectory
from auth.store import UserStore
from auth.tokens import TokenCodec
from catalog.store import CatalogStore
from core.config import get_settings

_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("library.api")


# ---------------------------------------------------------------------------
# Object graph
# ---------------------------------------------------------------------------


def init_state(
    app: FastAPI,
    user_store: UserStore,
    catalog: CatalogStore,
    codec: TokenCodec,
    clock: Clock = utc_now,
    bcrypt_rounds: int = BCRYPT_ROUNDS,
) -> None:
    """Wire stores and auth components onto app.state.

    The session directory shares the user store's engine: the session record
    is a column of the users table.
    """
    sessions = SessionDirectory(user_store.engine)
    app.state.user_store = user_store
    app.state.catalog = catalog
    app.state.sessions = sessions
    app.state.codec = codec
    app.state.guard = AccessGuard(codec, sessions, clock)
    app.state.auth_service = AuthService(user_store, sessions, codec, clock, bcrypt_rounds)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build shared resources on startup and release them on shutdown.

    The secret key is fixed for the process lifetime. Restarting with a new
    SECRET_KEY invalidates every outstanding token.
    """
    settings = get_settings()
    logger.info("Library API starting up")
    user_store = UserStore(settings.database_url)
    catalog = CatalogStore(settings.database_url)
    codec = TokenCodec(settings.secret_key, settings.token_ttl_seconds)
    init_state(app, user_store, catalog, codec)
    logger.info("Auth initialized (token_ttl=%ds)", settings.token_ttl_seconds)

    yield

    catalog.close()
    user_store.close()
    logger.info("Library API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Library API",
    description="Books, authors and users behind token authentication.",
    version=_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
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
app.include_router(books_router, prefix="/api/v1", tags=["Books"])
app.include_router(authors_router, prefix="/api/v1", tags=["Authors"])
app.include_router(users_router, prefix="/api/v1", tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render any auth failure: 401 authentication, 403 role, 400 conflict, 500 storage.

    For InvalidToken the underlying reason (token_expired, bad_signature,
    no_live_session, ...) goes into the detail field.
    """
    if exc.status_code >= 500:
        logger.error("Auth failure on %s %s: %s", request.method, request.url.path, exc.code)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(code=exc.code, message=exc.message, detail=exc.reason),
        ).model_dump(),
    )


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
    """Return 400 when the request body or path/query params fail validation.

    pydantic's "input" and "ctx" entries are dropped: for a body error the
    input is the whole submitted body, password included.
    """
    errors = [{k: v for k, v in err.items() if k not in ("input", "ctx")} for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(errors),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for HTTPExceptions raised by route handlers.

    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is logged, never returned to the client.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="Internal Server Error",
            )
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and database reachability. No auth, no rate limit."""
    user_store: UserStore = request.app.state.user_store
    database = "ok" if user_store.ping() else "error"
    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        version=_VERSION,
        components={"app": "ok", "database": database},
    )
