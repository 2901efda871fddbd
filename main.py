# main.py
"""
Digitomize users API: account provisioning, owner dashboard, and Novu
notification subscriptions. Run with `uvicorn main:app`.
"""
import os
import time
import uuid
from contextlib import asynccontextmanager

import asyncpg
import firebase_admin
import sentry_sdk
from fastapi import FastAPI, HTTPException, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from firebase_admin import credentials
from sentry_sdk.integrations.asyncpg import AsyncPGIntegration
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from app.core.config import settings, BASE_DIR
# Must run before the routers are imported so their module loggers inherit the config
import app.core.logging
from app.core.rate_limit import limiter

logger = app.core.logging.get_logger(__name__)

from app.db.base import close_db_pool, init_db_pool
from app.api.endpoints import admin as admin_router
from app.api.endpoints import notifications as notifications_router
from app.api.endpoints import users as users_router

INTERNAL_SERVER_ERROR = {"error": "Internal server error"}


def _init_sentry() -> None:
    if not settings.SENTRY_DSN or settings.ENVIRONMENT == "development":
        logger.warning("Sentry DSN not set or ENVIRONMENT is development; Sentry disabled.")
        return
    try:
        sentry_sdk.init(
            dsn=settings.SENTRY_DSN,
            environment=settings.ENVIRONMENT,
            traces_sample_rate=0.2,
            profiles_sample_rate=0.1,
            integrations=[StarletteIntegration(), FastApiIntegration(), AsyncPGIntegration()],
            # Profiles carry emails and phone numbers
            send_default_pii=False,
        )
        logger.info(f"Sentry initialized for environment: {settings.ENVIRONMENT}")
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}", exc_info=True)


def _init_firebase() -> None:
    """Token verification and admin create/delete need the Admin SDK; tests mock both."""
    if settings.ENVIRONMENT == "test":
        logger.warning("Test environment: Firebase Admin SDK not initialized, auth is mocked.")
        return
    if firebase_admin._apps:
        logger.info("Firebase Admin SDK already initialized.")
        return

    cred_path = os.path.join(BASE_DIR, settings.FIREBASE_SERVICE_ACCOUNT_KEY_PATH)
    logger.info(f"Loading Firebase credentials from: {cred_path}")
    try:
        if not os.path.exists(cred_path):
            raise FileNotFoundError(f"Service account key not found: {cred_path}")
        firebase_admin.initialize_app(credentials.Certificate(cred_path))
    except Exception as e:
        logger.critical(f"CRITICAL: Firebase Admin SDK setup failed: {e}", exc_info=True)
        raise RuntimeError("Could not initialize Firebase Admin SDK.") from e
    logger.info("Firebase Admin SDK initialized.")


logger.info(f"Starting Digitomize users API in {settings.ENVIRONMENT} mode...")
_init_sentry()
_init_firebase()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Owns the asyncpg pool; the process exits if the database never comes up."""
    if settings.ENVIRONMENT == "test":
        logger.warning("Test environment: DB pool not created, get_db is overridden.")
        yield
        return

    try:
        await init_db_pool()
    except Exception as e:
        logger.critical(f"CRITICAL: Database pool initialization failed: {e}. Exiting.", exc_info=True)
        raise SystemExit(1) from e

    logger.info("Application startup complete.")
    yield
    await close_db_pool()
    logger.info("Application shutdown complete.")


app = FastAPI(
    title="Digitomize Users API",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """Request ID (taken from X-Request-ID or generated), timing log and security headers."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    started = time.perf_counter()

    logger.info(f"RID:{request_id} START {request.method} {request.url.path}")
    try:
        response: Response = await call_next(request)
    except Exception as e:
        logger.error(f"RID:{request_id} Error during {request.method} {request.url.path}: {e}", exc_info=True)
        raise

    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"RID:{request_id} END {request.method} {request.url.path} Status: {response.status_code} ({elapsed_ms:.1f} ms)")
    response.headers["X-Request-ID"] = request_id
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    return response


def _rid(request: Request) -> str:
    return getattr(request.state, "request_id", "N/A")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Handlers raise HTTPException with the final body as `detail`
    (e.g. {"error": "Missing required fields"}); it is sent unwrapped.
    String details keep FastAPI's {"detail": ...} shape.
    """
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(f"RID:{_rid(request)} {request.method} {request.url.path} -> {exc.status_code}: {exc.detail}")
    content = exc.detail if isinstance(exc.detail, dict) else {"detail": exc.detail}
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(content), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    logger.warning(f"RID:{_rid(request)} Validation error for {request.method} {request.url.path}: {errors}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Validation Error", "errors": errors},
    )


@app.exception_handler(asyncpg.PostgresError)
async def db_exception_handler(request: Request, exc: asyncpg.PostgresError):
    logger.error(
        f"RID:{_rid(request)} Database error during {request.method} {request.url.path}: SQLSTATE={exc.sqlstate} - {exc}",
        exc_info=True,
    )
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=INTERNAL_SERVER_ERROR)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"RID:{_rid(request)} Unhandled {type(exc).__name__} during {request.method} {request.url.path}: {exc}",
        exc_info=True,
    )
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=INTERNAL_SERVER_ERROR)


app.include_router(users_router.router, prefix=settings.API_V1_STR)
app.include_router(admin_router.router, prefix=settings.API_V1_STR)
app.include_router(notifications_router.router, prefix=settings.API_V1_STR)


@app.get("/", include_in_schema=False)
async def read_root():
    return {"message": f"Welcome to the {app.title}!"}
