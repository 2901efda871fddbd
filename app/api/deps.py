# app/api/deps.py
import logging
from typing import Any, AsyncGenerator, Dict

import asyncpg
from fastapi import Depends, HTTPException, Request, status

from app.core.config import settings
from app.crud import crud_user
from app.db import base as db_base
from app.schemas.token import FirebaseTokenData
from app.services.novu import NovuClient

# Firebase Admin SDK (initialized in main.py)
from firebase_admin import auth as firebase_auth

logger = logging.getLogger(__name__)

UNAUTH_TEXT = "Could not validate credentials"

InvalidTokenError = firebase_auth.InvalidIdTokenError

# --- Database Dependency ---
async def get_db() -> AsyncGenerator[asyncpg.Connection, None]:
    """
    FastAPI dependency that provides an asyncpg connection from the pool.
    Handles acquiring and releasing the connection.
    """
    pool = db_base.db_pool
    if not pool:
        logger.error("Database pool is not available when trying to get connection.")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database service is not available.",
        )

    try:
        async with pool.acquire() as conn:
            yield conn
    except asyncpg.PostgresError as db_err:
        logger.error(f"Database connection error during request processing: SQLSTATE={db_err.sqlstate} - {db_err}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="A database error occurred.")


# --- Authentication/Authorization Dependencies ---

def _unauthorized(detail: str = UNAUTH_TEXT) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_verified_token_data(request: Request) -> FirebaseTokenData:
    """Verifies the `Authorization: Bearer <id token>` header and returns the decoded claims."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        raise _unauthorized()

    try:
        scheme, token = auth_header.split(" ", 1)
    except ValueError:
        raise _unauthorized()

    if scheme.lower() != "bearer" or not token:
        raise _unauthorized()

    # Local test runs use the uid itself as the token
    if settings.ENVIRONMENT == "test" and "." not in token:
        return FirebaseTokenData(uid=token)

    try:
        token_data = await firebase_verify_token(token)
    except InvalidTokenError:
        raise _unauthorized("Invalid Firebase token")

    if not token_data.uid:
        raise _unauthorized()
    return token_data


async def get_current_user(
    db: asyncpg.Connection = Depends(get_db),
    token_data: FirebaseTokenData = Depends(get_verified_token_data),
) -> Dict[str, Any]:
    """Stored record of the caller; 403 if the account no longer exists."""
    try:
        user = await crud_user.get_user_by_uid(db=db, uid=token_data.uid)
    except crud_user.DatabaseInteractionError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Error retrieving user information.")

    if user is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User no longer exists")
    return user


async def get_current_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != "admin":
        logger.warning(f"Admin check failed for uid {user.get('uid')}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin privileges required")
    return user


# --- External services ---

def get_novu_client() -> NovuClient:
    return NovuClient(
        api_key=settings.NOVU_API_KEY,
        base_url=settings.NOVU_API_URL,
        timeout=settings.NOVU_TIMEOUT_SECONDS,
    )


# ------------------------------------------------------------------
# Helper: verify a Firebase ID-token and return our Pydantic model
# ------------------------------------------------------------------
async def firebase_verify_token(token: str) -> FirebaseTokenData:
    """
    Verifies a Firebase ID token and converts the decoded claims into our
    FirebaseTokenData schema. Raises InvalidTokenError on any failure so the
    caller can respond with 401.
    """
    try:
        claims = firebase_auth.verify_id_token(token)
    except Exception as exc:          # all errors → InvalidTokenError
        raise InvalidTokenError(str(exc)) from exc

    claims = dict(claims)
    claims["uid"] = claims.get("uid") or claims.get("user_id")
    # Registered JWT claims are not profile data
    for reserved in ("iss", "aud", "auth_time", "user_id", "sub", "iat", "exp", "firebase"):
        claims.pop(reserved, None)
    try:
        return FirebaseTokenData(**claims)
    except ValueError as exc:
        raise InvalidTokenError(str(exc)) from exc
