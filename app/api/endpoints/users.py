# app/api/endpoints/users.py
import logging
from typing import Any, Dict, Optional

import asyncpg
from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from app.api import deps
from app.core.config import settings
from app.core.rate_limit import limiter
from app.crud import crud_user
from app.crud.crud_user import DatabaseInteractionError
from app.schemas import token as token_schemas
from app.schemas import user as user_schemas
from app.schemas.user import CanonicalUserRecord
from app.utils.dashboard import DashboardShapingError, UserNotFoundError, project_dashboard
from app.utils.error_classifier import ErrorKind, classify
from app.utils.user_records import (MISSING_FIELDS_MESSAGE, InvalidRecordError, InvalidSocialLinkError,
                                    MergePrecedence, MissingFieldError, build_record)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["User"])

CREATED_MESSAGE = "User created successfully"
INTERNAL_SERVER_ERROR = "Internal server error"


# --- Shared by self-signup and admin create ---

def record_from_request(claims: Dict[str, Any], overrides: Dict[str, Any], precedence: MergePrecedence) -> CanonicalUserRecord:
    """build_record, with its failures turned into 400 responses."""
    try:
        return build_record(claims, overrides, precedence)
    except MissingFieldError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": MISSING_FIELDS_MESSAGE})
    except InvalidSocialLinkError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": e.reason, "message": e.reason})
    except InvalidRecordError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(e)})


async def persist_new_user(db: asyncpg.Connection, record: CanonicalUserRecord) -> JSONResponse:
    """Inserts the record and answers 201, or whatever the classifier makes of the failure."""
    try:
        await crud_user.insert_user(db=db, document=record.model_dump(exclude_unset=True))
    except Exception as e:
        classified = classify(e)
        if classified.kind is ErrorKind.CONFLICT:
            # Repeated signups are not an error for the client
            return JSONResponse(status_code=classified.status_code, content=classified.to_content())
        raise HTTPException(status_code=classified.status_code, detail=classified.to_content())

    return JSONResponse(status_code=status.HTTP_201_CREATED, content={"message": CREATED_MESSAGE})


# === Account Endpoints ===

@router.post(
    "/signup",
    status_code=status.HTTP_201_CREATED,
    response_model=user_schemas.MessageResponse,
    responses={200: {"description": "User already exists."}},
)
@limiter.limit(settings.SIGNUP_RATE_LIMIT)
async def signup(
    request: Request,
    overrides: Optional[user_schemas.RequestOverrides] = Body(None),
    token_data: token_schemas.FirebaseTokenData = Depends(deps.get_verified_token_data),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """
    Creates the caller's user document from their Firebase token.

    `name` and `username` in the body replace the token values; every other
    profile field is taken from the token.
    """
    body = overrides.model_dump(exclude_unset=True) if overrides else {}
    record = record_from_request(token_data.as_claims(), body, MergePrecedence.OVERRIDE_WINS)
    return await persist_new_user(db, record)


@router.get("/dashboard")
async def read_dashboard(
    token_data: token_schemas.FirebaseTokenData = Depends(deps.get_verified_token_data),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """The caller's full profile, including fields hidden from the public website."""
    try:
        stored = await crud_user.get_user_by_uid(db=db, uid=token_data.uid)
    except DatabaseInteractionError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail={"error": INTERNAL_SERVER_ERROR})

    try:
        return project_dashboard(stored)
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"message": "User not found", "error": "User not found"})
    except DashboardShapingError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail={"error": INTERNAL_SERVER_ERROR})
