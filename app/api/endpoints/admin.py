# app/api/endpoints/admin.py
import logging
from typing import Any, Optional

import asyncpg
from fastapi import APIRouter, Body, Depends, HTTPException, status

from app.api import deps
from app.api.endpoints.users import INTERNAL_SERVER_ERROR, persist_new_user, record_from_request
from app.crud import crud_user
from app.crud.crud_user import DatabaseInteractionError
from app.schemas import user as user_schemas
from app.services import identity as identity_service
from app.services.identity import EMAIL_ALREADY_EXISTS, USER_NOT_FOUND, IdentityProviderError
from app.utils.user_records import MISSING_FIELDS_MESSAGE, MergePrecedence

logger = logging.getLogger(__name__)

# Every route here requires role == "admin"
router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(deps.get_current_admin)])


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


def _missing_fields() -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": MISSING_FIELDS_MESSAGE})


@router.get("/user")
async def list_all_users(db: asyncpg.Connection = Depends(deps.get_db)):
    """All user documents (internal id, password and timestamps are never included)."""
    try:
        return await crud_user.list_users(db=db)
    except DatabaseInteractionError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail={"error": INTERNAL_SERVER_ERROR})


@router.put("/user")
async def update_user_role(
    payload: Optional[user_schemas.AdminUserUpdate] = Body(None),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    payload = payload or user_schemas.AdminUserUpdate()
    if _blank(payload.uid) or payload.role is None:
        raise _missing_fields()

    try:
        result = await crud_user.update_user_fields(db=db, uid=payload.uid, fields={"role": payload.role})
    except DatabaseInteractionError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail={"error": INTERNAL_SERVER_ERROR})

    logger.info(f"Role of {payload.uid} set to {payload.role}")
    return {"message": "User Updated Successfully", "user": result}


@router.post("/user", status_code=status.HTTP_201_CREATED, response_model=user_schemas.MessageResponse)
async def create_user(
    payload: Optional[user_schemas.AdminUserCreate] = Body(None),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """
    Creates the Firebase account first, then the user document.

    The document's `name` comes from the Firebase `displayName`; the body
    only fills it in when Firebase returned none.
    """
    payload = payload or user_schemas.AdminUserCreate()
    if _blank(payload.email) or _blank(payload.name) or _blank(payload.password):
        raise _missing_fields()

    try:
        identity = await identity_service.create_identity(
            email=payload.email, display_name=payload.name, password=payload.password
        )
    except IdentityProviderError as e:
        if e.code == EMAIL_ALREADY_EXISTS:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": "Email already exists"})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": INTERNAL_SERVER_ERROR, "message": e.diagnostic},
        )
    except Exception as e:
        logger.error(f"Unexpected error creating Firebase identity for {payload.email}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": INTERNAL_SERVER_ERROR, "message": str(e)},
        )

    overrides = payload.model_dump(exclude_unset=True, exclude={"email", "password"})
    record = record_from_request(
        identity_service.identity_claims(identity), overrides, MergePrecedence.CLAIMS_WINS_IF_PRESENT
    )
    return await persist_new_user(db, record)


@router.delete("/user")
async def delete_user(
    payload: Optional[user_schemas.AdminUserDelete] = Body(None),
    db: asyncpg.Connection = Depends(deps.get_db),
):
    """Deletes the Firebase account, then the user document (in that order)."""
    uid = payload.uid if payload else None
    if _blank(uid):
        raise _missing_fields()

    try:
        await identity_service.delete_identity(uid)
    except IdentityProviderError as e:
        status_code = status.HTTP_404_NOT_FOUND if e.code == USER_NOT_FOUND else status.HTTP_500_INTERNAL_SERVER_ERROR
        raise HTTPException(status_code=status_code, detail={"error": e.error_info, "message": e.diagnostic})

    try:
        result = await crud_user.delete_user_by_uid(db=db, uid=uid)
    except DatabaseInteractionError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail={"message": "Something went wrong!!"})

    return {"message": "User deleted successfully", "result": result}
