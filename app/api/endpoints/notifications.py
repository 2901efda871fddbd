# app/api/endpoints/notifications.py
import logging
from typing import Optional

import asyncpg
from fastapi import APIRouter, Body, Depends, HTTPException, status

from app.api import deps
from app.core.config import settings
from app.crud import crud_user
from app.crud.crud_user import DatabaseInteractionError
from app.schemas import notification as notif_schemas
from app.schemas import token as token_schemas
from app.schemas import user as user_schemas
from app.services import notifications as notif_service
from app.services.notifications import ContestNotFoundError, TopicNotFoundError
from app.services.novu import DISCORD_PROVIDER, FCM_PROVIDER, NovuAPIError, NovuClient
from app.utils.user_records import MISSING_FIELDS_MESSAGE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notif", tags=["Notifications"])

INTERNAL_SERVER_ERROR = "Internal server error"


# --- Error mapping ---

def _novu_failure(e: NovuAPIError) -> HTTPException:
    # Unlike user creation, the upstream message is passed back to the caller
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"message": INTERNAL_SERVER_ERROR, "error": e.message},
    )


def _not_found(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"message": message})


def _missing_fields() -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail={"error": MISSING_FIELDS_MESSAGE})


# === Subscribers ===

@router.post("/subscriber", status_code=status.HTTP_201_CREATED, response_model=user_schemas.MessageResponse)
async def add_subscriber(
    token_data: token_schemas.FirebaseTokenData = Depends(deps.get_verified_token_data),
    novu: NovuClient = Depends(deps.get_novu_client),
):
    """Registers the caller with Novu and attaches the Discord webhook credentials."""
    try:
        await novu.identify_subscriber(token_data.uid, email=token_data.email, first_name=token_data.name)
        await novu.set_credentials(token_data.uid, DISCORD_PROVIDER, {"webhookUrl": settings.DISCORD_WEBHOOK_URL})
    except NovuAPIError as e:
        raise _novu_failure(e)
    return {"message": "Subscriber added successfully"}


@router.delete("/subscriber", response_model=user_schemas.MessageResponse)
async def delete_subscriber(
    token_data: token_schemas.FirebaseTokenData = Depends(deps.get_verified_token_data),
    novu: NovuClient = Depends(deps.get_novu_client),
):
    try:
        await novu.delete_subscriber(token_data.uid)
    except NovuAPIError as e:
        raise _novu_failure(e)
    return {"message": "Subscriber deleted successfully"}


@router.put("/device")
async def update_device_id(
    payload: Optional[notif_schemas.DeviceTokenUpdate] = Body(None),
    token_data: token_schemas.FirebaseTokenData = Depends(deps.get_verified_token_data),
    db: asyncpg.Connection = Depends(deps.get_db),
    novu: NovuClient = Depends(deps.get_novu_client),
):
    """
    Stores the caller's FCM device token and registers it with Novu.
    Responds with the request body unchanged.
    """
    payload = payload or notif_schemas.DeviceTokenUpdate()
    if not payload.deviceID:
        raise _missing_fields()

    try:
        user = await crud_user.get_user_by_uid(db=db, uid=token_data.uid)
    except DatabaseInteractionError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail={"message": INTERNAL_SERVER_ERROR})
    if user is None:
        raise _not_found("User not found")

    try:
        await novu.identify_subscriber(token_data.uid, email=user.get("email"), first_name=user.get("name"))
        await novu.set_credentials(token_data.uid, FCM_PROVIDER, {"deviceTokens": [payload.deviceID]})
    except NovuAPIError as e:
        raise _novu_failure(e)

    try:
        await crud_user.update_user_fields(db=db, uid=token_data.uid, fields={"deviceID": payload.deviceID})
    except DatabaseInteractionError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": INTERNAL_SERVER_ERROR, "error": str(e)},
        )

    return payload.model_dump(exclude_unset=True)


# === Topics ===

@router.get("/topics")
async def get_all_topics(
    _token: token_schemas.FirebaseTokenData = Depends(deps.get_verified_token_data),
    novu: NovuClient = Depends(deps.get_novu_client),
):
    try:
        return await novu.list_topics()
    except NovuAPIError as e:
        raise _novu_failure(e)


@router.post(
    "/topic",
    status_code=status.HTTP_201_CREATED,
    response_model=user_schemas.MessageResponse,
    dependencies=[Depends(deps.get_current_admin)],
)
async def create_topic(
    payload: Optional[notif_schemas.TopicCreate] = Body(None),
    novu: NovuClient = Depends(deps.get_novu_client),
):
    payload = payload or notif_schemas.TopicCreate()
    if not payload.key or not payload.name:
        raise _missing_fields()

    try:
        await novu.create_topic(payload.key, payload.name)
    except NovuAPIError as e:
        raise _novu_failure(e)
    return {"message": "Topic created successfully"}


@router.post("/topic/subscribe", status_code=status.HTTP_201_CREATED, response_model=user_schemas.MessageResponse)
async def add_subscriber_to_topic(
    payload: Optional[notif_schemas.TopicSubscription] = Body(None),
    token_data: token_schemas.FirebaseTokenData = Depends(deps.get_verified_token_data),
    novu: NovuClient = Depends(deps.get_novu_client),
):
    payload = payload or notif_schemas.TopicSubscription()
    if not payload.topicKey:
        raise _missing_fields()

    try:
        await notif_service.subscribe_to_topic(novu, payload.topicKey, [token_data.uid])
    except TopicNotFoundError as e:
        raise _not_found(str(e))
    except NovuAPIError as e:
        raise _novu_failure(e)
    return {"message": "Subscriber added to topic successfully"}


@router.post("/topic/unsubscribe", response_model=user_schemas.MessageResponse)
async def remove_subscriber_from_topic(
    payload: Optional[notif_schemas.TopicSubscription] = Body(None),
    token_data: token_schemas.FirebaseTokenData = Depends(deps.get_verified_token_data),
    novu: NovuClient = Depends(deps.get_novu_client),
):
    payload = payload or notif_schemas.TopicSubscription()
    if not payload.topicKey:
        raise _missing_fields()

    try:
        await notif_service.unsubscribe_from_topic(novu, payload.topicKey, [token_data.uid])
    except TopicNotFoundError as e:
        raise _not_found(str(e))
    except NovuAPIError as e:
        raise _novu_failure(e)
    return {"message": "Subscriber removed from topic successfully"}


@router.post(
    "/topic/trigger",
    response_model=user_schemas.MessageResponse,
    dependencies=[Depends(deps.get_current_admin)],
)
async def trigger_contest_notification(
    payload: Optional[notif_schemas.ContestAlertRequest] = Body(None),
    db: asyncpg.Connection = Depends(deps.get_db),
    novu: NovuClient = Depends(deps.get_novu_client),
):
    """Sends the contest-alert workflow for `contestVanity` to everyone on `topicKey`."""
    payload = payload or notif_schemas.ContestAlertRequest()
    if not payload.topicKey or not payload.contestVanity:
        raise _missing_fields()

    try:
        await notif_service.dispatch_contest_alert(
            db,
            novu,
            topic_key=payload.topicKey,
            contest_vanity=payload.contestVanity,
            workflow=settings.CONTEST_ALERT_WORKFLOW,
            timezone=settings.CONTEST_TIMEZONE,
        )
    except (TopicNotFoundError, ContestNotFoundError) as e:
        raise _not_found(str(e))
    except NovuAPIError as e:
        raise _novu_failure(e)
    except DatabaseInteractionError:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail={"message": INTERNAL_SERVER_ERROR})
    return {"message": "Notification triggered successfully"}
