# tests/api/test_notifications_api.py

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import status
from httpx import AsyncClient

from app.core.config import settings
from app.crud.crud_user import DatabaseInteractionError
from app.services.novu import NovuAPIError
from tests.utils import TEST_EMAIL, TEST_NAME, TEST_UID, make_contest, make_stored_user

API_V1 = settings.API_V1_STR
NOTIF = f"{API_V1}/notif"
TOPIC_KEY = "codeforces-notifs"


# =====================================================
# Subscribers
# =====================================================

@pytest.mark.asyncio
async def test_add_subscriber(client: AsyncClient, mock_auth, novu_client):
    response = await client.post(f"{NOTIF}/subscriber")

    assert response.status_code == status.HTTP_201_CREATED
    novu_client.identify_subscriber.assert_awaited_once_with(TEST_UID, email=TEST_EMAIL, first_name=TEST_NAME)
    novu_client.set_credentials.assert_awaited_once_with(
        TEST_UID, "discord", {"webhookUrl": "https://discord.com/api/webhooks/test"}
    )


@pytest.mark.asyncio
async def test_add_subscriber_novu_failure(client: AsyncClient, mock_auth, novu_client):
    novu_client.identify_subscriber.side_effect = NovuAPIError("Novu API error", status_code=400)
    response = await client.post(f"{NOTIF}/subscriber")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"message": "Internal server error", "error": "Novu API error"}
    novu_client.set_credentials.assert_not_awaited()


@pytest.mark.asyncio
async def test_delete_subscriber(client: AsyncClient, mock_auth, novu_client):
    response = await client.delete(f"{NOTIF}/subscriber")

    assert response.status_code == status.HTTP_200_OK
    novu_client.delete_subscriber.assert_awaited_once_with(TEST_UID)


@pytest.mark.asyncio
async def test_delete_subscriber_failure(client: AsyncClient, mock_auth, novu_client):
    novu_client.delete_subscriber.side_effect = NovuAPIError("Delete failed")
    response = await client.delete(f"{NOTIF}/subscriber")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json()["error"] == "Delete failed"


@pytest.mark.asyncio
async def test_subscriber_routes_require_token(client: AsyncClient, novu_client):
    response = await client.post(f"{NOTIF}/subscriber")
    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    novu_client.identify_subscriber.assert_not_awaited()


# =====================================================
# PUT /notif/device
# =====================================================

@pytest.mark.asyncio
async def test_update_device(client: AsyncClient, mock_auth, novu_client):
    stored = make_stored_user(name="Stored Name")
    with patch("app.crud.crud_user.get_user_by_uid", new=AsyncMock(return_value=stored)), \
         patch("app.crud.crud_user.update_user_fields", new=AsyncMock()) as mock_update:
        response = await client.put(f"{NOTIF}/device", json={"deviceID": "fcm-device-token-123"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"deviceID": "fcm-device-token-123"}
    novu_client.identify_subscriber.assert_awaited_once_with(TEST_UID, email=TEST_EMAIL, first_name="Stored Name")
    novu_client.set_credentials.assert_awaited_once_with(TEST_UID, "fcm", {"deviceTokens": ["fcm-device-token-123"]})
    assert mock_update.call_args.kwargs["fields"] == {"deviceID": "fcm-device-token-123"}


@pytest.mark.asyncio
async def test_update_device_echoes_extra_keys(client: AsyncClient, mock_auth, novu_client):
    body = {"deviceID": "tok", "platform": "android"}
    with patch("app.crud.crud_user.get_user_by_uid", new=AsyncMock(return_value=make_stored_user())), \
         patch("app.crud.crud_user.update_user_fields", new=AsyncMock()):
        response = await client.put(f"{NOTIF}/device", json=body)

    assert response.json() == body


@pytest.mark.asyncio
async def test_update_device_missing_device_id(client: AsyncClient, mock_auth, novu_client):
    with patch("app.crud.crud_user.get_user_by_uid", new=AsyncMock()) as mock_get:
        response = await client.put(f"{NOTIF}/device", json={})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json() == {"error": "Missing required fields"}
    mock_get.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_device_unknown_user(client: AsyncClient, mock_auth, novu_client):
    with patch("app.crud.crud_user.get_user_by_uid", new=AsyncMock(return_value=None)):
        response = await client.put(f"{NOTIF}/device", json={"deviceID": "tok"})

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"message": "User not found"}
    novu_client.set_credentials.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_device_user_lookup_failure(client: AsyncClient, mock_auth, novu_client):
    with patch("app.crud.crud_user.get_user_by_uid", new=AsyncMock(side_effect=DatabaseInteractionError("down"))):
        response = await client.put(f"{NOTIF}/device", json={"deviceID": "tok"})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR


@pytest.mark.asyncio
async def test_update_device_novu_failure_skips_store(client: AsyncClient, mock_auth, novu_client):
    novu_client.set_credentials.side_effect = NovuAPIError("Invalid device token")
    with patch("app.crud.crud_user.get_user_by_uid", new=AsyncMock(return_value=make_stored_user())), \
         patch("app.crud.crud_user.update_user_fields", new=AsyncMock()) as mock_update:
        response = await client.put(f"{NOTIF}/device", json={"deviceID": "tok"})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"message": "Internal server error", "error": "Invalid device token"}
    mock_update.assert_not_awaited()


# =====================================================
# Topics
# =====================================================

@pytest.mark.asyncio
async def test_get_all_topics(client: AsyncClient, mock_auth, novu_client):
    topics = {"data": [{"key": TOPIC_KEY, "name": "Codeforces Notifications"}], "page": 0}
    novu_client.list_topics.return_value = topics
    response = await client.get(f"{NOTIF}/topics")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() == topics


@pytest.mark.asyncio
async def test_create_topic(client: AsyncClient, mock_admin, novu_client):
    response = await client.post(f"{NOTIF}/topic", json={"key": TOPIC_KEY, "name": "Codeforces Notifications"})

    assert response.status_code == status.HTTP_201_CREATED
    novu_client.create_topic.assert_awaited_once_with(TOPIC_KEY, "Codeforces Notifications")


@pytest.mark.asyncio
async def test_create_topic_missing_name(client: AsyncClient, mock_admin, novu_client):
    response = await client.post(f"{NOTIF}/topic", json={"key": TOPIC_KEY})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    novu_client.create_topic.assert_not_awaited()


@pytest.mark.asyncio
async def test_create_topic_requires_admin(client: AsyncClient, mock_auth, novu_client):
    with patch("app.crud.crud_user.get_user_by_uid", new=AsyncMock(return_value=make_stored_user(role="user"))):
        response = await client.post(f"{NOTIF}/topic", json={"key": TOPIC_KEY, "name": "x"})

    assert response.status_code == status.HTTP_403_FORBIDDEN
    novu_client.create_topic.assert_not_awaited()


@pytest.mark.asyncio
async def test_subscribe_to_topic(client: AsyncClient, mock_auth, novu_client):
    response = await client.post(f"{NOTIF}/topic/subscribe", json={"topicKey": TOPIC_KEY})

    assert response.status_code == status.HTTP_201_CREATED
    novu_client.get_topic.assert_awaited_once_with(TOPIC_KEY)
    novu_client.add_subscribers.assert_awaited_once_with(TOPIC_KEY, [TEST_UID])


@pytest.mark.asyncio
async def test_subscribe_to_unknown_topic(client: AsyncClient, mock_auth, novu_client):
    novu_client.get_topic.return_value = None
    response = await client.post(f"{NOTIF}/topic/subscribe", json={"topicKey": "nope"})

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"message": "Topic not found"}
    novu_client.add_subscribers.assert_not_awaited()


@pytest.mark.asyncio
async def test_subscribe_missing_topic_key(client: AsyncClient, mock_auth, novu_client):
    response = await client.post(f"{NOTIF}/topic/subscribe", json={})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    novu_client.get_topic.assert_not_awaited()


@pytest.mark.asyncio
async def test_unsubscribe_from_topic(client: AsyncClient, mock_auth, novu_client):
    response = await client.post(f"{NOTIF}/topic/unsubscribe", json={"topicKey": TOPIC_KEY})

    assert response.status_code == status.HTTP_200_OK
    novu_client.remove_subscribers.assert_awaited_once_with(TOPIC_KEY, [TEST_UID])


@pytest.mark.asyncio
async def test_unsubscribe_novu_failure(client: AsyncClient, mock_auth, novu_client):
    novu_client.remove_subscribers.side_effect = NovuAPIError("Removal failed")
    response = await client.post(f"{NOTIF}/topic/unsubscribe", json={"topicKey": TOPIC_KEY})

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"message": "Internal server error", "error": "Removal failed"}


# =====================================================
# POST /notif/topic/trigger
# =====================================================

@pytest.mark.asyncio
async def test_trigger_contest_alert(client: AsyncClient, mock_admin, novu_client):
    with patch("app.crud.crud_contest.get_contest_by_vanity", new=AsyncMock(return_value=make_contest())):
        response = await client.post(
            f"{NOTIF}/topic/trigger", json={"topicKey": TOPIC_KEY, "contestVanity": "codeforces-round-100"}
        )

    assert response.status_code == status.HTTP_200_OK
    args, kwargs = novu_client.trigger.call_args
    assert args == ("contest-alert",)
    assert kwargs["to"] == [{"type": "Topic", "topicKey": TOPIC_KEY}]
    assert kwargs["payload"]["contest"]["time"] == "1/1/2023, 5:30:00 am"


@pytest.mark.asyncio
async def test_trigger_unknown_topic(client: AsyncClient, mock_admin, novu_client):
    novu_client.get_topic.return_value = None
    with patch("app.crud.crud_contest.get_contest_by_vanity", new=AsyncMock(return_value=None)):
        response = await client.post(f"{NOTIF}/topic/trigger", json={"topicKey": "nope", "contestVanity": "nope"})

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"message": "Topic not found"}
    novu_client.trigger.assert_not_awaited()


@pytest.mark.asyncio
async def test_trigger_unknown_contest(client: AsyncClient, mock_admin, novu_client):
    with patch("app.crud.crud_contest.get_contest_by_vanity", new=AsyncMock(return_value=None)):
        response = await client.post(f"{NOTIF}/topic/trigger", json={"topicKey": TOPIC_KEY, "contestVanity": "nope"})

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"message": "Contest not found"}
    novu_client.trigger.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"topicKey": TOPIC_KEY}, {"contestVanity": "x"}, {}])
async def test_trigger_missing_fields(client: AsyncClient, mock_admin, novu_client, body):
    response = await client.post(f"{NOTIF}/topic/trigger", json=body)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    novu_client.get_topic.assert_not_awaited()


@pytest.mark.asyncio
async def test_trigger_novu_failure(client: AsyncClient, mock_admin, novu_client):
    novu_client.trigger.side_effect = NovuAPIError("Workflow not found", status_code=404)
    with patch("app.crud.crud_contest.get_contest_by_vanity", new=AsyncMock(return_value=make_contest())):
        response = await client.post(
            f"{NOTIF}/topic/trigger", json={"topicKey": TOPIC_KEY, "contestVanity": "codeforces-round-100"}
        )

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"message": "Internal server error", "error": "Workflow not found"}


@pytest.mark.asyncio
async def test_trigger_contest_lookup_failure(client: AsyncClient, mock_admin, novu_client):
    with patch("app.crud.crud_contest.get_contest_by_vanity", new=AsyncMock(side_effect=DatabaseInteractionError("down"))):
        response = await client.post(
            f"{NOTIF}/topic/trigger", json={"topicKey": TOPIC_KEY, "contestVanity": "codeforces-round-100"}
        )

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
