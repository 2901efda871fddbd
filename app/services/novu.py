# app/services/novu.py
"""Minimal async client for the Novu REST API (subscribers, topics, events)."""
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

DISCORD_PROVIDER = "discord"
FCM_PROVIDER = "fcm"


class NovuAPIError(Exception):
    """Any failed call to Novu: transport error or non-2xx response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NovuClient:
    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.novu.co/v1",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # Injected in tests (httpx.MockTransport)
        self._transport = transport

    async def _request(self, method: str, path: str, json: Any = None, allow_404: bool = False) -> Optional[Dict[str, Any]]:
        if not self.api_key:
            raise NovuAPIError("NOVU_API_KEY is not configured")

        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"ApiKey {self.api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.request(method, url, headers=headers, json=json)
        except httpx.HTTPError as e:
            logger.error(f"Novu {method} {path} failed: {e}", exc_info=True)
            raise NovuAPIError(str(e) or type(e).__name__) from e

        if allow_404 and resp.status_code == 404:
            return None
        if resp.is_error:
            message = _error_message(resp)
            logger.warning(f"Novu {method} {path} -> {resp.status_code}: {message}")
            raise NovuAPIError(message, status_code=resp.status_code)

        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            logger.warning(f"Novu {method} {path} -> {resp.status_code}: body is not JSON")
            raise NovuAPIError(f"Invalid JSON response from Novu: {e}", status_code=resp.status_code) from e

    # --- Subscribers ---

    async def identify_subscriber(self, subscriber_id: str, email: Optional[str] = None, first_name: Optional[str] = None):
        payload = {"subscriberId": subscriber_id, "email": email, "firstName": first_name}
        return await self._request("POST", "/subscribers", json=payload)

    async def delete_subscriber(self, subscriber_id: str):
        return await self._request("DELETE", f"/subscribers/{subscriber_id}")

    async def set_credentials(self, subscriber_id: str, provider_id: str, credentials: Dict[str, Any]):
        payload = {"providerId": provider_id, "credentials": credentials}
        return await self._request("PUT", f"/subscribers/{subscriber_id}/credentials", json=payload)

    # --- Topics ---

    async def create_topic(self, key: str, name: str):
        return await self._request("POST", "/topics", json={"key": key, "name": name})

    async def get_topic(self, key: str) -> Optional[Dict[str, Any]]:
        """The topic, or None when Novu does not know the key."""
        body = await self._request("GET", f"/topics/{key}", allow_404=True)
        if body is None:
            return None
        return body.get("data", body)

    async def list_topics(self):
        return await self._request("GET", "/topics")

    async def add_subscribers(self, key: str, subscriber_ids: List[str]):
        return await self._request("POST", f"/topics/{key}/subscribers", json={"subscribers": subscriber_ids})

    async def remove_subscribers(self, key: str, subscriber_ids: List[str]):
        return await self._request("POST", f"/topics/{key}/subscribers/removal", json={"subscribers": subscriber_ids})

    # --- Events ---

    async def trigger(self, workflow: str, to: Any, payload: Dict[str, Any]):
        return await self._request("POST", "/events/trigger", json={"name": workflow, "to": to, "payload": payload})


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(body, dict) and body.get("message"):
        message = body["message"]
        return message if isinstance(message, str) else str(message)
    return f"HTTP {resp.status_code}"
