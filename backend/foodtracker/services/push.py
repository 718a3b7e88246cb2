"""
Push Dispatcher: delivers a single notification to the Expo push gateway.

Best effort only: nothing is retried here. The caller decides what a failure
means (the expiration notifier simply leaves the pair unlogged so the next run
tries again).
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from foodtracker.config import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    ok: bool
    reason: str | None = None


class PushDispatcher:
    """Sends notifications over HTTP. Usable as an async context manager."""

    def __init__(
        self,
        gateway_url: str | None = None,
        access_token: str | None = None,
        timeout: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        settings = get_settings()
        self.gateway_url = gateway_url or settings.PUSH_GATEWAY_URL
        self.access_token = access_token if access_token is not None else settings.PUSH_ACCESS_TOKEN
        self.timeout = timeout or settings.PUSH_TIMEOUT_SECONDS
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._owns_client and self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "PushDispatcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _headers(self) -> dict:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def send(
        self,
        address: str,
        title: str,
        body: str,
        metadata: dict[str, Any] | None = None,
    ) -> DispatchResult:
        payload = {"to": address, "title": title, "body": body, "data": metadata or {}}
        client = await self._get_client()

        try:
            response = await client.post(self.gateway_url, json=payload, headers=self._headers())
        except httpx.HTTPError as e:
            logger.warning(f"Push gateway unreachable: {e!r}")
            return DispatchResult(ok=False, reason=f"gateway unreachable: {e.__class__.__name__}")

        if response.status_code >= 400:
            reason = f"gateway returned HTTP {response.status_code}"
            logger.warning(f"{reason}: {response.text[:200]}")
            return DispatchResult(ok=False, reason=reason)

        # Expo answers 200 with a per-message ticket; an error ticket is a failed send.
        ticket = _ticket_from(response)
        if ticket.get("status") == "error":
            reason = ticket.get("message") or "gateway rejected the notification"
            details = ticket.get("details") or {}
            if details.get("error"):
                reason = f"{details['error']}: {reason}"
            return DispatchResult(ok=False, reason=reason)

        return DispatchResult(ok=True)


def _ticket_from(response: httpx.Response) -> dict:
    try:
        data = response.json().get("data")
    except (ValueError, AttributeError):
        return {}
    if isinstance(data, list):
        data = data[0] if data else {}
    return data if isinstance(data, dict) else {}
