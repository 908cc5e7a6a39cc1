"""Video room provisioning via the Daily.co REST API."""

import logging
from datetime import datetime
from typing import Any

import httpx

from daiyet.config import settings
from daiyet.core.exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class DailyRoomService:
    """Create private Daily.co rooms."""

    def __init__(
        self,
        api_key: str | None = None,
        api_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.daily_api_key
        self.api_url = (api_url or settings.daily_api_url).rstrip("/")
        self._http_client = http_client

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise ExternalServiceError("daily", "API key not configured")
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    @staticmethod
    def room_payload(name: str, expires_at: datetime, max_participants: int) -> dict[str, Any]:
        """Request body for a private consultation room."""
        return {
            "name": name,
            "privacy": "private",
            "properties": {
                "exp": int(expires_at.timestamp()),
                "enable_chat": True,
                "enable_knocking": False,
                "enable_screenshare": True,
                "enable_recording": "none",
                "max_participants": max_participants,
            },
        }

    async def create_room(self, name: str, expires_at: datetime) -> str:
        """Create a room and return its join URL.

        Raises:
            ExternalServiceError: If the API is unreachable or rejects the request
        """
        payload = self.room_payload(name, expires_at, settings.room_max_participants)
        try:
            response = await self.http_client.post(
                f"{self.api_url}/rooms",
                json=payload,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            raise ExternalServiceError("daily", str(e)) from e

        if response.status_code >= 400:
            raise ExternalServiceError("daily", f"HTTP {response.status_code}: {response.text}")

        url = response.json().get("url")
        if not url:
            raise ExternalServiceError("daily", "response did not include a room url")
        logger.info(f"Created Daily room {name}")
        return url
