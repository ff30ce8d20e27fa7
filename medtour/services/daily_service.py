import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx

from ..config import DAILY_API_KEY, DAILY_API_URL, DAILY_ROOM_PREFIX

logger = logging.getLogger(__name__)


class DailyServiceError(Exception):
    """Raised when the Daily.co API rejects a request or cannot be reached"""


@dataclass
class DailyRoom:
    url: str
    name: str


def _epoch_seconds(value: datetime) -> int:
    # Stored datetimes are naive UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


class DailyService:
    """Service for interacting with the Daily.co REST API"""

    TIMEOUT = 15.0

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        room_prefix: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or DAILY_API_KEY
        self.base_url = (base_url or DAILY_API_URL).rstrip("/")
        self.room_prefix = room_prefix or DAILY_ROOM_PREFIX
        self.transport = transport

        if not self.api_key:
            logger.error("❌ DAILY_API_KEY not configured in environment variables")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.TIMEOUT,
            transport=self.transport,
        )

    def build_room_name(self, reference: str) -> str:
        return f"{self.room_prefix}-{reference}-{int(time.time() * 1000)}"

    def build_room_properties(self, scheduled_date: datetime, duration: int) -> dict[str, Any]:
        """Room is only usable between the scheduled start and start + duration"""
        expires_at = scheduled_date + timedelta(minutes=duration)
        return {
            "nbf": _epoch_seconds(scheduled_date),
            "exp": _epoch_seconds(expires_at),
            "max_participants": 2,
            "enable_screenshare": True,
            "enable_chat": True,
        }

    async def create_room(self, reference: str, scheduled_date: datetime, duration: int) -> DailyRoom:
        """Create a private two-person room for one appointment"""
        if not self.api_key:
            raise DailyServiceError("Daily.co API key not configured")

        payload = {
            "name": self.build_room_name(reference),
            "properties": self.build_room_properties(scheduled_date, duration),
        }

        try:
            async with self._client() as client:
                response = await client.post("/rooms", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"❌ Daily.co request failed: {e}")
            raise DailyServiceError(f"Daily.co request failed: {e}") from e

        if response.status_code >= 400:
            logger.error(f"❌ Daily.co room creation failed: {response.status_code}")
            logger.error(f"❌ Error response: {response.text}")
            raise DailyServiceError(
                f"Daily.co API error: {response.status_code} - {response.text}"
            )

        room_data = response.json()
        logger.info(f"✅ Daily.co room created successfully: {room_data.get('name')}")
        return DailyRoom(url=room_data["url"], name=room_data["name"])

    async def delete_room(self, room_name: str) -> None:
        """Delete a room; a room that no longer exists counts as deleted"""
        try:
            async with self._client() as client:
                response = await client.delete(f"/rooms/{room_name}")
        except httpx.HTTPError as e:
            logger.error(f"❌ Daily.co request failed: {e}")
            raise DailyServiceError(f"Daily.co request failed: {e}") from e

        if response.status_code == 404:
            logger.info(f"ℹ️ Daily.co room {room_name} already gone")
            return
        if response.status_code >= 400:
            logger.error(f"❌ Daily.co room deletion failed: {response.status_code}")
            raise DailyServiceError(
                f"Daily.co API error: {response.status_code} - {response.text}"
            )
        logger.info(f"🗑️ Daily.co room deleted: {room_name}")


_daily_service: Optional[DailyService] = None


def get_daily_service() -> DailyService:
    """FastAPI dependency returning the shared Daily.co client"""
    global _daily_service
    if _daily_service is None:
        _daily_service = DailyService()
    return _daily_service
