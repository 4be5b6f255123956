"""Zoom meetings and 100ms video room tokens"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import httpx
from jose import jwt
import logging

from app.config import settings
from app.core.exceptions import ExternalServiceError
from app.schemas.meeting import MeetingResponse

logger = logging.getLogger(__name__)

HMS_TOKEN_TTL = timedelta(hours=24)


class ZoomClient:
    """Server-to-server OAuth client for the Zoom meetings API."""

    def __init__(
        self,
        account_id: str,
        client_id: str,
        client_secret: str,
        oauth_url: str = "https://zoom.us/oauth/token",
        api_url: str = "https://api.zoom.us/v2",
        timeout: float = 10.0,
    ):
        self.account_id = account_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.oauth_url = oauth_url
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "ZoomClient":
        return cls(
            account_id=settings.ZOOM_ACCOUNT_ID,
            client_id=settings.ZOOM_CLIENT_ID,
            client_secret=settings.ZOOM_CLIENT_SECRET,
            oauth_url=settings.ZOOM_OAUTH_URL,
            api_url=settings.ZOOM_API_URL,
            timeout=settings.EXTERNAL_API_TIMEOUT,
        )

    async def get_access_token(self, client: httpx.AsyncClient) -> str:
        response = await client.post(
            self.oauth_url,
            params={"grant_type": "account_credentials", "account_id": self.account_id},
            auth=(self.client_id, self.client_secret),
        )
        response.raise_for_status()
        return response.json()["access_token"]

    async def create_meeting(self, topic: str = "Billing Support Meeting", duration: int = 30) -> MeetingResponse:
        """Schedule a meeting for the account owner and return its join link."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                token = await self.get_access_token(client)
                response = await client.post(
                    f"{self.api_url}/users/me/meetings",
                    headers={"Authorization": f"Bearer {token}"},
                    json={
                        "topic": topic,
                        "type": 2,
                        "duration": duration,
                        "settings": {"host_video": True, "participant_video": True},
                    },
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, KeyError) as e:
            detail = e.response.text if isinstance(e, httpx.HTTPStatusError) else str(e)
            logger.error(f"Zoom Error: {detail}")
            raise ExternalServiceError(error="Failed to create Zoom meeting") from e

        return MeetingResponse(meeting_id=data["id"], join_url=data["join_url"])


def get_zoom_client() -> ZoomClient:
    return ZoomClient.from_settings()


def create_hms_token(
    room_id: str,
    role: str,
    access_key: Optional[str] = None,
    secret: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """Signed 100ms app token (HS256) for joining ``room_id`` as ``role``, valid 24 hours."""
    now = now or datetime.now(timezone.utc)
    issued_at = int(now.timestamp())
    payload = {
        "access_key": access_key if access_key is not None else settings.HMS_ACCESS_KEY,
        "room_id": room_id,
        "user_id": f"user-{issued_at * 1000}",
        "role": role,
        "type": "app",
        "version": 2,
        "jti": str(uuid.uuid4()),
        "iat": issued_at,
        "nbf": issued_at,
        "exp": int((now + HMS_TOKEN_TTL).timestamp()),
    }
    return jwt.encode(payload, secret if secret is not None else settings.HMS_SECRET, algorithm="HS256")
