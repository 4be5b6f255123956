"""Shared pytest fixtures for unit and integration tests."""

import os
import uuid

# Settings are read at import time; point them at throwaway values first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./pytest-placeholder.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["HMS_ACCESS_KEY"] = "hms-access-key"
os.environ["HMS_SECRET"] = "hms-secret"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Dict, List
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient

from app.config import settings
from app.database import Database
from app.main import create_app
from app.schemas.meeting import MeetingResponse
from app.schemas.user import IdentityProfile
from app.services.identity_provider import IdentityError, get_identity_provider
from app.services.meeting_service import get_zoom_client
from app.services.payment_service import StripeGateway, get_payment_gateway


class FakeIdentityProvider:
    """Maps opaque test tokens to identity profiles; anything else is rejected."""

    def __init__(self):
        self.tokens: Dict[str, IdentityProfile] = {}
        self.profile_lookups = 0
        self.profile_api_down = False

    def register(self, token: str, external_id: str, email: str) -> Dict[str, str]:
        self.tokens[token] = IdentityProfile(
            external_id=external_id,
            email=email,
            first_name="Test",
            last_name="User",
        )
        return {"Authorization": f"Bearer {token}"}

    async def verify_token(self, token: str) -> str:
        profile = self.tokens.get(token)
        if profile is None:
            raise IdentityError("Unknown token")
        return profile.external_id

    async def get_user(self, external_id: str) -> IdentityProfile:
        self.profile_lookups += 1
        if self.profile_api_down:
            raise IdentityError("Unable to fetch user profile")
        for profile in self.tokens.values():
            if profile.external_id == external_id:
                return profile
        raise IdentityError("Unknown user")


class FakeCheckoutGateway(StripeGateway):
    """Real webhook verification; hosted checkout is recorded instead of sent to Stripe."""

    def __init__(self):
        super().__init__(
            secret_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        )
        self.calls: List[dict] = []

    async def create_checkout_session(self, cart_items, bill_id: UUID) -> str:
        self.calls.append({"cart_items": cart_items, "bill_id": bill_id})
        return f"https://checkout.stripe.test/c/pay/{bill_id}"


class FakeZoomClient:
    async def create_meeting(self, topic: str = "Billing Support Meeting", duration: int = 30) -> MeetingResponse:
        return MeetingResponse(meeting_id=85012345678, join_url="https://zoom.us/j/85012345678")


@pytest.fixture
def api_base() -> str:
    """Base URL for API requests."""
    return f"http://test{settings.API_PREFIX}"


@pytest.fixture
async def database(tmp_path):
    """Fresh SQLite database per test."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await db.init_db()
    yield db
    await db.close()


@pytest.fixture
def identity() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def checkout_gateway() -> FakeCheckoutGateway:
    return FakeCheckoutGateway()


@pytest.fixture
def app(database, identity, checkout_gateway):
    application = create_app(database=database)
    application.dependency_overrides[get_identity_provider] = lambda: identity
    application.dependency_overrides[get_payment_gateway] = lambda: checkout_gateway
    application.dependency_overrides[get_zoom_client] = lambda: FakeZoomClient()
    return application


@pytest.fixture
async def async_client(app, api_base: str):
    """Async HTTP client against the in-process app."""
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    client = AsyncClient(transport=transport, base_url=api_base, timeout=30.0)
    yield client
    await client.aclose()


@pytest.fixture
def unique_suffix() -> str:
    """Unique suffix for test data to avoid collisions."""
    return str(uuid.uuid4())[:8]


@pytest.fixture
def auth_headers(identity: FakeIdentityProvider, unique_suffix: str) -> Dict[str, str]:
    """Valid token for a user who has not subscribed yet."""
    return identity.register(
        f"token-{unique_suffix}",
        external_id=f"user_{unique_suffix}",
        email=f"owner_{unique_suffix}@shop.example.com",
    )


async def _subscribe(client: AsyncClient, api_base: str, headers: Dict[str, str], plan_type: str) -> dict:
    resp = await client.post(f"{api_base}/subscriptions", headers=headers, json={"plan_type": plan_type})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.fixture
async def subscribed_headers(async_client: AsyncClient, api_base: str, auth_headers: Dict[str, str]):
    """Headers for a user on the MONTHLY plan."""
    await _subscribe(async_client, api_base, auth_headers, "MONTHLY")
    return auth_headers


@pytest.fixture
async def custom_plan_headers(async_client: AsyncClient, api_base: str, auth_headers: Dict[str, str]):
    """Headers for a user on the usage-based CUSTOM plan."""
    await _subscribe(async_client, api_base, auth_headers, "CUSTOM")
    return auth_headers


@pytest.fixture
def create_product(async_client: AsyncClient, api_base: str):
    """Factory: create a product through the API and return its JSON."""

    async def _create(headers: Dict[str, str], **overrides) -> dict:
        body = {
            "title": "Essence Mascara Lash Princess",
            "price": "100.00",
            "stock": 5,
            "category": "beauty",
            "brand": "Essence",
            "description": "Volumizing mascara",
        }
        body.update(overrides)
        resp = await async_client.post(f"{api_base}/products", headers=headers, json=body)
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _create


@pytest.fixture
def create_bill(async_client: AsyncClient, api_base: str):
    """Factory: POST a bill and return the raw response."""

    async def _create(
        headers: Dict[str, str],
        items: List[dict],
        customer_name: str = "Asha Verma",
        mobile_number: str = "9876543210",
        **extra,
    ):
        body = {"customer_name": customer_name, "mobile_number": mobile_number, "items": items}
        body.update(extra)
        return await async_client.post(f"{api_base}/bills", headers=headers, json=body)

    return _create


