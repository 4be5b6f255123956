"""Integration tests: authentication and the subscription guard."""

import asyncio
from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from app.models.enums import PlanType, SubscriptionStatus
from app.models.subscription import Subscription
from app.models.user import User
from app.schemas.user import IdentityProfile
from app.services.subscription_service import SubscriptionService
from app.utils.time import get_utc_now
from tests.helpers import add_subscription, add_subscription_bill, create_user, get_user, load


async def _user_count(database) -> int:
    async with database.session_factory() as session:
        return (await session.execute(select(func.count(User.id)))).scalar_one()


@pytest.mark.asyncio
async def test_no_token(async_client: AsyncClient, api_base: str):
    resp = await async_client.get(f"{api_base}/products")
    assert resp.status_code == 401
    body = resp.json()
    assert body["code"] == "NO_TOKEN"
    assert body["error"] == "Unauthorized"
    assert resp.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_invalid_token(async_client: AsyncClient, api_base: str):
    resp = await async_client.get(f"{api_base}/products", headers={"Authorization": "Bearer forged"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "INVALID_TOKEN"


@pytest.mark.asyncio
async def test_first_request_provisions_user_once(
    async_client: AsyncClient, api_base: str, auth_headers, identity, database, unique_suffix
):
    resp = await async_client.get(f"{api_base}/products", headers=auth_headers)
    assert resp.status_code == 403
    body = resp.json()
    assert body["code"] == "NO_SUBSCRIPTION"
    assert body["redirect"] == "/pricing"

    # The account survives the rejection
    user = await get_user(database, f"user_{unique_suffix}")
    assert user is not None
    assert user.email == f"owner_{unique_suffix}@shop.example.com"

    resp = await async_client.get(f"{api_base}/bills", headers=auth_headers)
    assert resp.status_code == 403
    assert await _user_count(database) == 1
    assert identity.profile_lookups == 1


@pytest.mark.asyncio
async def test_parallel_first_requests_provision_one_user(
    async_client: AsyncClient, api_base: str, auth_headers, database
):
    responses = await asyncio.gather(
        *(async_client.get(f"{api_base}/products", headers=auth_headers) for _ in range(3))
    )
    assert [resp.status_code for resp in responses] == [403, 403, 403]
    assert {resp.json()["code"] for resp in responses} == {"NO_SUBSCRIPTION"}
    assert await _user_count(database) == 1


@pytest.mark.asyncio
async def test_provision_returns_row_created_meanwhile(database, unique_suffix):
    existing = await create_user(database, f"user_{unique_suffix}")
    profile = IdentityProfile(external_id=f"user_{unique_suffix}", email="late@shop.example.com")

    async with database.session_factory() as session:
        user = await SubscriptionService.provision_user(session, profile)

    assert user.id == existing.id
    assert user.email == existing.email
    assert await _user_count(database) == 1


@pytest.mark.asyncio
async def test_profile_lookup_failure_is_invalid_token(
    async_client: AsyncClient, api_base: str, auth_headers, identity, database
):
    identity.profile_api_down = True
    resp = await async_client.get(f"{api_base}/products", headers=auth_headers)
    assert resp.status_code == 401
    assert resp.json()["code"] == "INVALID_TOKEN"
    assert await _user_count(database) == 0


@pytest.mark.asyncio
async def test_expired_subscription_is_marked(
    async_client: AsyncClient, api_base: str, auth_headers, database, unique_suffix
):
    await async_client.get(f"{api_base}/products", headers=auth_headers)
    user = await get_user(database, f"user_{unique_suffix}")
    now = get_utc_now()
    subscription = await add_subscription(
        database,
        user.id,
        PlanType.MONTHLY,
        start_date=now - timedelta(days=40),
        end_date=now - timedelta(days=10),
    )

    resp = await async_client.get(f"{api_base}/products", headers=auth_headers)
    assert resp.status_code == 403
    assert resp.json()["code"] == "SUBSCRIPTION_EXPIRED"
    assert (await load(database, Subscription, subscription.id)).status == SubscriptionStatus.EXPIRED

    # No longer ACTIVE, so the next request has no subscription at all
    resp = await async_client.get(f"{api_base}/products", headers=auth_headers)
    assert resp.json()["code"] == "NO_SUBSCRIPTION"


@pytest.mark.asyncio
async def test_custom_plan_with_overdue_bill(
    async_client: AsyncClient, api_base: str, custom_plan_headers, database, unique_suffix
):
    user = await get_user(database, f"user_{unique_suffix}")
    now = get_utc_now()
    await add_subscription_bill(
        database, user.id, "SUB1900010001", due_date=now - timedelta(days=1),
        billing_month=1, billing_year=1900,
    )

    resp = await async_client.get(f"{api_base}/products", headers=custom_plan_headers)
    assert resp.status_code == 403
    body = resp.json()
    assert body["code"] == "UNPAID_BILLS"
    assert body["unpaid_bills"] == 1
    assert body["redirect"] == "/subscription/payment"


@pytest.mark.asyncio
async def test_custom_plan_with_bill_not_yet_due(
    async_client: AsyncClient, api_base: str, custom_plan_headers, database, unique_suffix
):
    user = await get_user(database, f"user_{unique_suffix}")
    await add_subscription_bill(
        database, user.id, "SUB1900010001", due_date=get_utc_now() + timedelta(days=5),
        billing_month=1, billing_year=1900,
    )

    resp = await async_client.get(f"{api_base}/products", headers=custom_plan_headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_subscribed_user_passes(async_client: AsyncClient, api_base: str, subscribed_headers):
    resp = await async_client.get(f"{api_base}/products", headers=subscribed_headers)
    assert resp.status_code == 200
    assert resp.json()["data"] == []


@pytest.mark.asyncio
async def test_webhook_needs_no_token(async_client: AsyncClient, api_base: str):
    # Rejected for its signature, not for missing credentials
    resp = await async_client.post(f"{api_base}/webhook", content=b"{}")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Webhook Error"
