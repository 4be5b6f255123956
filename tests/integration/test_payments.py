"""Integration tests: hosted checkout and the Stripe webhook."""

import json
from uuid import UUID, uuid4

import pytest
from httpx import AsyncClient

from app.config import settings
from app.core.exceptions import ExternalServiceError
from app.models.sales import Bill
from tests.helpers import load, stripe_signature


def _completed_event(bill_id, payment_intent: str = "pi_3PaymentIntent", event_id: str = "evt_1") -> bytes:
    metadata = {"bill_id": str(bill_id)} if bill_id is not None else {}
    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": "checkout.session.completed",
            "livemode": False,
            "data": {
                "object": {
                    "id": "cs_test_a1",
                    "object": "checkout.session",
                    "payment_intent": payment_intent,
                    "metadata": metadata,
                }
            },
        }
    ).encode()


async def _post_webhook(client: AsyncClient, api_base: str, payload: bytes, secret: str = None):
    signature = stripe_signature(payload, secret or settings.STRIPE_WEBHOOK_SECRET)
    return await client.post(
        f"{api_base}/webhook",
        content=payload,
        headers={"stripe-signature": signature, "Content-Type": "application/json"},
    )


@pytest.fixture
async def pending_bill(subscribed_headers, create_product, create_bill) -> dict:
    product = await create_product(subscribed_headers)
    resp = await create_bill(subscribed_headers, [{"product_id": product["id"], "quantity": 1}])
    assert resp.status_code == 201
    return resp.json()["data"]


@pytest.mark.asyncio
async def test_checkout_returns_url(
    async_client: AsyncClient, api_base: str, subscribed_headers, pending_bill, checkout_gateway
):
    resp = await async_client.post(
        f"{api_base}/checkout",
        headers=subscribed_headers,
        json={
            "bill_id": pending_bill["id"],
            "cart_items": [{"name": "Essence Mascara Lash Princess", "price": "100.00", "qty": 1}],
        },
    )
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"url": f"https://checkout.stripe.test/c/pay/{pending_bill['id']}"}
    [call] = checkout_gateway.calls
    assert str(call["bill_id"]) == pending_bill["id"]
    assert call["cart_items"][0].qty == 1


@pytest.mark.asyncio
async def test_checkout_unknown_bill(
    async_client: AsyncClient, api_base: str, subscribed_headers, checkout_gateway
):
    resp = await async_client.post(
        f"{api_base}/checkout",
        headers=subscribed_headers,
        json={"bill_id": str(uuid4()), "cart_items": [{"name": "Thing", "price": "1.00", "qty": 1}]},
    )
    assert resp.status_code == 404
    assert checkout_gateway.calls == []


@pytest.mark.asyncio
async def test_checkout_empty_cart(async_client: AsyncClient, api_base: str, subscribed_headers, pending_bill):
    resp = await async_client.post(
        f"{api_base}/checkout",
        headers=subscribed_headers,
        json={"bill_id": pending_bill["id"], "cart_items": []},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_checkout_requires_subscription(async_client: AsyncClient, api_base: str, auth_headers):
    resp = await async_client.post(
        f"{api_base}/checkout",
        headers=auth_headers,
        json={"bill_id": str(uuid4()), "cart_items": [{"name": "Thing", "price": "1.00", "qty": 1}]},
    )
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_checkout_provider_failure(
    async_client: AsyncClient, api_base: str, subscribed_headers, pending_bill, checkout_gateway
):
    async def failing(cart_items, bill_id):
        raise ExternalServiceError("Unable to start checkout", error="Checkout failed")

    checkout_gateway.create_checkout_session = failing
    resp = await async_client.post(
        f"{api_base}/checkout",
        headers=subscribed_headers,
        json={"bill_id": pending_bill["id"], "cart_items": [{"name": "Thing", "price": "1.00", "qty": 1}]},
    )
    assert resp.status_code == 502
    assert resp.json() == {"error": "Checkout failed", "message": "Unable to start checkout"}


@pytest.mark.asyncio
async def test_webhook_marks_bill_paid(async_client: AsyncClient, api_base: str, pending_bill, database):
    resp = await _post_webhook(async_client, api_base, _completed_event(pending_bill["id"]))
    assert resp.status_code == 200
    assert resp.json() == {"received": True}

    bill = await load(database, Bill, UUID(pending_bill["id"]))
    assert bill.payment_status.value == "PAID"
    assert bill.payment_method.value == "CARD"
    assert bill.transaction_id == "pi_3PaymentIntent"
    assert bill.paid_at is not None


@pytest.mark.asyncio
async def test_webhook_redelivery_is_idempotent(async_client: AsyncClient, api_base: str, pending_bill, database):
    bill_id = UUID(pending_bill["id"])
    payload = _completed_event(pending_bill["id"])

    assert (await _post_webhook(async_client, api_base, payload)).status_code == 200
    first = await load(database, Bill, bill_id)

    resp = await _post_webhook(
        async_client, api_base, _completed_event(pending_bill["id"], payment_intent="pi_other", event_id="evt_2")
    )
    assert resp.status_code == 200
    second = await load(database, Bill, bill_id)
    assert second.paid_at == first.paid_at
    assert second.transaction_id == "pi_3PaymentIntent"


@pytest.mark.asyncio
async def test_webhook_bad_signature(async_client: AsyncClient, api_base: str, pending_bill, database):
    resp = await _post_webhook(
        async_client, api_base, _completed_event(pending_bill["id"]), secret="whsec_attacker"
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "Webhook Error"
    assert (await load(database, Bill, UUID(pending_bill["id"]))).payment_status.value == "PENDING"


@pytest.mark.asyncio
async def test_webhook_missing_signature(async_client: AsyncClient, api_base: str):
    resp = await async_client.post(f"{api_base}/webhook", content=_completed_event(uuid4()))
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_webhook_without_bill_id_is_acknowledged(async_client: AsyncClient, api_base: str):
    resp = await _post_webhook(async_client, api_base, _completed_event(None))
    assert resp.status_code == 200
    assert resp.json() == {"received": True}


@pytest.mark.asyncio
async def test_webhook_unknown_bill_is_acknowledged(async_client: AsyncClient, api_base: str):
    resp = await _post_webhook(async_client, api_base, _completed_event(uuid4()))
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_webhook_other_event_types_ignored(async_client: AsyncClient, api_base: str, pending_bill, database):
    payload = json.dumps(
        {
            "id": "evt_9",
            "object": "event",
            "type": "payment_intent.created",
            "data": {"object": {"id": "pi_1", "metadata": {"bill_id": pending_bill["id"]}}},
        }
    ).encode()
    resp = await _post_webhook(async_client, api_base, payload)
    assert resp.status_code == 200
    assert (await load(database, Bill, UUID(pending_bill["id"]))).payment_status.value == "PENDING"
