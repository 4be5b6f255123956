"""Integration tests: customers and their purchase history."""

from decimal import Decimal
from uuid import uuid4

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_customer_crud(async_client: AsyncClient, api_base: str, subscribed_headers):
    resp = await async_client.post(
        f"{api_base}/customers",
        headers=subscribed_headers,
        json={"name": "Ravi Kumar", "mobile_number": "9000000001", "email": "ravi@example.com"},
    )
    assert resp.status_code == 201, resp.text
    customer = resp.json()["data"]

    resp = await async_client.put(
        f"{api_base}/customers/{customer['id']}",
        headers=subscribed_headers,
        json={"address": "12 MG Road, Bengaluru"},
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["address"] == "12 MG Road, Bengaluru"
    assert data["email"] == "ravi@example.com"

    resp = await async_client.get(f"{api_base}/customers/{customer['id']}", headers=subscribed_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["bills"] == []

    resp = await async_client.delete(f"{api_base}/customers/{customer['id']}", headers=subscribed_headers)
    assert resp.status_code == 200
    resp = await async_client.get(f"{api_base}/customers/{customer['id']}", headers=subscribed_headers)
    assert resp.status_code == 404
    assert resp.json()["error"] == "Customer not found"


@pytest.mark.asyncio
async def test_invalid_customer_email(async_client: AsyncClient, api_base: str, subscribed_headers):
    resp = await async_client.post(
        f"{api_base}/customers",
        headers=subscribed_headers,
        json={"name": "Ravi", "mobile_number": "9000000001", "email": "nope"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_list_customers_with_totals(
    async_client: AsyncClient, api_base: str, subscribed_headers, create_product, create_bill
):
    product = await create_product(subscribed_headers, stock=10)
    line = [{"product_id": product["id"], "quantity": 1}]
    assert (await create_bill(subscribed_headers, line, customer_name="Asha", mobile_number="1")).status_code == 201
    assert (await create_bill(subscribed_headers, line, customer_name="Asha", mobile_number="1")).status_code == 201
    resp = await async_client.post(
        f"{api_base}/customers", headers=subscribed_headers, json={"name": "Ben", "mobile_number": "2"}
    )
    assert resp.status_code == 201

    resp = await async_client.get(f"{api_base}/customers", headers=subscribed_headers)
    body = resp.json()
    assert body["meta"]["total"] == 2
    by_name = {c["name"]: c for c in body["data"]}
    assert by_name["Asha"]["bill_count"] == 2
    assert Decimal(by_name["Asha"]["total_spent"]) == Decimal("200")
    assert by_name["Ben"]["bill_count"] == 0
    assert Decimal(by_name["Ben"]["total_spent"]) == Decimal("0")

    resp = await async_client.get(f"{api_base}/customers", headers=subscribed_headers, params={"search": "ben"})
    assert [c["name"] for c in resp.json()["data"]] == ["Ben"]


@pytest.mark.asyncio
async def test_customer_detail_lists_bills(
    async_client: AsyncClient, api_base: str, subscribed_headers, create_product, create_bill
):
    product = await create_product(subscribed_headers, stock=10)
    resp = await create_bill(subscribed_headers, [{"product_id": product["id"], "quantity": 3}])
    bill = resp.json()["data"]

    resp = await async_client.get(f"{api_base}/customers/{bill['customer_id']}", headers=subscribed_headers)
    data = resp.json()["data"]
    assert [b["bill_number"] for b in data["bills"]] == [bill["bill_number"]]
    assert data["bills"][0]["items"][0]["quantity"] == 3
    assert data["bills"][0]["items"][0]["product"]["title"] == product["title"]


@pytest.mark.asyncio
async def test_deleting_customer_removes_bills(
    async_client: AsyncClient, api_base: str, subscribed_headers, create_product, create_bill
):
    product = await create_product(subscribed_headers)
    bill = (await create_bill(subscribed_headers, [{"product_id": product["id"], "quantity": 1}])).json()["data"]

    resp = await async_client.delete(f"{api_base}/customers/{bill['customer_id']}", headers=subscribed_headers)
    assert resp.status_code == 200

    resp = await async_client.get(f"{api_base}/bills/{bill['id']}", headers=subscribed_headers)
    assert resp.status_code == 404
    # Product is no longer referenced and can go
    resp = await async_client.delete(f"{api_base}/products/{product['id']}", headers=subscribed_headers)
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_unknown_customer_404(async_client: AsyncClient, api_base: str, subscribed_headers):
    resp = await async_client.put(
        f"{api_base}/customers/{uuid4()}", headers=subscribed_headers, json={"name": "X"}
    )
    assert resp.status_code == 404
