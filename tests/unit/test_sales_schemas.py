"""Unit tests for request schemas."""

from decimal import Decimal
from uuid import uuid4

import pytest
from pydantic import ValidationError

from app.models.enums import PaymentMethod, PaymentStatus, PlanType
from app.schemas.billing import SubscriptionCreate
from app.schemas.catalog import ProductCreate, ProductUpdate
from app.schemas.customer import CustomerCreate
from app.schemas.payment import CheckoutRequest, StripeEvent
from app.schemas.responses import PaginationMeta
from app.schemas.sales import BillCreate


def test_bill_create_defaults():
    bill = BillCreate(
        customer_name="Asha",
        mobile_number="9876543210",
        items=[{"product_id": str(uuid4()), "quantity": 2}],
    )
    assert bill.discount_percent == Decimal("0")
    assert bill.payment_method == PaymentMethod.CASH
    assert bill.payment_status == PaymentStatus.PENDING


@pytest.mark.parametrize(
    "overrides",
    [
        {"items": []},
        {"items": [{"product_id": str(uuid4()), "quantity": 0}]},
        {"discount_percent": "120"},
        {"discount_percent": "-1"},
        {"customer_name": ""},
        {"email": "not-an-email"},
        {"payment_method": "CHEQUE"},
    ],
)
def test_bill_create_rejects(overrides):
    body = {
        "customer_name": "Asha",
        "mobile_number": "9876543210",
        "items": [{"product_id": str(uuid4()), "quantity": 1}],
    }
    body.update(overrides)
    with pytest.raises(ValidationError):
        BillCreate(**body)


def test_product_create_validates_urls_and_numbers():
    product = ProductCreate(
        title="Mascara",
        price="9.99",
        stock=10,
        thumbnail="https://cdn.example.com/mascara.png",
        images=["https://cdn.example.com/1.png"],
    )
    assert product.thumbnail == "https://cdn.example.com/mascara.png"
    assert product.minimum_order_quantity == 1

    with pytest.raises(ValidationError):
        ProductCreate(title="Mascara", price="9.99", stock=-1)
    with pytest.raises(ValidationError):
        ProductCreate(title="Mascara", price="9.999", stock=1)
    with pytest.raises(ValidationError):
        ProductCreate(title="Mascara", price="9.99", stock=1, thumbnail="not a url")
    with pytest.raises(ValidationError):
        ProductCreate(title="Mascara", price="9.99", stock=1, rating=6)


def test_product_update_is_partial():
    update = ProductUpdate(stock=0)
    assert update.model_dump(exclude_unset=True) == {"stock": 0}


def test_customer_requires_mobile():
    with pytest.raises(ValidationError):
        CustomerCreate(name="Ravi")


def test_subscription_plan_type():
    assert SubscriptionCreate(plan_type="CUSTOM").plan_type == PlanType.CUSTOM
    with pytest.raises(ValidationError):
        SubscriptionCreate(plan_type="WEEKLY")


def test_checkout_request_needs_items():
    with pytest.raises(ValidationError):
        CheckoutRequest(cart_items=[], bill_id=uuid4())
    with pytest.raises(ValidationError):
        CheckoutRequest(cart_items=[{"name": "Mascara", "price": "0", "qty": 1}], bill_id=uuid4())


def test_stripe_event_ignores_unknown_fields():
    event = StripeEvent.model_validate(
        {
            "id": "evt_1",
            "object": "event",
            "type": "checkout.session.completed",
            "api_version": "2024-06-20",
            "data": {"object": {"id": "cs_1"}},
        }
    )
    assert event.type == "checkout.session.completed"
    assert event.livemode is False


def test_pagination_meta():
    meta = PaginationMeta.build(page=2, limit=20, total=41)
    assert meta.total_pages == 3
    assert PaginationMeta.build(page=1, limit=20, total=0).total_pages == 0
