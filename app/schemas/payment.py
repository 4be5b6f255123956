"""Checkout and payment-processor webhook schemas"""

from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class CartItem(BaseModel):
    name: str = Field(..., min_length=1)
    price: Decimal = Field(..., gt=0)
    qty: int = Field(..., ge=1)


class CheckoutRequest(BaseModel):
    cart_items: List[CartItem] = Field(..., min_length=1)
    bill_id: UUID


class CheckoutResponse(BaseModel):
    url: str


class StripeEventData(BaseModel):
    object: Dict[str, Any]


class StripeEvent(BaseModel):
    """The subset of a verified Stripe event this service reads"""
    id: str
    type: str
    data: StripeEventData
    livemode: bool = False

    model_config = ConfigDict(extra="ignore")


class CheckoutSessionCompleted(BaseModel):
    id: str
    payment_intent: Optional[str] = None
    metadata: Dict[str, str] = {}

    model_config = ConfigDict(extra="ignore")
