"""Sales bill Pydantic Schemas"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.models.enums import PaymentMethod, PaymentStatus
from app.schemas.catalog import ProductBrief
from app.schemas.customer import CustomerResponse


class BillLineIn(BaseModel):
    product_id: UUID
    quantity: int = Field(..., ge=1)


class BillCreate(BaseModel):
    customer_name: str = Field(..., min_length=1)
    mobile_number: str = Field(..., min_length=1)
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    items: List[BillLineIn] = Field(..., min_length=1)
    discount_percent: Decimal = Field(Decimal("0"), ge=0, le=100)
    payment_method: PaymentMethod = PaymentMethod.CASH
    payment_status: PaymentStatus = PaymentStatus.PENDING


class BillUpdate(BaseModel):
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[PaymentMethod] = None


class BillItemResponse(BaseModel):
    id: UUID
    product_id: UUID
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    product: Optional[ProductBrief] = None

    model_config = ConfigDict(from_attributes=True)


class BillSummary(BaseModel):
    id: UUID
    bill_number: str
    customer_id: UUID
    user_id: Optional[UUID] = None
    total_amount: Decimal
    discount_percent: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    transaction_id: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime
    items: List[BillItemResponse] = []

    model_config = ConfigDict(from_attributes=True)


class BillResponse(BillSummary):
    customer: Optional[CustomerResponse] = None


class CustomerDetail(CustomerResponse):
    """Customer with purchase history, newest bill first"""
    bills: List[BillSummary] = []


class TopProduct(BaseModel):
    product: Optional[ProductBrief] = None
    quantity_sold: int
    revenue: Decimal


class DashboardStats(BaseModel):
    total_bills: int
    total_revenue: Decimal
    paid_bills: int
    pending_bills: int
    today_bills: int
    today_revenue: Decimal


class DashboardResponse(BaseModel):
    stats: DashboardStats
    top_products: List[TopProduct]
