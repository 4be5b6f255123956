from typing import List, Optional
from pydantic import BaseModel, ConfigDict
from uuid import UUID
from datetime import datetime
from decimal import Decimal

from app.models.enums import PlanType, SubscriptionBillStatus, SubscriptionStatus


class SubscriptionCreate(BaseModel):
    plan_type: PlanType


class SubscriptionResponse(BaseModel):
    id: UUID
    user_id: UUID
    plan_type: PlanType
    status: SubscriptionStatus
    amount: Decimal
    start_date: datetime
    end_date: Optional[datetime] = None
    next_billing_date: Optional[datetime] = None
    bills_generated: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SubscriptionBillResponse(BaseModel):
    id: UUID
    bill_number: str
    amount: Decimal
    plan_type: PlanType
    billing_month: int
    billing_year: int
    bills_count: int
    status: SubscriptionBillStatus
    due_date: datetime
    paid_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UsageStats(BaseModel):
    current_month_bills: int
    current_month_cost: Decimal
    next_billing_date: Optional[datetime] = None
    bill_rate: Decimal


class CurrentSubscription(BaseModel):
    subscription: SubscriptionResponse
    usage_stats: Optional[UsageStats] = None


class MonthlyUsage(BaseModel):
    month: int
    year: int
    bills_generated: int
    cost: Decimal


class AllTimeStats(BaseModel):
    total_bills: int
    total_spent: Decimal


class CurrentMonthStats(BaseModel):
    bills_generated: int
    estimated_cost: Decimal


class SubscriptionStats(BaseModel):
    all_time: AllTimeStats
    current_month: CurrentMonthStats
    monthly_usage: List[MonthlyUsage] = []
