"""Test helpers shared by unit and integration tests."""

import hashlib
import hmac
import time
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select

from app.database import Database
from app.models.billing import SubscriptionBill
from app.models.enums import PlanType, SubscriptionBillStatus, SubscriptionStatus
from app.models.subscription import Subscription, UsageRecord
from app.models.user import User


def stripe_signature(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    """``stripe-signature`` header value the way Stripe signs webhook deliveries."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


async def get_user(database: Database, external_id: str) -> Optional[User]:
    async with database.session_factory() as session:
        result = await session.execute(select(User).where(User.external_id == external_id))
        return result.scalar_one_or_none()


async def create_user(database: Database, external_id: str, email: Optional[str] = None) -> User:
    async with database.session_factory() as session:
        user = User(external_id=external_id, email=email or f"{external_id}@shop.test")
        session.add(user)
        await session.commit()
        return user


async def add_subscription(
    database: Database,
    user_id: UUID,
    plan_type: PlanType,
    start_date: datetime,
    end_date: Optional[datetime] = None,
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    amount: Decimal = Decimal("0"),
) -> Subscription:
    async with database.session_factory() as session:
        subscription = Subscription(
            user_id=user_id,
            plan_type=plan_type,
            status=status,
            amount=amount,
            start_date=start_date,
            end_date=end_date,
            next_billing_date=end_date,
            bills_generated=0,
        )
        session.add(subscription)
        await session.commit()
        return subscription


async def add_usage(database: Database, user_id: UUID, month: int, year: int, count: int) -> None:
    async with database.session_factory() as session:
        for _ in range(count):
            session.add(UsageRecord(user_id=user_id, bill_id=UUID(int=0), month=month, year=year))
        await session.commit()


async def add_subscription_bill(
    database: Database,
    user_id: UUID,
    bill_number: str,
    due_date: datetime,
    billing_month: int,
    billing_year: int,
    status: SubscriptionBillStatus = SubscriptionBillStatus.PENDING,
    amount: Decimal = Decimal("3"),
) -> SubscriptionBill:
    async with database.session_factory() as session:
        bill = SubscriptionBill(
            user_id=user_id,
            bill_number=bill_number,
            amount=amount,
            plan_type=PlanType.CUSTOM,
            billing_month=billing_month,
            billing_year=billing_year,
            bills_count=int(amount),
            status=status,
            due_date=due_date,
        )
        session.add(bill)
        await session.commit()
        return bill


async def load(database: Database, model, id_):
    async with database.session_factory() as session:
        return await session.get(model, id_)
