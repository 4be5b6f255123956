"""Billing Service - scheduled sweeps over subscriptions and subscription bills"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.config import settings
from app.models.billing import SubscriptionBill
from app.models.enums import PlanType, SubscriptionBillStatus, SubscriptionStatus
from app.models.subscription import Subscription, UsageRecord
from app.utils.numbering import next_sequence_number
from app.utils.time import day_of_next_month, get_utc_now, previous_month

logger = logging.getLogger(__name__)


class BillingService:
    """
    The three billing sweeps. Each one acts only on rows matching its precondition,
    so re-running a sweep, or running them in any order, has no double effect.
    """

    @staticmethod
    async def generate_subscription_bill_number(db: AsyncSession, now: datetime) -> str:
        """SUB{YYYYMM}{seq:04d}, sequence scoped to the issue month."""
        return await next_sequence_number(db, SubscriptionBill.bill_number, f"SUB{now:%Y%m}")

    @staticmethod
    async def generate_monthly_invoices(db: AsyncSession, now: Optional[datetime] = None) -> int:
        """
        Invoice every ACTIVE CUSTOM subscription for the previous month's usage.

        Users with no usage are skipped, as are periods already invoiced.

        Returns:
            Number of subscription bills created
        """
        now = now or get_utc_now()
        billing_month, billing_year = previous_month(now)
        unit_price = Decimal(settings.USAGE_UNIT_PRICE)

        result = await db.execute(
            select(Subscription.id, Subscription.user_id).where(
                Subscription.plan_type == PlanType.CUSTOM,
                Subscription.status == SubscriptionStatus.ACTIVE,
            )
        )
        subscriptions = result.all()
        logger.info(
            f"Found {len(subscriptions)} active custom plan subscriptions",
            extra={"job": "invoices", "billing_month": billing_month, "billing_year": billing_year},
        )

        created = 0
        for subscription_id, user_id in subscriptions:
            bills_count = (
                await db.execute(
                    select(func.count(UsageRecord.id)).where(
                        UsageRecord.user_id == user_id,
                        UsageRecord.month == billing_month,
                        UsageRecord.year == billing_year,
                    )
                )
            ).scalar_one()
            if bills_count == 0:
                continue

            existing = (
                await db.execute(
                    select(SubscriptionBill.id).where(
                        SubscriptionBill.user_id == user_id,
                        SubscriptionBill.billing_month == billing_month,
                        SubscriptionBill.billing_year == billing_year,
                    )
                )
            ).first()
            if existing is not None:
                continue

            amount = bills_count * unit_price
            bill_number = await BillingService.generate_subscription_bill_number(db, now)
            db.add(
                SubscriptionBill(
                    user_id=user_id,
                    bill_number=bill_number,
                    amount=amount,
                    plan_type=PlanType.CUSTOM,
                    billing_month=billing_month,
                    billing_year=billing_year,
                    bills_count=bills_count,
                    status=SubscriptionBillStatus.PENDING,
                    due_date=now + timedelta(days=settings.SUBSCRIPTION_BILL_DUE_DAYS),
                )
            )
            await db.execute(
                update(Subscription)
                .where(Subscription.id == subscription_id)
                .values(
                    next_billing_date=day_of_next_month(now, settings.BILLING_DAY_OF_MONTH),
                    bills_generated=0,
                )
                .execution_options(synchronize_session=False)
            )

            try:
                await db.commit()
            except IntegrityError:
                # Another sweep invoiced this period (or took the number) first
                await db.rollback()
                logger.warning(
                    "Subscription bill already exists, skipping",
                    extra={"job": "invoices", "user_id": str(user_id)},
                )
                continue

            created += 1
            logger.info(
                f"Created bill for user {user_id}: {bills_count} bills x {unit_price} = {amount}",
                extra={"job": "invoices", "bill_number": bill_number},
            )

        return created

    @staticmethod
    async def mark_overdue_bills(db: AsyncSession, now: Optional[datetime] = None) -> Tuple[int, int]:
        """
        PENDING bills past due become OVERDUE; any ACTIVE subscription of a user
        holding an OVERDUE bill becomes SUSPENDED.

        Returns:
            (bills marked overdue, subscriptions suspended)
        """
        now = now or get_utc_now()
        marked = await db.execute(
            update(SubscriptionBill)
            .where(
                SubscriptionBill.status == SubscriptionBillStatus.PENDING,
                SubscriptionBill.due_date < now,
            )
            .values(status=SubscriptionBillStatus.OVERDUE)
            .execution_options(synchronize_session=False)
        )

        overdue_users = (
            select(SubscriptionBill.user_id)
            .where(SubscriptionBill.status == SubscriptionBillStatus.OVERDUE)
            .distinct()
        )
        suspended = await db.execute(
            update(Subscription)
            .where(
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.user_id.in_(overdue_users),
            )
            .values(status=SubscriptionStatus.SUSPENDED)
            .execution_options(synchronize_session=False)
        )
        await db.commit()

        logger.info(
            f"Marked {marked.rowcount} bills as overdue, suspended {suspended.rowcount} subscriptions",
            extra={"job": "overdue"},
        )
        return marked.rowcount, suspended.rowcount

    @staticmethod
    async def expire_subscriptions(db: AsyncSession, now: Optional[datetime] = None) -> int:
        """ACTIVE subscriptions whose end date has passed become EXPIRED."""
        now = now or get_utc_now()
        result = await db.execute(
            update(Subscription)
            .where(
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.end_date.isnot(None),
                Subscription.end_date < now,
            )
            .values(status=SubscriptionStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        logger.info(f"Marked {result.rowcount} subscriptions as expired", extra={"job": "expiry"})
        return result.rowcount
