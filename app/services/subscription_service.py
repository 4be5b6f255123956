"""Subscription Service - plan lifecycle, access checks and usage statistics"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.config import settings
from app.core.exceptions import BadRequestError, GuardFailure, NotFoundError, SubscriptionAccessError
from app.models.billing import SubscriptionBill
from app.models.enums import PlanType, SubscriptionBillStatus, SubscriptionStatus
from app.models.sales import Bill
from app.models.subscription import Subscription, UsageRecord
from app.models.user import User
from app.schemas.billing import (
    AllTimeStats,
    CurrentMonthStats,
    CurrentSubscription,
    MonthlyUsage,
    SubscriptionResponse,
    SubscriptionStats,
    UsageStats,
)
from app.schemas.user import IdentityProfile
from app.utils.time import add_months, add_years, day_of_next_month, get_utc_now

logger = logging.getLogger(__name__)


class SubscriptionService:
    """Service layer for subscription-related operations"""

    @staticmethod
    async def get_user_by_external_id(db: AsyncSession, external_id: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.external_id == external_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def provision_user(db: AsyncSession, profile: IdentityProfile) -> User:
        """
        Create the local account for an identity-provider user on first use.

        Committed immediately so the account survives a guard rejection later
        in the same request. When a parallel first request wins the insert,
        its row is returned instead.
        """
        user = User(
            external_id=profile.external_id,
            email=profile.email,
            first_name=profile.first_name,
            last_name=profile.last_name,
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            existing = await SubscriptionService.get_user_by_external_id(db, profile.external_id)
            if existing is None:
                raise
            logger.info("User already provisioned by a parallel request", extra={"external_id": profile.external_id})
            return existing
        await db.refresh(user)
        logger.info("Provisioned user", extra={"user_id": str(user.id), "external_id": user.external_id})
        return user

    @staticmethod
    async def get_active_subscription(db: AsyncSession, user_id: UUID) -> Optional[Subscription]:
        """Most recently created ACTIVE subscription, if any."""
        result = await db.execute(
            select(Subscription)
            .where(
                Subscription.user_id == user_id,
                Subscription.status == SubscriptionStatus.ACTIVE,
            )
            .order_by(Subscription.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def count_overdue_pending_bills(db: AsyncSession, user_id: UUID, now: datetime) -> int:
        result = await db.execute(
            select(func.count(SubscriptionBill.id)).where(
                SubscriptionBill.user_id == user_id,
                SubscriptionBill.status == SubscriptionBillStatus.PENDING,
                SubscriptionBill.due_date < now,
            )
        )
        return result.scalar_one()

    @staticmethod
    async def check_access(
        db: AsyncSession,
        user: User,
        now: Optional[datetime] = None,
    ) -> Subscription:
        """
        Resolve the subscription that authorizes this user, or reject.

        Raises:
            SubscriptionAccessError: NO_SUBSCRIPTION, SUBSCRIPTION_EXPIRED or UNPAID_BILLS
        """
        now = now or get_utc_now()
        subscription = await SubscriptionService.get_active_subscription(db, user.id)
        if subscription is None:
            raise SubscriptionAccessError(GuardFailure.NO_SUBSCRIPTION)

        if subscription.end_date is not None and subscription.end_date < now:
            subscription.status = SubscriptionStatus.EXPIRED
            await db.commit()
            logger.info(
                "Subscription expired on access",
                extra={"user_id": str(user.id), "subscription_id": str(subscription.id)},
            )
            raise SubscriptionAccessError(GuardFailure.SUBSCRIPTION_EXPIRED)

        if subscription.is_usage_based:
            unpaid = await SubscriptionService.count_overdue_pending_bills(db, user.id, now)
            if unpaid > 0:
                raise SubscriptionAccessError(GuardFailure.UNPAID_BILLS, unpaid_bills=unpaid)

        return subscription

    @staticmethod
    async def create_subscription(
        db: AsyncSession,
        user: User,
        plan_type: PlanType,
        now: Optional[datetime] = None,
    ) -> Subscription:
        """Start a plan. Fixed plans run one period from now; CUSTOM has no end and bills monthly."""
        existing = await SubscriptionService.get_active_subscription(db, user.id)
        if existing is not None:
            raise BadRequestError(
                "You already have an active subscription. Please cancel it before creating a new one.",
                error="Active subscription exists",
            )

        start_date = now or get_utc_now()
        if plan_type == PlanType.MONTHLY:
            amount = Decimal(settings.PLAN_MONTHLY_PRICE)
            end_date = add_months(start_date, 1)
            next_billing_date = end_date
        elif plan_type == PlanType.ANNUAL:
            amount = Decimal(settings.PLAN_ANNUAL_PRICE)
            end_date = add_years(start_date, 1)
            next_billing_date = end_date
        else:
            amount = Decimal(0)
            end_date = None
            next_billing_date = day_of_next_month(start_date, settings.BILLING_DAY_OF_MONTH)

        subscription = Subscription(
            user_id=user.id,
            plan_type=plan_type,
            status=SubscriptionStatus.ACTIVE,
            amount=amount,
            start_date=start_date,
            end_date=end_date,
            next_billing_date=next_billing_date,
            bills_generated=0,
        )
        db.add(subscription)
        await db.commit()
        await db.refresh(subscription)
        logger.info(
            "Subscription created",
            extra={"user_id": str(user.id), "plan_type": plan_type.value},
        )
        return subscription

    @staticmethod
    async def cancel_subscription(
        db: AsyncSession,
        user: User,
        now: Optional[datetime] = None,
    ) -> Subscription:
        """Cancel the active plan. Refused while any subscription bill is still PENDING."""
        subscription = await SubscriptionService.get_active_subscription(db, user.id)
        if subscription is None:
            raise NotFoundError(
                "You do not have an active subscription to cancel",
                error="No active subscription",
            )

        result = await db.execute(
            select(func.count(SubscriptionBill.id)).where(
                SubscriptionBill.user_id == user.id,
                SubscriptionBill.status == SubscriptionBillStatus.PENDING,
            )
        )
        unpaid = result.scalar_one()
        if unpaid > 0:
            raise BadRequestError(
                "Please clear all pending bills before cancelling your subscription",
                error="Unpaid bills exist",
                extra={"unpaid_bills": unpaid},
            )

        subscription.status = SubscriptionStatus.CANCELLED
        subscription.end_date = now or get_utc_now()
        await db.commit()
        logger.info("Subscription cancelled", extra={"user_id": str(user.id)})
        return subscription

    @staticmethod
    async def list_bills(db: AsyncSession, user_id: UUID) -> List[SubscriptionBill]:
        result = await db.execute(
            select(SubscriptionBill)
            .where(SubscriptionBill.user_id == user_id)
            .order_by(SubscriptionBill.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def count_usage(db: AsyncSession, user_id: UUID, month: int, year: int) -> int:
        result = await db.execute(
            select(func.count(UsageRecord.id)).where(
                UsageRecord.user_id == user_id,
                UsageRecord.month == month,
                UsageRecord.year == year,
            )
        )
        return result.scalar_one()

    @staticmethod
    async def get_current(
        db: AsyncSession,
        subscription: Subscription,
        now: Optional[datetime] = None,
    ) -> CurrentSubscription:
        """Active subscription plus this month's metered usage for CUSTOM plans."""
        now = now or get_utc_now()
        usage_stats = None
        if subscription.is_usage_based:
            count = await SubscriptionService.count_usage(db, subscription.user_id, now.month, now.year)
            rate = Decimal(settings.USAGE_UNIT_PRICE)
            usage_stats = UsageStats(
                current_month_bills=count,
                current_month_cost=count * rate,
                next_billing_date=subscription.next_billing_date,
                bill_rate=rate,
            )
        return CurrentSubscription(
            subscription=SubscriptionResponse.model_validate(subscription),
            usage_stats=usage_stats,
        )

    @staticmethod
    async def get_stats(
        db: AsyncSession,
        user: User,
        subscription: Subscription,
        now: Optional[datetime] = None,
    ) -> SubscriptionStats:
        now = now or get_utc_now()
        rate = Decimal(settings.USAGE_UNIT_PRICE)

        total_bills = (
            await db.execute(select(func.count(Bill.id)).where(Bill.user_id == user.id))
        ).scalar_one()
        total_spent = (
            await db.execute(
                select(func.coalesce(func.sum(SubscriptionBill.amount), 0)).where(
                    SubscriptionBill.user_id == user.id,
                    SubscriptionBill.status == SubscriptionBillStatus.PAID,
                )
            )
        ).scalar_one()

        month_count = await SubscriptionService.count_usage(db, user.id, now.month, now.year)

        monthly_usage: List[MonthlyUsage] = []
        if subscription.is_usage_based:
            # Oldest first, ending with the current month
            for offset in range(5, -1, -1):
                period = add_months(now.replace(day=1), -offset)
                count = await SubscriptionService.count_usage(db, user.id, period.month, period.year)
                monthly_usage.append(
                    MonthlyUsage(
                        month=period.month,
                        year=period.year,
                        bills_generated=count,
                        cost=count * rate,
                    )
                )

        return SubscriptionStats(
            all_time=AllTimeStats(total_bills=total_bills, total_spent=Decimal(str(total_spent))),
            current_month=CurrentMonthStats(
                bills_generated=month_count,
                estimated_cost=month_count * rate if subscription.is_usage_based else Decimal(0),
            ),
            monthly_usage=monthly_usage,
        )
