"""Usage tracking for metered (CUSTOM) plans, run after a bill has been created"""

from typing import Optional
from uuid import UUID

from sqlalchemy import update
import logging

from app.database import Database
from app.models.enums import PlanType
from app.models.subscription import Subscription, UsageRecord
from app.utils.time import get_utc_now

logger = logging.getLogger(__name__)


async def track_usage(
    database: Database,
    user_id: UUID,
    bill_id: UUID,
    subscription_id: UUID,
    plan_type: PlanType,
) -> Optional[UsageRecord]:
    """
    Record one usage unit for a created bill.

    Runs as a background task after the response is sent, in its own session.
    Failures are logged with the user and bill ids so counts can be reconciled,
    and are not raised.
    """
    now = get_utc_now()
    try:
        async with database.session_factory() as session:
            record = UsageRecord(
                user_id=user_id,
                bill_id=bill_id,
                month=now.month,
                year=now.year,
            )
            session.add(record)

            if plan_type == PlanType.CUSTOM:
                await session.execute(
                    update(Subscription)
                    .where(Subscription.id == subscription_id)
                    .values(bills_generated=Subscription.bills_generated + 1)
                )

            await session.commit()
            return record
    except Exception as e:
        logger.error(
            f"Failed to track usage: {str(e)}",
            extra={"user_id": str(user_id), "bill_id": str(bill_id)},
            exc_info=True,
        )
        return None
