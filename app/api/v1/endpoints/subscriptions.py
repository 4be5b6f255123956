from typing import Any, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.models.user import User
from app.schemas.billing import (
    CurrentSubscription,
    SubscriptionBillResponse,
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionStats,
)
from app.schemas.responses import SuccessResponse
from app.services.subscription_service import SubscriptionService

router = APIRouter()


@router.post("", response_model=SuccessResponse[SubscriptionResponse], status_code=status.HTTP_201_CREATED)
async def create_subscription(
    subscription_in: SubscriptionCreate,
    current_user: User = Depends(deps.get_current_user),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Subscribe to a plan. Needs only a valid token: callers without a plan must be able to buy one.
    """
    subscription = await SubscriptionService.create_subscription(db, current_user, subscription_in.plan_type)
    return SuccessResponse(data=subscription, message="Subscription created successfully")


@router.get("/current", response_model=SuccessResponse[CurrentSubscription])
async def get_current_subscription(
    context: deps.SubscriptionContext = Depends(deps.require_subscription),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    current = await SubscriptionService.get_current(db, context.subscription)
    return SuccessResponse(data=current)


@router.get("/bills", response_model=SuccessResponse[List[SubscriptionBillResponse]])
async def list_subscription_bills(
    context: deps.SubscriptionContext = Depends(deps.require_subscription),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    bills = await SubscriptionService.list_bills(db, context.user.id)
    return SuccessResponse(data=bills)


@router.post("/cancel", response_model=SuccessResponse[SubscriptionResponse])
async def cancel_subscription(
    context: deps.SubscriptionContext = Depends(deps.require_subscription),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Cancel the active plan. Refused with 400 while a subscription bill is PENDING.
    """
    subscription = await SubscriptionService.cancel_subscription(db, context.user)
    return SuccessResponse(data=subscription, message="Subscription cancelled successfully")


@router.get("/stats", response_model=SuccessResponse[SubscriptionStats])
async def get_subscription_stats(
    context: deps.SubscriptionContext = Depends(deps.require_subscription),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    stats = await SubscriptionService.get_stats(db, context.user, context.subscription)
    return SuccessResponse(data=stats)
