from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.database import Database
from app.models.enums import PaymentStatus
from app.schemas.responses import PaginatedResponse, PaginationMeta, SuccessResponse
from app.schemas.sales import BillCreate, BillResponse, BillUpdate, DashboardResponse
from app.services.bill_service import BillService
from app.services.usage_service import track_usage

router = APIRouter()


@router.get("", response_model=PaginatedResponse[BillResponse])
async def list_bills(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    status: Optional[PaymentStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    context: deps.SubscriptionContext = Depends(deps.require_subscription),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    List bills, newest first. ``search`` matches bill number or customer name/mobile.
    """
    bills, total = await BillService.list_bills(
        db,
        page=page,
        limit=limit,
        search=search,
        status=status,
        start_date=start_date,
        end_date=end_date,
    )
    return PaginatedResponse(data=bills, meta=PaginationMeta.build(page, limit, total))


@router.get("/stats/dashboard", response_model=SuccessResponse[DashboardResponse])
async def get_dashboard_stats(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    context: deps.SubscriptionContext = Depends(deps.require_subscription),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Sales totals for a date range (defaults to the current month) and the top 5 products.
    """
    dashboard = await BillService.get_dashboard(db, start_date=start_date, end_date=end_date)
    return SuccessResponse(data=dashboard)


@router.get("/{bill_id}", response_model=SuccessResponse[BillResponse])
async def get_bill(
    bill_id: UUID,
    context: deps.SubscriptionContext = Depends(deps.require_subscription),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    bill = await BillService.get_bill(db, bill_id)
    return SuccessResponse(data=bill)


@router.post("", response_model=SuccessResponse[BillResponse], status_code=status.HTTP_201_CREATED)
async def create_bill(
    bill_in: BillCreate,
    background_tasks: BackgroundTasks,
    context: deps.SubscriptionContext = Depends(deps.require_subscription),
    db: AsyncSession = Depends(deps.get_db),
    database: Database = Depends(deps.get_database),
) -> Any:
    """
    Create a bill: stock is taken and totals computed in one transaction.
    One usage unit is recorded for the caller after the response is sent.
    """
    bill = await BillService.create_bill(db, bill_in, user_id=context.user.id)
    background_tasks.add_task(
        track_usage,
        database,
        user_id=context.user.id,
        bill_id=bill.id,
        subscription_id=context.subscription.id,
        plan_type=context.subscription.plan_type,
    )
    return SuccessResponse(data=bill, message="Bill created successfully")


@router.put("/{bill_id}", response_model=SuccessResponse[BillResponse])
async def update_bill(
    bill_id: UUID,
    bill_in: BillUpdate,
    context: deps.SubscriptionContext = Depends(deps.require_subscription),
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    Update payment status and/or method. Nothing else on a bill can change.
    """
    bill = await BillService.update_bill(db, bill_id, bill_in)
    return SuccessResponse(data=bill, message="Bill updated successfully")
