from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.schemas.customer import CustomerCreate, CustomerResponse, CustomerUpdate, CustomerWithStats
from app.schemas.responses import PaginatedResponse, PaginationMeta, SuccessResponse
from app.schemas.sales import CustomerDetail
from app.services.customer_service import CustomerService

router = APIRouter(dependencies=[Depends(deps.require_subscription)])


@router.get("", response_model=PaginatedResponse[CustomerWithStats])
async def list_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    List customers with bill count and total spent. ``search`` matches name, mobile or email.
    """
    customers, total = await CustomerService.list_customers(db, page=page, limit=limit, search=search)
    return PaginatedResponse(data=customers, meta=PaginationMeta.build(page, limit, total))


@router.get("/{customer_id}", response_model=SuccessResponse[CustomerDetail])
async def get_customer(customer_id: UUID, db: AsyncSession = Depends(deps.get_db)) -> Any:
    customer = await CustomerService.get_customer(db, customer_id, with_bills=True)
    return SuccessResponse(data=customer)


@router.post("", response_model=SuccessResponse[CustomerResponse], status_code=status.HTTP_201_CREATED)
async def create_customer(customer_in: CustomerCreate, db: AsyncSession = Depends(deps.get_db)) -> Any:
    customer = await CustomerService.create_customer(db, customer_in)
    return SuccessResponse(data=customer, message="Customer created successfully")


@router.put("/{customer_id}", response_model=SuccessResponse[CustomerResponse])
async def update_customer(
    customer_id: UUID,
    customer_in: CustomerUpdate,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    customer = await CustomerService.update_customer(db, customer_id, customer_in)
    return SuccessResponse(data=customer, message="Customer updated successfully")


@router.delete("/{customer_id}", response_model=SuccessResponse)
async def delete_customer(customer_id: UUID, db: AsyncSession = Depends(deps.get_db)) -> Any:
    """
    Delete a customer together with their bills.
    """
    await CustomerService.delete_customer(db, customer_id)
    return SuccessResponse(message="Customer deleted successfully")
