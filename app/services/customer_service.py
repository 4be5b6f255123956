"""Customer Service - buyer records and their purchase totals"""

from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import logging

from app.core.exceptions import NotFoundError
from app.models.customer import Customer
from app.models.sales import Bill, BillItem
from app.schemas.customer import CustomerCreate, CustomerUpdate, CustomerWithStats

logger = logging.getLogger(__name__)


class CustomerService:
    """Service layer for customer-related operations"""

    @staticmethod
    async def list_customers(
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
    ) -> Tuple[List[CustomerWithStats], int]:
        """Newest first, each with its bill count and total spent."""
        filters = []
        if search:
            pattern = f"%{search}%"
            filters.append(
                or_(
                    Customer.name.ilike(pattern),
                    Customer.mobile_number.ilike(pattern),
                    Customer.email.ilike(pattern),
                )
            )

        total = (await db.execute(select(func.count(Customer.id)).where(*filters))).scalar_one()

        bill_count = func.count(Bill.id).label("bill_count")
        total_spent = func.coalesce(func.sum(Bill.final_amount), 0).label("total_spent")
        result = await db.execute(
            select(Customer, bill_count, total_spent)
            .outerjoin(Bill, Bill.customer_id == Customer.id)
            .where(*filters)
            .group_by(Customer.id)
            .order_by(Customer.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        customers = [
            CustomerWithStats.model_validate(customer).model_copy(
                update={"bill_count": count, "total_spent": Decimal(str(spent))}
            )
            for customer, count, spent in result.all()
        ]
        return customers, total

    @staticmethod
    async def get_customer(db: AsyncSession, customer_id: UUID, with_bills: bool = False) -> Customer:
        stmt = select(Customer).where(Customer.id == customer_id)
        if with_bills:
            stmt = stmt.options(
                selectinload(Customer.bills).selectinload(Bill.items).selectinload(BillItem.product)
            )
        customer = (await db.execute(stmt)).scalar_one_or_none()
        if customer is None:
            raise NotFoundError("The requested customer does not exist", error="Customer not found")
        return customer

    @staticmethod
    async def create_customer(db: AsyncSession, customer_in: CustomerCreate) -> Customer:
        customer = Customer(**customer_in.model_dump())
        db.add(customer)
        await db.commit()
        await db.refresh(customer)
        return customer

    @staticmethod
    async def update_customer(db: AsyncSession, customer_id: UUID, customer_in: CustomerUpdate) -> Customer:
        customer = await CustomerService.get_customer(db, customer_id)
        for field, value in customer_in.model_dump(exclude_unset=True).items():
            setattr(customer, field, value)
        await db.commit()
        await db.refresh(customer)
        return customer

    @staticmethod
    async def delete_customer(db: AsyncSession, customer_id: UUID) -> None:
        """Deletes the customer's bills and bill items with it."""
        customer = await CustomerService.get_customer(db, customer_id)
        await db.delete(customer)
        await db.commit()
        logger.info("Customer deleted", extra={"customer_id": str(customer_id)})
