"""Bill Service - sales bill transaction, queries and dashboard statistics"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import logging

from app.core.exceptions import InsufficientStockError, NotFoundError, ProductNotFoundError
from app.models.catalog import Product
from app.models.customer import Customer
from app.models.enums import AvailabilityStatus, PaymentStatus
from app.models.sales import Bill, BillItem
from app.schemas.catalog import ProductBrief
from app.schemas.sales import BillCreate, BillUpdate, DashboardResponse, DashboardStats, TopProduct
from app.utils.numbering import next_sequence_number
from app.utils.time import end_of_day, get_utc_now, month_bounds, start_of_day

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def compute_discount(total_amount: Decimal, discount_percent: Decimal) -> Tuple[Decimal, Decimal]:
    """(discount_amount, final_amount); the discount is rounded half-up to cents."""
    discount_amount = (total_amount * discount_percent / 100).quantize(CENT, rounding=ROUND_HALF_UP)
    return discount_amount, total_amount - discount_amount


class BillService:
    """Service layer for sales bills"""

    @staticmethod
    def _with_details(stmt):
        return stmt.options(
            selectinload(Bill.customer),
            selectinload(Bill.items).selectinload(BillItem.product),
        )

    @staticmethod
    async def generate_bill_number(db: AsyncSession, now: Optional[datetime] = None) -> str:
        """BILL{YYYYMMDD}{seq:04d}, sequence scoped to the calendar day."""
        now = now or get_utc_now()
        return await next_sequence_number(db, Bill.bill_number, f"BILL{now:%Y%m%d}")

    @staticmethod
    async def find_customer(db: AsyncSession, name: str, mobile_number: str) -> Optional[Customer]:
        result = await db.execute(
            select(Customer)
            .where(Customer.name == name, Customer.mobile_number == mobile_number)
            .order_by(Customer.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def _take_stock(db: AsyncSession, product_id: UUID, quantity: int) -> Product:
        """
        Decrement stock for one line, refusing to go below zero.

        The decrement is a single conditional UPDATE, so two concurrent sales of
        the last units cannot both succeed.
        """
        product = (
            await db.execute(
                select(Product)
                .where(Product.id == product_id)
                .execution_options(populate_existing=True)
            )
        ).scalar_one_or_none()
        if product is None:
            raise ProductNotFoundError(product_id)
        if product.stock < quantity:
            raise InsufficientStockError(product.title, product.stock, quantity)

        result = await db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(
                stock=Product.stock - quantity,
                availability_status=case(
                    (Product.stock > quantity, AvailabilityStatus.IN_STOCK.value),
                    else_=AvailabilityStatus.OUT_OF_STOCK.value,
                ),
                updated_at=get_utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # Sold by a concurrent bill between the read and the update
            available = (
                await db.execute(select(Product.stock).where(Product.id == product_id))
            ).scalar_one()
            raise InsufficientStockError(product.title, available, quantity)
        return product

    @staticmethod
    async def create_bill(
        db: AsyncSession,
        bill_in: BillCreate,
        user_id: Optional[UUID] = None,
        now: Optional[datetime] = None,
    ) -> Bill:
        """
        Create a sales bill as one all-or-nothing transaction.

        Finds or creates the customer, checks and decrements stock for every line,
        computes totals and discount, allocates the bill number and persists the
        bill with its items. Any failure rolls back every write made here.

        Raises:
            ProductNotFoundError: a line references an unknown product
            InsufficientStockError: a line asks for more than is in stock
        """
        now = now or get_utc_now()
        try:
            customer = await BillService.find_customer(db, bill_in.customer_name, bill_in.mobile_number)
            if customer is None:
                customer = Customer(
                    name=bill_in.customer_name,
                    mobile_number=bill_in.mobile_number,
                    email=bill_in.email,
                    address=bill_in.address,
                )
                db.add(customer)
                await db.flush()

            total_amount = Decimal("0")
            items: List[BillItem] = []
            for line in bill_in.items:
                product = await BillService._take_stock(db, line.product_id, line.quantity)
                unit_price = Decimal(product.price)
                line_total = unit_price * line.quantity
                total_amount += line_total
                items.append(
                    BillItem(
                        product_id=product.id,
                        quantity=line.quantity,
                        unit_price=unit_price,
                        total_price=line_total,
                    )
                )

            discount_amount, final_amount = compute_discount(total_amount, bill_in.discount_percent)

            bill = Bill(
                bill_number=await BillService.generate_bill_number(db, now),
                customer_id=customer.id,
                user_id=user_id,
                total_amount=total_amount,
                discount_percent=bill_in.discount_percent,
                discount_amount=discount_amount,
                final_amount=final_amount,
                payment_method=bill_in.payment_method,
                payment_status=bill_in.payment_status,
                paid_at=now if bill_in.payment_status == PaymentStatus.PAID else None,
                items=items,
            )
            db.add(bill)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Bill created",
            extra={"bill_number": bill.bill_number, "final_amount": str(final_amount)},
        )
        return await BillService.get_bill(db, bill.id)

    @staticmethod
    async def get_bill(db: AsyncSession, bill_id: UUID) -> Bill:
        result = await db.execute(
            BillService._with_details(select(Bill))
            .where(Bill.id == bill_id)
            .execution_options(populate_existing=True)
        )
        bill = result.scalar_one_or_none()
        if bill is None:
            raise NotFoundError("The requested bill does not exist", error="Bill not found")
        return bill

    @staticmethod
    async def list_bills(
        db: AsyncSession,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
        status: Optional[PaymentStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Tuple[List[Bill], int]:
        """Newest first. ``search`` matches bill number or customer name/mobile."""
        filters = []
        if search:
            pattern = f"%{search}%"
            filters.append(
                or_(
                    Bill.bill_number.ilike(pattern),
                    Customer.name.ilike(pattern),
                    Customer.mobile_number.ilike(pattern),
                )
            )
        if status:
            filters.append(Bill.payment_status == status)
        if start_date:
            filters.append(Bill.created_at >= start_date)
        if end_date:
            filters.append(Bill.created_at <= end_date)

        count_stmt = select(func.count(Bill.id)).join(Customer, Bill.customer_id == Customer.id).where(*filters)
        total = (await db.execute(count_stmt)).scalar_one()

        stmt = (
            BillService._with_details(select(Bill))
            .join(Customer, Bill.customer_id == Customer.id)
            .where(*filters)
            .order_by(Bill.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await db.execute(stmt)
        return list(result.scalars().all()), total

    @staticmethod
    async def update_bill(db: AsyncSession, bill_id: UUID, bill_in: BillUpdate) -> Bill:
        """Only payment status and method may change after creation."""
        bill = await BillService.get_bill(db, bill_id)
        if bill_in.payment_status is not None:
            bill.payment_status = bill_in.payment_status
            if bill_in.payment_status == PaymentStatus.PAID and bill.paid_at is None:
                bill.paid_at = get_utc_now()
        if bill_in.payment_method is not None:
            bill.payment_method = bill_in.payment_method
        await db.commit()
        return await BillService.get_bill(db, bill_id)

    @staticmethod
    async def get_dashboard(
        db: AsyncSession,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> DashboardResponse:
        """Totals for the range (current month when either bound is missing) plus today's figures."""
        now = now or get_utc_now()
        if not (start_date and end_date):
            start_date, end_date = month_bounds(now)
        in_range = (Bill.created_at >= start_date, Bill.created_at <= end_date)
        today = (Bill.created_at >= start_of_day(now), Bill.created_at <= end_of_day(now))

        async def _count(*conditions) -> int:
            return (await db.execute(select(func.count(Bill.id)).where(*conditions))).scalar_one()

        async def _revenue(*conditions) -> Decimal:
            value = (
                await db.execute(select(func.coalesce(func.sum(Bill.final_amount), 0)).where(*conditions))
            ).scalar_one()
            return Decimal(str(value))

        stats = DashboardStats(
            total_bills=await _count(*in_range),
            total_revenue=await _revenue(*in_range),
            paid_bills=await _count(*in_range, Bill.payment_status == PaymentStatus.PAID),
            pending_bills=await _count(*in_range, Bill.payment_status == PaymentStatus.PENDING),
            today_bills=await _count(*today),
            today_revenue=await _revenue(*today),
        )

        quantity_sold = func.sum(BillItem.quantity).label("quantity_sold")
        revenue = func.sum(BillItem.total_price).label("revenue")
        rows = (
            await db.execute(
                select(BillItem.product_id, quantity_sold, revenue)
                .join(Bill, BillItem.bill_id == Bill.id)
                .where(*in_range)
                .group_by(BillItem.product_id)
                .order_by(quantity_sold.desc())
                .limit(5)
            )
        ).all()

        products = {}
        if rows:
            result = await db.execute(select(Product).where(Product.id.in_([row.product_id for row in rows])))
            products = {product.id: product for product in result.scalars().all()}

        top_products = [
            TopProduct(
                product=ProductBrief.model_validate(products[row.product_id]) if row.product_id in products else None,
                quantity_sold=int(row.quantity_sold),
                revenue=Decimal(str(row.revenue)),
            )
            for row in rows
        ]
        return DashboardResponse(stats=stats, top_products=top_products)
