"""Product Service - catalog CRUD"""

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.core.exceptions import ConflictError, NotFoundError
from app.models.catalog import Product
from app.models.enums import AvailabilityStatus
from app.models.sales import BillItem
from app.schemas.catalog import ProductCreate, ProductUpdate

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "title": Product.title,
    "price": Product.price,
    "stock": Product.stock,
    "created_at": Product.created_at,
}


class ProductService:
    """Service layer for product-related operations"""

    @staticmethod
    async def list_products(
        db: AsyncSession,
        page: int = 1,
        limit: int = 50,
        search: Optional[str] = None,
        category: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[Product], int]:
        filters = []
        if search:
            pattern = f"%{search}%"
            filters.append(
                or_(
                    Product.title.ilike(pattern),
                    Product.description.ilike(pattern),
                    Product.brand.ilike(pattern),
                )
            )
        if category:
            filters.append(Product.category.ilike(f"%{category}%"))

        total = (await db.execute(select(func.count(Product.id)).where(*filters))).scalar_one()

        column = _SORT_COLUMNS.get(sort_by, Product.created_at)
        order = column.asc() if sort_order == "asc" else column.desc()
        result = await db.execute(
            select(Product)
            .where(*filters)
            .order_by(order)
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total

    @staticmethod
    async def get_product(db: AsyncSession, product_id: UUID) -> Product:
        product = await db.get(Product, product_id)
        if product is None:
            raise NotFoundError("The requested product does not exist", error="Product not found")
        return product

    @staticmethod
    async def create_product(db: AsyncSession, product_in: ProductCreate) -> Product:
        product = Product(
            **product_in.model_dump(),
            availability_status=AvailabilityStatus.for_stock(product_in.stock).value,
        )
        db.add(product)
        await db.commit()
        await db.refresh(product)
        logger.info("Product created", extra={"product_id": str(product.id)})
        return product

    @staticmethod
    async def update_product(db: AsyncSession, product_id: UUID, product_in: ProductUpdate) -> Product:
        """Partial update; availability is re-derived whenever stock is supplied."""
        product = await ProductService.get_product(db, product_id)
        for field, value in product_in.model_dump(exclude_unset=True).items():
            setattr(product, field, value)
        if product_in.stock is not None:
            product.availability_status = AvailabilityStatus.for_stock(product_in.stock).value
        await db.commit()
        await db.refresh(product)
        return product

    @staticmethod
    async def delete_product(db: AsyncSession, product_id: UUID) -> None:
        """Refused while any bill line references the product."""
        product = await ProductService.get_product(db, product_id)
        referenced = (
            await db.execute(select(BillItem.id).where(BillItem.product_id == product_id).limit(1))
        ).first()
        if referenced is not None:
            raise ConflictError(
                "Cannot delete product that is referenced by existing bills",
                error="Product in use",
            )
        await db.delete(product)
        await db.commit()
        logger.info("Product deleted", extra={"product_id": str(product_id)})

    @staticmethod
    async def get_categories(db: AsyncSession) -> List[str]:
        result = await db.execute(
            select(Product.category)
            .where(Product.category.isnot(None), Product.category != "")
            .distinct()
            .order_by(Product.category)
        )
        return list(result.scalars().all())
