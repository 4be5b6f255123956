from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.schemas.catalog import (
    ProductCreate,
    ProductResponse,
    ProductSortField,
    ProductUpdate,
    SortOrder,
)
from app.schemas.responses import PaginatedResponse, PaginationMeta, SuccessResponse
from app.services.product_service import ProductService

router = APIRouter(dependencies=[Depends(deps.require_subscription)])


@router.get("", response_model=PaginatedResponse[ProductResponse])
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    search: Optional[str] = None,
    category: Optional[str] = None,
    sort_by: ProductSortField = "created_at",
    sort_order: SortOrder = "desc",
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    """
    List products. ``search`` matches title, description or brand.
    """
    products, total = await ProductService.list_products(
        db,
        page=page,
        limit=limit,
        search=search,
        category=category,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return PaginatedResponse(data=products, meta=PaginationMeta.build(page, limit, total))


@router.get("/categories", response_model=SuccessResponse[List[str]])
async def list_categories(db: AsyncSession = Depends(deps.get_db)) -> Any:
    categories = await ProductService.get_categories(db)
    return SuccessResponse(data=categories)


@router.get("/{product_id}", response_model=SuccessResponse[ProductResponse])
async def get_product(product_id: UUID, db: AsyncSession = Depends(deps.get_db)) -> Any:
    product = await ProductService.get_product(db, product_id)
    return SuccessResponse(data=product)


@router.post("", response_model=SuccessResponse[ProductResponse], status_code=status.HTTP_201_CREATED)
async def create_product(product_in: ProductCreate, db: AsyncSession = Depends(deps.get_db)) -> Any:
    product = await ProductService.create_product(db, product_in)
    return SuccessResponse(data=product, message="Product created successfully")


@router.put("/{product_id}", response_model=SuccessResponse[ProductResponse])
async def update_product(
    product_id: UUID,
    product_in: ProductUpdate,
    db: AsyncSession = Depends(deps.get_db),
) -> Any:
    product = await ProductService.update_product(db, product_id, product_in)
    return SuccessResponse(data=product, message="Product updated successfully")


@router.delete("/{product_id}", response_model=SuccessResponse)
async def delete_product(product_id: UUID, db: AsyncSession = Depends(deps.get_db)) -> Any:
    """
    Delete a product. 409 while any bill references it.
    """
    await ProductService.delete_product(db, product_id)
    return SuccessResponse(message="Product deleted successfully")
