"""Product Pydantic Schemas"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, List, Literal, Optional
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter

_http_url = TypeAdapter(HttpUrl)


def _validate_url(value: str) -> str:
    """Reject malformed URLs but keep the caller's exact string for storage."""
    _http_url.validate_python(value)
    return value


UrlStr = Annotated[str, AfterValidator(_validate_url)]

ProductSortField = Literal["title", "price", "stock", "created_at"]
SortOrder = Literal["asc", "desc"]


class ProductBase(BaseModel):
    description: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    thumbnail: Optional[UrlStr] = None
    images: List[UrlStr] = []
    rating: float = Field(0, ge=0, le=5)
    tags: List[str] = []
    warranty_information: Optional[str] = None
    shipping_information: Optional[str] = None
    return_policy: Optional[str] = None
    minimum_order_quantity: int = Field(1, ge=1)


class ProductCreate(ProductBase):
    title: str = Field(..., min_length=1)
    price: Decimal = Field(..., ge=0, decimal_places=2)
    stock: int = Field(..., ge=0)


class ProductUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0)
    description: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    thumbnail: Optional[UrlStr] = None
    images: Optional[List[UrlStr]] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    tags: Optional[List[str]] = None
    warranty_information: Optional[str] = None
    shipping_information: Optional[str] = None
    return_policy: Optional[str] = None
    minimum_order_quantity: Optional[int] = Field(None, ge=1)


class ProductResponse(ProductBase):
    id: UUID
    title: str
    price: Decimal
    stock: int
    availability_status: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductBrief(BaseModel):
    """Minimal product info for embedding in bill items and dashboards."""
    id: UUID
    title: str
    price: Decimal

    model_config = ConfigDict(from_attributes=True)
