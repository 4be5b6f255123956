"""Domain 3: Sellable products"""

from sqlalchemy import Column, Float, Integer, JSON, Numeric, String, Text
from sqlalchemy.orm import relationship

from app.models.base import BaseModel
from app.models.enums import AvailabilityStatus


class Product(BaseModel):
    """
    Catalog item with stock on hand.
    availability_status is derived from stock and rewritten whenever stock changes.
    """
    __tablename__ = "products"

    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    category = Column(String(255), nullable=True, index=True)
    brand = Column(String(255), nullable=True)
    thumbnail = Column(String(1000), nullable=True)
    images = Column(JSON, nullable=False, default=list)
    rating = Column(Float, nullable=False, default=0)
    stock = Column(Integer, nullable=False, default=0)
    tags = Column(JSON, nullable=False, default=list)
    warranty_information = Column(Text, nullable=True)
    shipping_information = Column(Text, nullable=True)
    availability_status = Column(
        String(32), nullable=False, default=AvailabilityStatus.IN_STOCK.value
    )
    return_policy = Column(Text, nullable=True)
    minimum_order_quantity = Column(Integer, nullable=False, default=1)

    bill_items = relationship("BillItem", back_populates="product", passive_deletes="all")

    def __repr__(self) -> str:
        return f"<Product {self.title} stock={self.stock}>"
