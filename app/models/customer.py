"""Domain 2: End buyers"""

from sqlalchemy import Column, Index, String, Text
from sqlalchemy.orm import relationship

from app.models.base import BaseModel


class Customer(BaseModel):
    """Buyer of goods, found-or-created by (name, mobile_number) when a bill is raised."""
    __tablename__ = "customers"
    __table_args__ = (
        Index("ix_customers_name_mobile", "name", "mobile_number"),
    )

    name = Column(String(255), nullable=False)
    mobile_number = Column(String(32), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    address = Column(Text, nullable=True)

    bills = relationship(
        "Bill",
        back_populates="customer",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Bill.created_at.desc()",
    )

    def __repr__(self) -> str:
        return f"<Customer {self.name} {self.mobile_number}>"
