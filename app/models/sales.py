"""Domain 2: Sales bills and their line items"""

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from app.models.base import BaseModel
from app.models.enums import PaymentMethod, PaymentStatus


class Bill(BaseModel):
    """
    A completed sale.
    Immutable after creation except for payment status, method and settlement fields.
    """
    __tablename__ = "bills"

    bill_number = Column(String(32), unique=True, nullable=False, index=True)
    customer_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Account holder who raised the bill
    user_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    total_amount = Column(Numeric(12, 2), nullable=False)
    discount_percent = Column(Numeric(5, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    final_amount = Column(Numeric(12, 2), nullable=False)
    payment_status = Column(
        Enum(PaymentStatus, name="payment_status"),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )
    payment_method = Column(
        Enum(PaymentMethod, name="payment_method"),
        default=PaymentMethod.CASH,
        nullable=False,
    )
    transaction_id = Column(String(255), nullable=True)
    paid_at = Column(DateTime, nullable=True)

    # Relationships
    customer = relationship("Customer", back_populates="bills")
    items = relationship(
        "BillItem",
        back_populates="bill",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Bill {self.bill_number} {self.final_amount} - {self.payment_status}>"


class BillItem(BaseModel):
    """Line snapshot: unit price is copied from the product at sale time."""
    __tablename__ = "bill_items"

    bill_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("bills.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    total_price = Column(Numeric(12, 2), nullable=False)

    bill = relationship("Bill", back_populates="items")
    product = relationship("Product", back_populates="bill_items")

    def __repr__(self) -> str:
        return f"<BillItem {self.product_id} x{self.quantity}>"
