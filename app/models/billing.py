"""Domain 1: Monthly invoices for usage-based plans"""

from sqlalchemy import Column, DateTime, Enum, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.models.base import BaseModel, UserOwnedMixin
from app.models.enums import PlanType, SubscriptionBillStatus


class SubscriptionBill(BaseModel, UserOwnedMixin):
    """
    Invoice for one user's metered usage in one calendar month.
    Created only by the billing scheduler.
    """
    __tablename__ = "subscription_bills"
    __table_args__ = (
        UniqueConstraint("user_id", "billing_month", "billing_year", name="uq_subscription_bill_period"),
    )

    bill_number = Column(String(32), unique=True, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    plan_type = Column(Enum(PlanType, name="plan_type"), nullable=False, default=PlanType.CUSTOM)
    billing_month = Column(Integer, nullable=False)
    billing_year = Column(Integer, nullable=False)
    bills_count = Column(Integer, nullable=False)
    status = Column(
        Enum(SubscriptionBillStatus, name="subscription_bill_status"),
        default=SubscriptionBillStatus.PENDING,
        nullable=False,
        index=True,
    )
    due_date = Column(DateTime, nullable=False, index=True)
    paid_at = Column(DateTime, nullable=True)

    # Relationships
    user = relationship("User", back_populates="subscription_bills")

    def __repr__(self) -> str:
        return f"<SubscriptionBill {self.bill_number} {self.amount} - {self.status}>"
