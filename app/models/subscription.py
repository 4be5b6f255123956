"""Domain 1: Subscription plans and metered usage"""

from sqlalchemy import Column, DateTime, Enum, Integer, Numeric, Uuid
from sqlalchemy.orm import relationship

from app.models.base import BaseModel, UserOwnedMixin
from app.models.enums import PlanType, SubscriptionStatus


class Subscription(BaseModel, UserOwnedMixin):
    """
    A user's billing plan.
    At most one ACTIVE row per user, enforced by the subscribe route rather than a constraint.
    """
    __tablename__ = "subscriptions"

    plan_type = Column(Enum(PlanType, name="plan_type"), nullable=False)
    status = Column(
        Enum(SubscriptionStatus, name="subscription_status"),
        default=SubscriptionStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True, index=True)
    next_billing_date = Column(DateTime, nullable=True)
    bills_generated = Column(Integer, nullable=False, default=0)

    # Relationships
    user = relationship("User", back_populates="subscriptions")

    @property
    def is_usage_based(self) -> bool:
        return self.plan_type == PlanType.CUSTOM

    def __repr__(self) -> str:
        return f"<Subscription {self.plan_type} - {self.status}>"


class UsageRecord(BaseModel, UserOwnedMixin):
    """One row per sales bill created by the user, bucketed by calendar month. Never updated."""
    __tablename__ = "usage_records"

    bill_id = Column(Uuid(as_uuid=True), nullable=False, index=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False)

    user = relationship("User", back_populates="usage_records")

    def __repr__(self) -> str:
        return f"<UsageRecord {self.month}/{self.year} bill={self.bill_id}>"
