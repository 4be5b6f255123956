"""Domain 1: Account holder linked to the external identity provider"""

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship

from app.models.base import BaseModel


class User(BaseModel):
    """
    Local account for an identity-provider user.
    Provisioned on first authenticated request; there is no separate registration.
    """
    __tablename__ = "users"

    external_id = Column(String(255), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)

    # Relationships
    subscriptions = relationship(
        "Subscription",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="Subscription.created_at.desc()",
    )
    usage_records = relationship("UsageRecord", back_populates="user", cascade="all, delete-orphan")
    subscription_bills = relationship("SubscriptionBill", back_populates="user", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        """Get user's full name"""
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.external_id})>"
