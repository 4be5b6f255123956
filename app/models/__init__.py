"""Models Package - Export all models for easy imports"""

from app.models.base import BaseModel, UserOwnedMixin
from app.models.enums import *
from app.models.user import User
from app.models.subscription import Subscription, UsageRecord
from app.models.billing import SubscriptionBill
from app.models.customer import Customer
from app.models.catalog import Product
from app.models.sales import Bill, BillItem


__all__ = [
    # Base classes
    "BaseModel",
    "UserOwnedMixin",

    # Enums
    "PlanType",
    "SubscriptionStatus",
    "SubscriptionBillStatus",
    "PaymentStatus",
    "PaymentMethod",
    "AvailabilityStatus",

    # Accounts & subscriptions
    "User",
    "Subscription",
    "UsageRecord",
    "SubscriptionBill",

    # Sales
    "Customer",
    "Product",
    "Bill",
    "BillItem",
]
