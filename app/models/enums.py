"""Centralized Enum Definitions"""

import enum


# Domain 1: Subscriptions
class PlanType(str, enum.Enum):
    """Subscription plans. CUSTOM is billed monthly per bill created."""
    MONTHLY = "MONTHLY"
    ANNUAL = "ANNUAL"
    CUSTOM = "CUSTOM"


class SubscriptionStatus(str, enum.Enum):
    """Subscription lifecycle"""
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class SubscriptionBillStatus(str, enum.Enum):
    """Monthly usage invoice status"""
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


# Domain 2: Sales
class PaymentStatus(str, enum.Enum):
    """Sales bill payment status"""
    PENDING = "PENDING"
    PAID = "PAID"
    PARTIAL = "PARTIAL"
    OVERDUE = "OVERDUE"


class PaymentMethod(str, enum.Enum):
    """How a sales bill was paid"""
    CASH = "CASH"
    CARD = "CARD"
    UPI = "UPI"
    BANK_TRANSFER = "BANK_TRANSFER"
    OTHER = "OTHER"


# Domain 3: Catalog
class AvailabilityStatus(str, enum.Enum):
    """Derived from stock; stored as display text"""
    IN_STOCK = "In Stock"
    OUT_OF_STOCK = "Out of Stock"

    @classmethod
    def for_stock(cls, stock: int) -> "AvailabilityStatus":
        return cls.IN_STOCK if stock > 0 else cls.OUT_OF_STOCK
