"""Application error types and their HTTP rendering"""

import enum
from typing import Any, Dict, Optional

from fastapi import status


class AppError(Exception):
    """
    Base class for errors rendered as ``{"error", "message", "code", ...}``.

    Raised from services and dependencies; converted to a JSON response by the
    exception handler registered in ``app.main``.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal server error"
    code: Optional[str] = None

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        error: Optional[str] = None,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message or self.error)
        self.message = message
        if error is not None:
            self.error = error
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.extra = extra or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.error}
        if self.message:
            body["message"] = self.message
        if self.code:
            body["code"] = self.code
        body.update(self.extra)
        return body


class BadRequestError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Bad request"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    error = "Conflict"


class ExternalServiceError(AppError):
    """A third-party API failed or timed out. The provider's own error is only logged."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error = "External service error"


class BillCreationError(AppError):
    """Aborts the bill transaction (missing product, insufficient stock)."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Failed to create bill"


class ProductNotFoundError(BillCreationError):
    code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: Any):
        super().__init__(f"Product with ID {product_id} not found")
        self.product_id = product_id


class InsufficientStockError(BillCreationError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, title: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for product {title}. "
            f"Available: {available}, Requested: {requested}"
        )
        self.available = available
        self.requested = requested


class GuardFailure(str, enum.Enum):
    """Reasons the subscription guard rejects a request"""
    NO_TOKEN = "NO_TOKEN"
    INVALID_TOKEN = "INVALID_TOKEN"
    NO_SUBSCRIPTION = "NO_SUBSCRIPTION"
    SUBSCRIPTION_EXPIRED = "SUBSCRIPTION_EXPIRED"
    UNPAID_BILLS = "UNPAID_BILLS"


# status, error title, message, client redirect hint
_GUARD_RESPONSES: Dict[GuardFailure, tuple] = {
    GuardFailure.NO_TOKEN: (
        status.HTTP_401_UNAUTHORIZED,
        "Unauthorized",
        "No authentication token provided",
        None,
    ),
    GuardFailure.INVALID_TOKEN: (
        status.HTTP_401_UNAUTHORIZED,
        "Unauthorized",
        "Invalid or expired token",
        None,
    ),
    GuardFailure.NO_SUBSCRIPTION: (
        status.HTTP_403_FORBIDDEN,
        "No Active Subscription",
        "You need an active subscription to access this feature",
        "/pricing",
    ),
    GuardFailure.SUBSCRIPTION_EXPIRED: (
        status.HTTP_403_FORBIDDEN,
        "Subscription Expired",
        "Your subscription has expired. Please renew to continue.",
        "/pricing",
    ),
    GuardFailure.UNPAID_BILLS: (
        status.HTTP_403_FORBIDDEN,
        "Payment Required",
        "You have unpaid subscription bills. Please clear your dues to continue.",
        "/subscription/payment",
    ),
}


class SubscriptionAccessError(AppError):
    """Raised by the subscription guard; ``failure`` tags the reason."""

    def __init__(self, failure: GuardFailure, **extra: Any):
        status_code, error, message, redirect = _GUARD_RESPONSES[failure]
        if redirect:
            extra.setdefault("redirect", redirect)
        super().__init__(
            message,
            error=error,
            code=failure.value,
            status_code=status_code,
            extra=extra,
        )
        self.failure = failure
