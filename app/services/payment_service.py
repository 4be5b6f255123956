"""
Stripe hosted checkout and payment settlement.

The Stripe SDK is synchronous, so calls run in a worker thread bounded by
EXTERNAL_API_TIMEOUT with a single attempt.
"""

import json
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional
from uuid import UUID

import anyio
import stripe
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.config import settings
from app.core.exceptions import ExternalServiceError, NotFoundError
from app.models.enums import PaymentMethod, PaymentStatus
from app.models.sales import Bill
from app.schemas.payment import CartItem
from app.utils.time import get_utc_now

logger = logging.getLogger(__name__)


class WebhookVerificationError(Exception):
    """Payload or signature did not verify against the webhook secret."""


def to_minor_units(amount: Decimal) -> int:
    """Rupees to paise (or the currency's smallest unit), rounded half-up."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class StripeGateway:
    """Stripe-based checkout implementation."""

    def __init__(
        self,
        secret_key: str,
        webhook_secret: str,
        currency: str = "inr",
        client_url: str = "",
        timeout: float = 10.0,
    ):
        """Initialize Stripe with API credentials."""
        stripe.api_key = secret_key
        stripe.max_network_retries = 0
        self.webhook_secret = webhook_secret
        self.currency = currency
        self.client_url = client_url.rstrip("/")
        self.timeout = timeout

    @classmethod
    def from_settings(cls) -> "StripeGateway":
        return cls(
            secret_key=settings.STRIPE_SECRET_KEY,
            webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
            currency=settings.STRIPE_CURRENCY,
            client_url=settings.CLIENT_URL,
            timeout=settings.EXTERNAL_API_TIMEOUT,
        )

    async def create_checkout_session(self, cart_items: List[CartItem], bill_id: UUID) -> str:
        """
        Create a Stripe checkout session for a bill.

        Returns:
            Hosted checkout URL

        Raises:
            ExternalServiceError: Stripe rejected the request or did not answer in time
        """
        line_items = [
            {
                "price_data": {
                    "currency": self.currency,
                    "product_data": {"name": item.name},
                    "unit_amount": to_minor_units(item.price),
                },
                "quantity": item.qty,
            }
            for item in cart_items
        ]

        def _create():
            return stripe.checkout.Session.create(
                payment_method_types=["card"],
                mode="payment",
                line_items=line_items,
                metadata={"bill_id": str(bill_id)},
                success_url=f"{self.client_url}/success/{bill_id}?session_id={{CHECKOUT_SESSION_ID}}",
                cancel_url=f"{self.client_url}/cancel",
            )

        try:
            with anyio.fail_after(self.timeout):
                session = await anyio.to_thread.run_sync(_create, abandon_on_cancel=True)
        except TimeoutError as e:
            logger.error("Stripe checkout timed out", extra={"bill_id": str(bill_id)})
            raise ExternalServiceError("Payment provider did not respond", error="Checkout failed") from e
        except stripe.StripeError as e:
            logger.error(
                f"Failed to create checkout session: {str(e)}",
                extra={"bill_id": str(bill_id), "error": str(e)},
            )
            raise ExternalServiceError("Unable to start checkout", error="Checkout failed") from e

        logger.info(
            "Created Stripe checkout session",
            extra={"bill_id": str(bill_id), "session_id": session.id},
        )
        return session.url

    def construct_event(self, payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
        """Verify the raw body against the ``stripe-signature`` header and parse it."""
        if not sig_header:
            raise WebhookVerificationError("Missing stripe-signature header")
        try:
            stripe.Webhook.construct_event(payload, sig_header, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as e:
            raise WebhookVerificationError(str(e)) from e
        return json.loads(payload)


_gateway: Optional[StripeGateway] = None


def get_payment_gateway() -> StripeGateway:
    """Dependency returning the process-wide Stripe gateway."""
    global _gateway
    if _gateway is None:
        _gateway = StripeGateway.from_settings()
    return _gateway


class PaymentService:
    """Bill settlement from payment events"""

    @staticmethod
    async def ensure_bill_exists(db: AsyncSession, bill_id: UUID) -> None:
        found = (await db.execute(select(Bill.id).where(Bill.id == bill_id))).first()
        if found is None:
            raise NotFoundError("The requested bill does not exist", error="Bill not found")

    @staticmethod
    async def mark_bill_paid(
        db: AsyncSession,
        bill_id: UUID,
        transaction_id: Optional[str],
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Settle a bill by card.

        Conditional on the bill not already being PAID, so a redelivered event
        changes nothing. Returns True when this call settled the bill.
        """
        result = await db.execute(
            update(Bill)
            .where(Bill.id == bill_id, Bill.payment_status != PaymentStatus.PAID)
            .values(
                payment_status=PaymentStatus.PAID,
                payment_method=PaymentMethod.CARD,
                transaction_id=transaction_id,
                paid_at=now or get_utc_now(),
                updated_at=get_utc_now(),
            )
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        return result.rowcount == 1
