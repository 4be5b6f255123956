from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.exceptions import BadRequestError
from app.core.logging import get_logger
from app.core.rate_limit import limiter
from app.schemas.payment import CheckoutSessionCompleted, StripeEvent
from app.services.payment_service import (
    PaymentService,
    StripeGateway,
    WebhookVerificationError,
    get_payment_gateway,
)

router = APIRouter()
logger = get_logger(__name__)

CHECKOUT_SESSION_COMPLETED = "checkout.session.completed"


@router.post("")
@limiter.exempt
async def stripe_webhook(
    request: Request,
    db: AsyncSession = Depends(deps.get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
) -> Any:
    """
    Receive Stripe events. The raw body is verified against the
    ``stripe-signature`` header before anything is parsed or written.
    """
    payload = await request.body()
    try:
        event = StripeEvent.model_validate(
            gateway.construct_event(payload, request.headers.get("stripe-signature"))
        )
    except WebhookVerificationError as e:
        logger.error(f"Stripe webhook signature verification failed: {str(e)}")
        raise BadRequestError("Invalid signature", error="Webhook Error")
    except ValidationError as e:
        logger.error("Invalid Stripe webhook payload", extra={"validation_errors": e.errors()})
        raise BadRequestError("Invalid webhook payload", error="Webhook Error")

    logger.info(
        f"Received Stripe webhook: {event.type}",
        extra={"event_id": event.id, "event_type": event.type, "livemode": event.livemode},
    )

    if event.type == CHECKOUT_SESSION_COMPLETED:
        session = CheckoutSessionCompleted.model_validate(event.data.object)
        bill_id = session.metadata.get("bill_id")
        if not bill_id:
            logger.error("Missing bill_id in checkout session metadata", extra={"session_id": session.id})
            return {"received": True}
        try:
            bill_uuid = UUID(bill_id)
        except ValueError:
            logger.error("Malformed bill_id in checkout session metadata", extra={"bill_id": bill_id})
            return {"received": True}

        settled = await PaymentService.mark_bill_paid(db, bill_uuid, session.payment_intent)
        logger.info(
            "Payment successful" if settled else "Bill already settled or missing",
            extra={"bill_id": bill_id, "transaction_id": session.payment_intent},
        )
    else:
        logger.info(f"Unhandled Stripe webhook type: {event.type}")

    return {"received": True}
