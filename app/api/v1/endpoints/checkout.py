from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.schemas.payment import CheckoutRequest, CheckoutResponse
from app.services.payment_service import PaymentService, StripeGateway, get_payment_gateway

router = APIRouter(dependencies=[Depends(deps.require_subscription)])


@router.post("", response_model=CheckoutResponse)
async def create_checkout_session(
    checkout_in: CheckoutRequest,
    db: AsyncSession = Depends(deps.get_db),
    gateway: StripeGateway = Depends(get_payment_gateway),
) -> Any:
    """
    Start a hosted Stripe checkout for a bill and return the redirect URL.
    The bill is marked PAID when the completion webhook arrives.
    """
    await PaymentService.ensure_bill_exists(db, checkout_in.bill_id)
    # Release the connection before calling Stripe
    await db.commit()
    url = await gateway.create_checkout_session(checkout_in.cart_items, checkout_in.bill_id)
    return CheckoutResponse(url=url)
