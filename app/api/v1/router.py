"""API Router"""

from fastapi import APIRouter

# Import endpoint routers
from app.api.v1.endpoints import (
    bills, checkout, customers, meetings,
    products, subscriptions, webhook
)

# Create API router
api_router = APIRouter()

# Include endpoint routers with prefixes and tags
api_router.include_router(subscriptions.router, prefix="/subscriptions", tags=["Subscriptions"])
api_router.include_router(products.router, prefix="/products", tags=["Products"])
api_router.include_router(customers.router, prefix="/customers", tags=["Customers"])
api_router.include_router(bills.router, prefix="/bills", tags=["Bills"])
api_router.include_router(checkout.router, prefix="/checkout", tags=["Payments"])
api_router.include_router(webhook.router, prefix="/webhook", tags=["Payments"])
api_router.include_router(meetings.router, tags=["Meetings"])
