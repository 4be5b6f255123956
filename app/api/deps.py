"""API Dependencies"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import GuardFailure, SubscriptionAccessError
from app.core.logging import get_logger
from app.database import Database, get_db
from app.models.subscription import Subscription
from app.models.user import User
from app.services.identity_provider import IdentityError, IdentityProvider, get_identity_provider
from app.services.subscription_service import SubscriptionService

logger = get_logger(__name__)

# Missing credentials are reported as NO_TOKEN by the guard, not by FastAPI
security = HTTPBearer(auto_error=False)

__all__ = [
    "SubscriptionContext",
    "get_current_user",
    "get_database",
    "get_db",
    "require_subscription",
]


@dataclass
class SubscriptionContext:
    """The caller and the subscription that authorized the request"""
    user: User
    subscription: Subscription


def get_database(request: Request) -> Database:
    """The application's storage handle, for work that outlives the request session."""
    return request.app.state.database


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    identity: IdentityProvider = Depends(get_identity_provider),
) -> User:
    """
    Resolve the caller from a bearer token, provisioning a local user on first use.

    No database connection is held while the identity provider is called.

    Raises:
        SubscriptionAccessError: NO_TOKEN or INVALID_TOKEN
    """
    if credentials is None or not credentials.credentials:
        raise SubscriptionAccessError(GuardFailure.NO_TOKEN)

    try:
        external_id = await identity.verify_token(credentials.credentials)
    except IdentityError as e:
        logger.info(f"Token rejected: {str(e)}")
        raise SubscriptionAccessError(GuardFailure.INVALID_TOKEN) from e

    user = await SubscriptionService.get_user_by_external_id(db, external_id)
    if user is None:
        # Return the connection to the pool before calling out
        await db.commit()
        try:
            profile = await identity.get_user(external_id)
        except IdentityError as e:
            logger.warning(f"Identity profile lookup failed: {str(e)}", extra={"external_id": external_id})
            raise SubscriptionAccessError(GuardFailure.INVALID_TOKEN) from e
        user = await SubscriptionService.provision_user(db, profile)

    return user


async def require_subscription(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SubscriptionContext:
    """
    Gate for subscribed features: the caller must hold an ACTIVE, unexpired
    subscription and, on the usage-based plan, no overdue unpaid bills.

    Raises:
        SubscriptionAccessError: NO_SUBSCRIPTION, SUBSCRIPTION_EXPIRED or UNPAID_BILLS
    """
    subscription = await SubscriptionService.check_access(db, current_user)
    return SubscriptionContext(user=current_user, subscription=subscription)
