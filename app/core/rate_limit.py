"""Process-wide rate limiter (SlowAPI, in-memory storage)"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import settings

# Applied to every route by SlowAPIMiddleware; routes opt out with @limiter.exempt
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    enabled=settings.RATE_LIMIT_ENABLED,
)
