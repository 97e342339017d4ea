"""Rate limiting for form submissions."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from cloudmagic.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit],
    storage_uri="memory://",
    enabled=settings.rate_limit_enabled,
)

# Note: decorated endpoints must take a 'request: Request' parameter (slowapi requirement)
auth_rate_limit = limiter.limit(settings.auth_rate_limit)
