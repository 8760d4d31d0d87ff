"""Rate limiting for the public invitation endpoints.

Invitation codes are bearer credentials, so the unauthenticated preview and
redeem endpoints are limited per client IP to make code guessing impractical.
Uses Redis storage when REDIS_URL is configured, in-memory otherwise.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from src.shepherd.core.config import get_settings
from src.shepherd.core.logging import get_logger

logger = get_logger(__name__)


def get_rate_limit_key(request: Request) -> str:
    """Key on client IP only.

    Never include caller-controlled headers such as X-Tenant-ID: rotating them
    would mint unlimited fresh buckets.
    """
    return get_remote_address(request) or "unknown"


def create_limiter() -> Limiter:
    """Create the limiter. Disabled in the testing environment."""
    settings = get_settings()

    if settings.app_env == "testing":
        logger.info("Rate limiter disabled (testing environment)")
        return Limiter(key_func=get_rate_limit_key, enabled=False)

    if settings.redis_url:
        logger.info("Rate limiter using Redis backend")
        return Limiter(key_func=get_rate_limit_key, storage_uri=settings.redis_url)

    logger.info("Rate limiter using in-memory backend (not distributed)")
    return Limiter(key_func=get_rate_limit_key)


# Reads settings at import time; changing limits requires a restart.
limiter = create_limiter()


def redeem_limit() -> str:
    """Limit string for invitation preview/redeem, read per request."""
    return get_settings().redeem_rate_limit
