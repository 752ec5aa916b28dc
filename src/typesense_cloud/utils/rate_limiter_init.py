"""Initialize rate limiters from configuration."""

from typesense_cloud.core.config import RateLimitsConfig
from typesense_cloud.utils.logging import get_logger
from typesense_cloud.utils.rate_limiter import get_rate_limiter

logger = get_logger(__name__)

MANAGEMENT_API_LIMITER = "management_api"


def initialize_rate_limiters(rate_limits: RateLimitsConfig | None = None) -> None:
    """Register the management API limiter.

    Safe to call more than once; the first registration wins.

    Args:
        rate_limits: Rate limits configuration (defaults apply when omitted)
    """
    rate_limits = rate_limits or RateLimitsConfig()
    rate_limiter = get_rate_limiter()

    if rate_limiter.is_registered(MANAGEMENT_API_LIMITER):
        return

    logger.debug("initializing_rate_limiters", limits=rate_limits.model_dump())

    rate_limiter.register(
        name=MANAGEMENT_API_LIMITER,
        capacity=rate_limits.management_api,
        refill_rate=rate_limits.management_api / 60.0,  # per second
        max_wait=120.0,
    )
