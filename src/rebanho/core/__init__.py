"""Core module - configuration, units, rate limiting and AI client."""

from rebanho.core import client, ratelimit, units
from rebanho.core.client import (
    AssistantAPIError,
    MissingAPIKeyError,
    RetryableError,
    ask_about_herd,
    generate_content,
)
from rebanho.core.config import get_cache_dir, settings
from rebanho.core.ratelimit import (
    RateLimiter,
    RateLimitExceeded,
    ai_rate_limiter,
    create_rate_limiter,
    is_rate_limit_error,
)
from rebanho.core.units import (
    arrobas_to_kg,
    format_gmd,
    format_weight,
    kg_to_arrobas,
)

__all__ = [
    "client",
    "ratelimit",
    "units",
    "settings",
    "get_cache_dir",
    "generate_content",
    "ask_about_herd",
    "RetryableError",
    "AssistantAPIError",
    "MissingAPIKeyError",
    "RateLimiter",
    "RateLimitExceeded",
    "ai_rate_limiter",
    "create_rate_limiter",
    "is_rate_limit_error",
    # Unit conversion helpers
    "kg_to_arrobas",
    "arrobas_to_kg",
    "format_weight",
    "format_gmd",
]
