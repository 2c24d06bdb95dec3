# Core infrastructure
from social.core.context import (
    clear_context,
    get_context,
    get_request_id,
    get_source_id,
    set_request_id,
    set_source,
    set_trace_id,
)
from social.core.errors import (
    AuthorizationError,
    ConsistencyFaultError,
    InputError,
    NotFoundError,
    RateLimitExceededError,
    RedundantRequestError,
    SocialError,
)
from social.core.logging import configure_structlog, get_logger
from social.core.middleware import RequestContextMiddleware


__all__ = [
    "AuthorizationError",
    "ConsistencyFaultError",
    "InputError",
    "NotFoundError",
    "RateLimitExceededError",
    "RedundantRequestError",
    "RequestContextMiddleware",
    "SocialError",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_logger",
    "get_request_id",
    "get_source_id",
    "set_request_id",
    "set_source",
    "set_trace_id",
]
