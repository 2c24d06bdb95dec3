"""Typed failures raised by the activity engine.

Every error carries a stable ``code``; the HTTP layer maps codes to status
codes and never needs to inspect exception classes.
"""

from fastapi import status


class SocialError(Exception):
    """Base error for the social activity service."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, code: str = "internal_server_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(SocialError):
    """Resource, or its activity record, is absent."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, "not_found")


class InputError(SocialError):
    """Client supplied an invalid value."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Bad Request"):
        super().__init__(message, "input_error")


class AuthorizationError(SocialError):
    """Actor is missing or not entitled to the operation."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, "authorization_error")


class CreationError(SocialError):
    """Store rejected a write."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Failed to create resource"):
        super().__init__(message, "creation_error")


class RedundantRequestError(SocialError):
    """Request repeats one that already took effect."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "This resource is already reported by source"):
        super().__init__(message, "redundant_request")


class RateLimitExceededError(SocialError):
    """Source exceeded a per-window request budget."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__(message, "rate_limit_exceeded")


class ConsistencyFaultError(SocialError):
    """A counter would go negative or lost a race beyond the retry budget."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "Activity counters are inconsistent"):
        super().__init__(message, "consistency_fault")
