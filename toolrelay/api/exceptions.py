"""API-level errors not raised by the relay core."""

from toolrelay.errors import RelayError


class NotFoundError(RelayError):
    """Requested resource does not exist."""

    kind = "not_found"
    status_code = 404


class RateLimitExceededError(RelayError):
    """Client exceeded its request budget."""

    kind = "rate_limit_exceeded"
    status_code = 429
