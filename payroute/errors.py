"""Error classes for the payment router.

Each error carries the HTTP status the API layer maps it to.
"""


class PayRouteError(Exception):
    """Base error for payment routing operations."""

    status_code = 500


class ClientInputError(PayRouteError):
    """Request is missing required fields or carries invalid values."""

    status_code = 400


class IntentParseError(ClientInputError):
    """Free-text message could not be turned into a payment intent."""

    pass


class ResolutionError(ClientInputError):
    """A recipient name did not resolve to an address."""

    pass


class UpstreamError(PayRouteError):
    """A quote or chain read needed to build a transaction failed."""

    status_code = 500


class NotFoundError(PayRouteError):
    """Requested record (invoice, receipt) does not exist."""

    status_code = 404


class RateLimitedError(PayRouteError):
    """Client exceeded its request allowance for the current window."""

    status_code = 429
