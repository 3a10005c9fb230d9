"""Base service exceptions.

These exceptions are raised by the service layer and should be caught
by the API layer and converted to appropriate HTTP responses, or by the
Dramatiq retry policy when raised inside a trigger handler.
"""


class ServiceError(Exception):
    """Base service exception."""

    pass


class ConfigurationError(ServiceError):
    """Required configuration (e.g. the mail transport credential) is missing.

    Fatal: surfaced to the caller and never retried automatically.
    """

    pass


class NotFoundError(ServiceError):
    """Resource not found."""

    pass


class ValidationError(ServiceError):
    """Validation error, raised before any side effect."""

    pass


class PermissionDeniedError(ServiceError):
    """Caller lacks the role required for an administrative operation."""

    pass


class DeliveryError(ServiceError):
    """Mail transport refused or failed to accept a notification."""

    pass


class TransientTransportError(DeliveryError):
    """Mail transport unreachable or temporarily failing (network, 429, 5xx).

    Propagated unmasked; the trigger handler's retry policy decides whether
    the whole invocation runs again.
    """

    pass


class DeliveryRejectedError(DeliveryError):
    """Mail transport rejected the request (4xx other than 429). Not retried."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Mail transport rejected request with status {status_code}: {detail}")
