"""Retry policy shared by the trigger handlers."""

from sqlalchemy.exc import OperationalError

from orderdesk.services.exceptions import TransientTransportError

MAX_HANDLER_RETRIES = 5
MIN_BACKOFF_MS = 1_000
MAX_BACKOFF_MS = 300_000


def retry_transient(retries_so_far: int, exception: Exception) -> bool:
    """Dramatiq ``retry_when`` predicate.

    Only transport hiccups and database connectivity errors are worth another
    run. Configuration errors, rejected emails and programming errors fail the
    message immediately.
    """
    if retries_so_far >= MAX_HANDLER_RETRIES:
        return False
    return isinstance(exception, (TransientTransportError, OperationalError))
