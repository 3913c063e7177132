import logging

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .outcomes import ErrorKind, StorageFailure
from .responses import envelope, error

logger = logging.getLogger(__name__)


def _messages(detail, prefix=""):
    """Flatten DRF error detail (dict / list / str) into (field, message) pairs."""
    if isinstance(detail, dict):
        for key, value in detail.items():
            field = "" if key in ("detail", "non_field_errors") else str(key)
            yield from _messages(value, ".".join(p for p in (prefix, field) if p))
    elif isinstance(detail, list):
        for item in detail:
            yield from _messages(item, prefix)
    else:
        yield prefix, str(detail)


def envelope_exception_handler(exc, context):
    if isinstance(exc, StorageFailure):
        logger.error("Storage failure serving %s", context.get("view").__class__.__name__, exc_info=exc)
        return Response(
            envelope(errors=[error("STORAGE_FAILURE", "Storage is unavailable, try again later")]),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        code = ErrorKind.VALIDATION_FAILED.value
    elif response.status_code == status.HTTP_404_NOT_FOUND:
        code = ErrorKind.NOT_FOUND.value
    else:
        code = str(getattr(exc, "default_code", "error")).upper()

    errors = [
        error(code, f"{field}: {message}" if field else message)
        for field, message in _messages(response.data)
    ]
    response.data = envelope(errors=errors)
    return response
