"""Error kinds shared by the service-layer result types."""

from enum import Enum

from protean.exceptions import ValidationError


class ErrorKind(Enum):
    VALIDATION = "validation"  # Bad input, empty cart, insufficient stock
    INTEGRITY = "integrity"  # Unverifiable or tampered input
    DEPENDENCY = "dependency"  # Backing store or payment provider failed
    PARTIAL_FAILURE = "partial_failure"  # Order exists but a later step failed
    NOT_FOUND = "not_found"  # Referenced cart or order does not exist


# HTTP status used when a service result is surfaced through the API
HTTP_STATUS_FOR = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.INTEGRITY: 400,
    ErrorKind.DEPENDENCY: 502,
    ErrorKind.PARTIAL_FAILURE: 500,
    ErrorKind.NOT_FOUND: 404,
}


def describe(exc: ValidationError) -> str:
    """Flatten a Protean ValidationError into one human-readable message."""
    messages = getattr(exc, "messages", None)
    if not isinstance(messages, dict):
        return str(exc)
    parts = []
    for errors in messages.values():
        if isinstance(errors, (list, tuple)):
            parts.extend(str(error) for error in errors)
        else:
            parts.append(str(errors))
    return "; ".join(parts) or str(exc)
