"""
Domain errors raised by the service layer.

Services raise ``ValueError`` subclasses carrying a user‑facing
message; endpoints translate them into HTTP responses with
``to_http_exception``.  A plain ``ValueError`` is treated as a bad
request.
"""

from fastapi import HTTPException, status


class NotFoundError(ValueError):
    """The requested row does not exist."""


class PermissionDeniedError(ValueError):
    """The caller is not allowed to act on the row."""


class ConflictError(ValueError):
    """The write would duplicate an existing row or break the lifecycle."""


def to_http_exception(exc: ValueError) -> HTTPException:
    """Map a service error to an ``HTTPException`` with the same message."""
    if isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, PermissionDeniedError):
        status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, ConflictError):
        status_code = status.HTTP_409_CONFLICT
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=status_code, detail=str(exc))
