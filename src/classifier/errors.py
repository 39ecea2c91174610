"""
Classification error taxonomy.

Every failure the engine can surface to a caller derives from
``ClassificationError``. Transport failures carry the HTTP status code (when
there is one) so the surrounding application can tell credential problems
apart from everything else.
"""

from __future__ import annotations

AUTHENTICATION_STATUS_CODES = frozenset({401, 403})


class ClassificationError(Exception):
    """Base class for failures while classifying an item."""


class TransportError(ClassificationError):
    """The external call failed: network error, timeout or non-success status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_authentication_error(self) -> bool:
        return self.status_code in AUTHENTICATION_STATUS_CODES


class EmptyResponseError(TransportError):
    """The service answered successfully but with an empty body."""


class ResponseParseError(ClassificationError):
    """The reply held no usable JSON payload or a required field was missing."""
