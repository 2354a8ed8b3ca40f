"""
Domain exceptions raised by the data-access modules.

The FastAPI app maps these onto HTTP responses using `status_code`.
"""

from __future__ import annotations


class EngageError(Exception):
    """Base class for errors a caller can act on."""

    status_code = 400

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class InvalidInputError(EngageError, ValueError):
    status_code = 400


class PermissionDeniedError(EngageError):
    status_code = 403


class NotFoundError(EngageError, LookupError):
    status_code = 404


class ConflictError(EngageError):
    status_code = 409
