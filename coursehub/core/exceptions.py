"""
Catalog error taxonomy.

Every exception here is an expected, locally recoverable outcome that the
request layer renders as user feedback. ``status_code`` is the HTTP status
the boundary answers with; ``code`` is a stable machine-readable reason.
"""

from typing import Optional


class CatalogException(Exception):
    status_code = 400
    default_code = "BAD_REQUEST"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        field: Optional[str] = None,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.code = code or self.default_code
        self.field = field
        super().__init__(message)


class ValidationError(CatalogException):
    status_code = 422
    default_code = "INVALID_FIELD"


class ReferentialIntegrityError(CatalogException):
    status_code = 409
    default_code = "HAS_DEPENDENTS"


class NotFoundError(CatalogException):
    status_code = 404
    default_code = "NOT_FOUND"


class PermissionDeniedError(CatalogException):
    status_code = 403
    default_code = "FORBIDDEN"


class ConflictError(CatalogException):
    status_code = 409
    default_code = "CONFLICT"


class StorageError(CatalogException):
    status_code = 500
    default_code = "STORAGE_FAILURE"
