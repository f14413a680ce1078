"""Service error taxonomy.

Every error carries the HTTP status the error middleware maps it to and a
stable ``error_type`` string clients use to decide whether to retry
(conflict/store errors) or not (validation/authorization errors).
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""

    status_code: int = 500
    error_type: str = "unknown_error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class AuthorizationError(ServiceError):
    """No authenticated user id is present for the request."""

    status_code = 401
    error_type = "authorization_error"

    def __init__(self, detail: str = "Unauthorized") -> None:
        super().__init__(detail)


class ValidationError(ServiceError):
    """Input rejected before any store access."""

    status_code = 422
    error_type = "validation_error"


class NotFoundError(ServiceError):
    """A record expected to exist is missing."""

    status_code = 404
    error_type = "not_found_error"

    def __init__(self, resource: str, key: str) -> None:
        super().__init__(f"{resource} with ID {key} not found")
        self.resource = resource
        self.key = key


class ConflictError(ServiceError):
    """An optimistic-concurrency update kept losing the race."""

    status_code = 409
    error_type = "conflict_error"


class StoreError(ServiceError):
    """The document store is unavailable or failed."""

    status_code = 503
    error_type = "store_error"
