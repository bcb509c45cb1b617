"""
Domain errors raised by the lifecycle services.

Each error carries the HTTP status it maps to; main.py turns them into the
standard response envelope.
"""

from typing import Optional


class ServiceError(Exception):
    """Base class for errors that are reported back to the caller"""

    status_code = 500
    kind = "internal_error"

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or []


class ValidationFailed(ServiceError):
    """Malformed or out-of-range input"""

    status_code = 400
    kind = "validation_error"


class NotFoundError(ServiceError):
    """Unknown id, or an id the requester does not own"""

    status_code = 404
    kind = "not_found"


class ConflictError(ServiceError):
    """Slot unavailable or already taken"""

    status_code = 409
    kind = "conflict"


class InvalidStateError(ServiceError):
    """Operation not permitted in the entity's current lifecycle state"""

    status_code = 400
    kind = "invalid_state"


class InternalError(ServiceError):
    """Persistence or other unexpected failure"""

    status_code = 500
    kind = "internal_error"
