# sippool/utils/exceptions.py
# -*- coding: utf-8 -*-
"""
Custom Exception Classes for the Application.

These exceptions are used to signal specific error conditions from the
repository and service layers to the API layer (routes), allowing for
specific error handling and mapping to HTTP status codes and envelope codes.
"""

class ServiceError(Exception):
    """Base class for service layer exceptions."""
    status_code = 500  # Default to Internal Server Error
    code = "INTERNAL_ERROR"
    message = "An unexpected service error occurred."

    def __init__(self, message=None, status_code=None):
        super().__init__(message or self.message)
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"success": False, "error": str(self), "code": self.code}


class ResourceNotFound(ServiceError):
    """Raised when a requested resource is not found."""
    status_code = 404
    code = "NOT_FOUND"
    message = "The requested resource was not found."


class ValidationError(ServiceError):
    """Raised for general data validation errors (beyond schema validation)."""
    status_code = 400
    code = "VALIDATION_ERROR"
    message = "Validation failed."


class ConflictError(ServiceError):
    """Raised when an operation conflicts with the current state (e.g., a lost compare-and-swap)."""
    status_code = 409
    code = "CONFLICT"
    message = "A conflict occurred with the current state of the resource."


class PoolExhaustedError(ConflictError):
    """Raised when no SIP configuration could be handed out."""
    code = "POOL_EXHAUSTED"
    message = "No SIP lines are available right now."


class AuthorizationError(ServiceError):
    """Raised when a user is not authorized to perform an action."""
    status_code = 403
    code = "FORBIDDEN"
    message = "You are not authorized to perform this action."


class StoreUnavailableError(ServiceError):
    """
    Raised when the backing store could not be reached or timed out.
    The outcome of any write in flight is unknown.
    """
    status_code = 503
    code = "STORE_UNAVAILABLE"
    message = ("The SIP configuration store is unavailable; the outcome is unknown. "
               "Re-query the user's assignment before retrying.")
