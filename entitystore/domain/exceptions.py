"""Base domain exceptions.

All domain exceptions derive from DomainException and may set the
http_status_code and error_code class attributes to control the HTTP
response produced by the exception handlers.
"""

from fastapi import status


class DomainException(Exception):
    """Base exception for all domain errors.

    Subclasses customise the HTTP response through class attributes:
    - http_status_code: HTTP status code (default 400)
    - error_code: error code string (default "DOMAIN_ERROR")
    """

    http_status_code: int = status.HTTP_400_BAD_REQUEST
    error_code: str = "DOMAIN_ERROR"

    def __init__(self, message: str = "A domain error occurred"):
        self.message = message
        super().__init__(self.message)


class InvalidArgumentError(DomainException, ValueError):
    """Raised when a required argument is missing or out of range."""

    http_status_code = status.HTTP_400_BAD_REQUEST
    error_code = "INVALID_ARGUMENT"

    def __init__(self, argument: str, reason: str | None = None):
        self.argument = argument
        message = reason or f"Argument '{argument}' must not be None"
        super().__init__(message)


class UnsupportedOperationError(DomainException):
    """Raised when the backing store cannot perform the requested operation."""

    http_status_code = status.HTTP_501_NOT_IMPLEMENTED
    error_code = "UNSUPPORTED_OPERATION"
