"""
Service exceptions and error handling for the gateway.

Every error raised by a service carries the HTTP status it maps to.
"""

from typing import Optional
import asyncio
import logging

from pymongo.errors import PyMongoError


class ServiceError(Exception):
    """Base class for gateway service errors."""

    error_type = "service_error"

    def __init__(self, message: str, status_code: int = 500, original_error: Optional[Exception] = None):
        self.message = message
        self.status_code = status_code
        self.original_error = original_error
        super().__init__(self.message)


class AuthenticationError(ServiceError):
    """Raised when the bearer credential is missing, malformed or rejected by the identity provider."""

    error_type = "authentication_error"

    def __init__(self, message: str = "Unauthorized: Invalid token", original_error: Optional[Exception] = None):
        super().__init__(message, 401, original_error)


class LicenseDeniedError(ServiceError):
    """Raised when the license evaluator denies a metered operation."""

    error_type = "license_denied"

    def __init__(self, message: str = "License invalid or trial expired. Please purchase a plan.", original_error: Optional[Exception] = None):
        super().__init__(message, 402, original_error)


class StoreUnavailableError(ServiceError):
    """Raised when the user/transaction store cannot be read or written."""

    error_type = "store_unavailable"

    def __init__(self, message: str = "User store is unavailable", original_error: Optional[Exception] = None):
        super().__init__(message, 503, original_error)


class UpstreamServiceError(ServiceError):
    """Raised when the translation provider or payment gateway fails in transport."""

    error_type = "upstream_error"

    def __init__(self, message: str = "Upstream service failure", original_error: Optional[Exception] = None):
        super().__init__(message, 502, original_error)


class PaymentVerificationError(ServiceError):
    """Raised when the payment gateway rejects a payment confirmation."""

    error_type = "payment_verification_failed"

    def __init__(
        self,
        message: str = "Payment verification failed",
        code: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        self.code = code
        super().__init__(message, 400, original_error)


class ServiceNotConfiguredError(ServiceError):
    """Raised when a route needs a collaborator that was never configured."""

    error_type = "service_not_configured"

    def __init__(self, message: str = "Service is not configured", original_error: Optional[Exception] = None):
        super().__init__(message, 503, original_error)


def handle_store_error(error: Exception, operation: str = "store operation") -> StoreUnavailableError:
    """
    Convert a driver or timeout error into a StoreUnavailableError.

    Args:
        error: The original exception
        operation: Description of the operation that failed

    Returns:
        StoreUnavailableError: Error carrying the original exception
    """
    if isinstance(error, asyncio.TimeoutError):
        logging.error(f"[STORE] Timeout during {operation}")
        return StoreUnavailableError(f"Store timed out during {operation}", original_error=error)

    if isinstance(error, PyMongoError):
        logging.error(f"[STORE] Driver error during {operation}: {error}")
        return StoreUnavailableError(f"Store error during {operation}", original_error=error)

    logging.error(f"[STORE] Unexpected error during {operation}: {error}")
    return StoreUnavailableError(f"Unexpected store error during {operation}", original_error=error)

