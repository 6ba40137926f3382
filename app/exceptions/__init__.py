"""
Custom exceptions for the Translation License Gateway.
"""

from .service_exceptions import (
    ServiceError,
    AuthenticationError,
    LicenseDeniedError,
    StoreUnavailableError,
    UpstreamServiceError,
    PaymentVerificationError,
    ServiceNotConfiguredError,
    handle_store_error
)

__all__ = [
    "ServiceError",
    "AuthenticationError",
    "LicenseDeniedError",
    "StoreUnavailableError",
    "UpstreamServiceError",
    "PaymentVerificationError",
    "ServiceNotConfiguredError",
    "handle_store_error"
]
