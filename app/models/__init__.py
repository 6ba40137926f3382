"""
Models package exports.
"""

from app.models.license import (
    # License records
    SubscriptionStatus,
    UserRecord,
    TransactionRecord,
    PendingOrder,
    OrderStatus,
    OrderOwner,
    # Decisions
    LicenseReason,
    LicenseDecision,
    ActivationResult,
    UNKNOWN_USER,
)
from app.models.requests import (
    TranslateRequest,
    ConfirmPaymentRequest,
    CreateOrderRequest,
)
from app.models.responses import (
    ErrorResponse,
    TranslateResponse,
    LicenseStatusResponse,
    CreateOrderResponse,
    ConfirmPaymentResponse,
    PaymentFailResponse,
)

__all__ = [
    # License records
    "SubscriptionStatus",
    "UserRecord",
    "TransactionRecord",
    "PendingOrder",
    "OrderStatus",
    "OrderOwner",
    # Decisions
    "LicenseReason",
    "LicenseDecision",
    "ActivationResult",
    "UNKNOWN_USER",
    # Requests
    "TranslateRequest",
    "ConfirmPaymentRequest",
    "CreateOrderRequest",
    # Responses
    "ErrorResponse",
    "TranslateResponse",
    "LicenseStatusResponse",
    "CreateOrderResponse",
    "ConfirmPaymentResponse",
    "PaymentFailResponse",
]
