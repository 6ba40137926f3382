"""
Response models for the Translation License Gateway API.
"""

from typing import Optional
from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    code: int
    message: str
    type: str


class ErrorResponse(BaseModel):
    """Error envelope returned by every exception handler."""
    success: bool = False
    error: ErrorDetail
    timestamp: float
    path: str


class TranslateResponse(BaseModel):
    """Body returned by POST /translate."""
    translatedText: str
    detectedSourceLang: Optional[str] = None


class LicenseStatusResponse(BaseModel):
    """Read-only view of the caller's license."""
    user_id: str
    email: Optional[str] = None
    exists: bool = Field(..., description="False when no record has been provisioned yet")
    enforcement_enabled: bool
    subscription_status: Optional[str] = None
    credits: int = 0
    trial_days_remaining: Optional[int] = None
    plan: Optional[str] = None
    license_key: Optional[str] = None


class CreateOrderResponse(BaseModel):
    """Body returned by POST /api/orders."""
    orderId: str
    amount: int
    orderName: Optional[str] = None


class ConfirmPaymentResponse(BaseModel):
    """Body returned by POST /confirm-payment."""
    status: str = "success"
    message: str = "Subscription activated"
    key: Optional[str] = None


class PaymentFailResponse(BaseModel):
    """Body returned by POST /confirm-payment when verification fails."""
    status: str = "fail"
    message: str
