"""
Request models for the Translation License Gateway API.

Field names follow the wire contract used by the browser clients
(camelCase), not the Python attribute convention.
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


class TranslateRequest(BaseModel):
    """Body of POST /translate."""
    text: Optional[str] = Field(None, description="Text to translate")
    targetLang: Optional[str] = Field(None, description="Target language code")
    sourceLang: Optional[str] = Field(None, description="Source language code (auto-detect if not provided)")

    @field_validator('targetLang', 'sourceLang')
    @classmethod
    def strip_language_code(cls, v):
        if v is None:
            return v
        v = v.strip()
        return v or None

    def is_complete(self) -> bool:
        """True when both text and target language are present."""
        return bool(self.text and self.text.strip()) and bool(self.targetLang)


class ConfirmPaymentRequest(BaseModel):
    """Body of POST /confirm-payment, as redirected from the payment widget."""
    paymentKey: str = Field(..., min_length=1, description="Gateway payment key")
    orderId: str = Field(..., min_length=1, description="Order identifier issued before checkout")
    amount: int = Field(..., gt=0, description="Charged amount in KRW")


class CreateOrderRequest(BaseModel):
    """Body of POST /api/orders."""
    amount: int = Field(..., gt=0, description="Amount to charge in KRW")
    orderName: Optional[str] = Field(None, max_length=100, description="Display name shown in the checkout widget")
