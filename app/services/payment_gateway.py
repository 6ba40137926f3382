"""
Toss Payments gateway client.

Confirms a payment with POST /v1/payments/confirm using HTTP Basic auth
(secret key as username, empty password). A non-2xx answer means the gateway
rejected the payment; a transport failure means the gateway could not be
reached.
"""

import logging
from typing import Optional, Dict, Any

import httpx

from app.exceptions import (
    PaymentVerificationError,
    ServiceNotConfiguredError,
    UpstreamServiceError,
)

logger = logging.getLogger(__name__)

CONFIRM_PATH = "/v1/payments/confirm"


class TossPaymentsGateway:
    """Async client for the Toss Payments confirmation API."""

    def __init__(
        self,
        secret_key: Optional[str],
        api_url: str = "https://api.tosspayments.com",
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.secret_key = secret_key
        self.api_url = api_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.secret_key)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                auth=httpx.BasicAuth(self.secret_key, ""),
                timeout=self.timeout_seconds,
                transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def confirm_payment(self, payment_key: str, order_id: str, amount: int) -> Dict[str, Any]:
        """
        Confirm a payment with the gateway.

        Args:
            payment_key: Payment key returned by the checkout widget
            order_id: Order id the payment was made for
            amount: Amount the client claims was paid

        Returns:
            dict: Gateway payment object

        Raises:
            PaymentVerificationError: If the gateway rejects the confirmation
            UpstreamServiceError: If the gateway cannot be reached
            ServiceNotConfiguredError: If no secret key is configured
        """
        if not self.is_configured:
            raise ServiceNotConfiguredError("Payment gateway is not configured")

        payload = {"paymentKey": payment_key, "orderId": order_id, "amount": amount}

        try:
            response = await self._get_client().post(CONFIRM_PATH, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"[PAYMENT] Gateway request failed for order {order_id}: {e}")
            raise UpstreamServiceError("Payment gateway unreachable", original_error=e)

        if response.is_success:
            logger.info(f"[PAYMENT] Gateway confirmed order {order_id}")
            try:
                return response.json()
            except ValueError:
                return {}

        try:
            body = response.json()
        except ValueError:
            body = {}

        code = body.get("code") if isinstance(body, dict) else None
        message = body.get("message") if isinstance(body, dict) else None
        logger.warning(
            f"[PAYMENT] Gateway rejected order {order_id}: "
            f"status={response.status_code} code={code} message={message}"
        )
        raise PaymentVerificationError(message or "Payment verification failed", code=code)
