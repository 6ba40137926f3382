"""
Payment endpoints - pending order creation and Toss Payments confirmation.

Flow:
1. Client (authenticated) creates a pending order: POST /api/orders
2. Client runs the Toss checkout widget with the returned orderId
3. Widget redirects; client posts paymentKey/orderId/amount: POST /confirm-payment
4. Server confirms with the gateway, records the transaction, activates the owner
"""

import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.config import settings
from app.exceptions import PaymentVerificationError, StoreUnavailableError
from app.middleware.auth_middleware import get_current_identity
from app.middleware.rate_limiting import limiter
from app.models.requests import ConfirmPaymentRequest, CreateOrderRequest
from app.models.responses import (
    ConfirmPaymentResponse,
    CreateOrderResponse,
    ErrorResponse,
    PaymentFailResponse,
)
from app.services.activation_service import ActivationService
from app.services.container import (
    get_activation_service,
    get_order_service,
    get_payment_gateway,
)
from app.services.identity_service import VerifiedIdentity
from app.services.order_service import OrderService
from app.services.payment_gateway import TossPaymentsGateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Payments"])


def _fail_response(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content=PaymentFailResponse(message=message).model_dump())


@router.post("/api/orders", response_model=CreateOrderResponse, status_code=201)
@limiter.limit(settings.rate_limit_payment)
async def create_order(
    request: Request,
    payload: CreateOrderRequest,
    identity: VerifiedIdentity = Depends(get_current_identity),
    order_service: OrderService = Depends(get_order_service)
):
    """Create a pending order owned by the caller."""
    order = await order_service.create_pending_order(
        user_id=identity.uid,
        email=identity.email,
        amount=payload.amount,
        order_name=payload.orderName
    )
    return CreateOrderResponse(orderId=order.order_id, amount=order.amount, orderName=order.order_name)


@router.post(
    "/confirm-payment",
    response_model=ConfirmPaymentResponse,
    responses={
        400: {"model": PaymentFailResponse, "description": "Payment rejected or amount mismatch"},
        502: {"model": ErrorResponse, "description": "Payment gateway unreachable"},
        503: {"model": ErrorResponse, "description": "Activation could not be stored"}
    }
)
@limiter.limit(settings.rate_limit_payment)
async def confirm_payment(
    request: Request,
    payload: ConfirmPaymentRequest,
    gateway: TossPaymentsGateway = Depends(get_payment_gateway),
    order_service: OrderService = Depends(get_order_service),
    activation_service: ActivationService = Depends(get_activation_service)
):
    """
    Confirm a payment and activate the buyer's subscription.

    Returns {"status": "success", "message": "Subscription activated", "key": ...}
    or {"status": "fail", "message": ...} with 400 when verification fails.
    """
    logger.info(f"[PAYMENT] Confirmation requested for order {payload.orderId} ({payload.amount})")

    pending = await order_service.get_pending_order(payload.orderId)
    if pending is not None and pending.amount != payload.amount:
        logger.warning(
            f"[PAYMENT] Amount mismatch for order {payload.orderId}: "
            f"expected {pending.amount}, got {payload.amount}"
        )
        return _fail_response("Payment amount does not match the order")

    try:
        await gateway.confirm_payment(payload.paymentKey, payload.orderId, payload.amount)
    except PaymentVerificationError as e:
        return _fail_response(e.message)

    try:
        result = await activation_service.activate(
            order_id=payload.orderId,
            amount=payload.amount,
            payment_key=payload.paymentKey,
            user_id=pending.user_id if pending else None,
            email=pending.email if pending else None
        )
    except StoreUnavailableError:
        logger.error(
            f"[PAYMENT] Order {payload.orderId} confirmed by the gateway but activation could not be stored"
        )
        raise

    logger.info(
        f"[PAYMENT] Order {payload.orderId} complete: plan={result.plan} "
        f"user={result.user_id or 'unresolved'}"
    )
    return ConfirmPaymentResponse(key=result.license_key)
