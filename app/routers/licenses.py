"""
License status endpoint.
"""

import logging
from fastapi import APIRouter, Depends

from app.middleware.auth_middleware import get_current_identity
from app.models.responses import ErrorResponse, LicenseStatusResponse
from app.services.container import get_license_evaluator
from app.services.identity_service import VerifiedIdentity
from app.services.license_service import LicenseEvaluator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["License"])


@router.get(
    "/license",
    response_model=LicenseStatusResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Missing or invalid ID token"},
        503: {"model": ErrorResponse, "description": "User store unavailable"}
    }
)
async def get_license_status(
    identity: VerifiedIdentity = Depends(get_current_identity),
    evaluator: LicenseEvaluator = Depends(get_license_evaluator)
):
    """Read-only view of the caller's license. Never provisions or consumes."""
    record = await evaluator.describe(identity.uid)

    if record is None:
        return LicenseStatusResponse(
            user_id=identity.uid,
            email=identity.email,
            exists=False,
            enforcement_enabled=evaluator.enforcement_enabled
        )

    return LicenseStatusResponse(
        user_id=record.user_id,
        email=record.email or identity.email,
        exists=True,
        enforcement_enabled=evaluator.enforcement_enabled,
        subscription_status=record.subscription_status.value,
        credits=record.credits,
        trial_days_remaining=evaluator.trial_days_remaining(record),
        plan=record.plan,
        license_key=record.license_key
    )
