"""
Translation endpoint - license-gated proxy to the translation provider.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Request

from app.config import settings
from app.exceptions import LicenseDeniedError, ServiceNotConfiguredError
from app.middleware.auth_middleware import get_current_identity
from app.middleware.rate_limiting import limiter
from app.models.requests import TranslateRequest
from app.models.responses import ErrorResponse, TranslateResponse
from app.services.container import get_license_evaluator, get_translation_service
from app.services.identity_service import VerifiedIdentity
from app.services.license_service import LicenseEvaluator
from app.services.translation_service import TranslationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Translation"])


@router.post(
    "/translate",
    response_model=TranslateResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing text or targetLang"},
        401: {"model": ErrorResponse, "description": "Missing or invalid ID token"},
        402: {"model": ErrorResponse, "description": "Trial expired and no credits left"},
        502: {"model": ErrorResponse, "description": "Translation provider failure"},
        503: {"model": ErrorResponse, "description": "Translation provider not configured"}
    }
)
@limiter.limit(settings.rate_limit_translate)
async def translate_text(
    request: Request,
    payload: Optional[TranslateRequest] = Body(None),
    identity: VerifiedIdentity = Depends(get_current_identity),
    evaluator: LicenseEvaluator = Depends(get_license_evaluator),
    translation_service: TranslationService = Depends(get_translation_service)
):
    """
    Translate text for an authenticated, licensed user.

    Order of checks: bearer token (401), request body (400), provider
    configured (503), license (402). Only the license check consumes a credit.
    """
    if payload is None or not payload.is_complete():
        raise HTTPException(status_code=400, detail="Missing text or targetLang")

    if len(payload.text) > settings.max_text_length:
        raise HTTPException(
            status_code=400,
            detail=f"Text exceeds maximum length of {settings.max_text_length} characters"
        )

    if not translation_service.is_configured:
        raise ServiceNotConfiguredError("Translation provider is not configured")

    decision = await evaluator.decide(identity.uid, identity.email)
    if not decision.allowed:
        logger.info(f"[TRANSLATE] License denied for {identity.uid} ({decision.reason.value})")
        raise LicenseDeniedError()

    result = await translation_service.translate(
        payload.text,
        payload.targetLang,
        payload.sourceLang
    )

    logger.info(
        f"[TRANSLATE] {identity.uid}: {len(payload.text)} chars "
        f"{result.detected_source_language or '?'} -> {payload.targetLang}"
    )
    return TranslateResponse(
        translatedText=result.translated_text,
        detectedSourceLang=result.detected_source_language
    )
