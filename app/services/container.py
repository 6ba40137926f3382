"""
Service container - owns every external client handle.

Built once by the application lifespan, stored on app.state.services, and
reached from routes through the dependency functions below. Tests replace
those dependencies with app.dependency_overrides.
"""

import logging
from typing import Optional

from fastapi import Request

from app.config import Settings
from app.database.mongodb import MongoDB
from app.exceptions import ServiceNotConfiguredError
from app.services.activation_service import ActivationService
from app.services.identity_service import IdentityService
from app.services.license_service import LicenseEvaluator
from app.services.order_service import OrderService
from app.services.payment_gateway import TossPaymentsGateway
from app.services.translation_service import TranslationService

logger = logging.getLogger(__name__)


class ServiceContainer:
    """Explicitly constructed collaborators with a startup/shutdown lifecycle."""

    def __init__(self, settings: Settings):
        self.settings = settings

        self.database = MongoDB(
            uri=settings.mongodb_uri,
            database_name=settings.mongodb_database,
            timeout_seconds=settings.store_timeout_seconds,
            reconnect_interval_seconds=settings.store_reconnect_interval_seconds
        )
        self.identity = IdentityService(
            project_id=settings.firebase_project_id,
            credentials_path=settings.google_application_credentials
        )
        self.translation = TranslationService(
            project_id=settings.translation_project_id,
            location=settings.translation_location,
            credentials_path=settings.google_application_credentials,
            timeout_seconds=settings.translation_timeout_seconds
        )
        self.payment_gateway = TossPaymentsGateway(
            secret_key=settings.toss_secret_key,
            api_url=settings.toss_api_url,
            timeout_seconds=settings.payment_gateway_timeout_seconds
        )
        self.license_evaluator = LicenseEvaluator(
            self.database,
            enforcement_enabled=settings.license_enforcement_enabled,
            trial_days=settings.trial_days,
            starting_credits=settings.starting_credits,
            store_timeout_seconds=settings.store_timeout_seconds
        )
        self.orders = OrderService(self.database, store_timeout_seconds=settings.store_timeout_seconds)
        self.activation = ActivationService(
            self.database,
            self.orders,
            lab_plan_min_amount=settings.lab_plan_min_amount,
            lab_plan_name=settings.lab_plan_name,
            personal_plan_name=settings.personal_plan_name,
            store_timeout_seconds=settings.store_timeout_seconds
        )

    async def startup(self) -> None:
        """Connect the store and initialise the provider clients."""
        logger.info("[STARTUP] Initializing services...")

        if self.database.is_configured:
            if await self.database.connect():
                logger.info("[STARTUP] MongoDB connected")
            else:
                logger.error("[STARTUP] MongoDB connection failed - license checks will deny")
        elif self.settings.license_enforcement_enabled:
            logger.error("[STARTUP] License enforcement enabled but no MONGODB_URI configured")
        else:
            logger.warning("[STARTUP] Running without a store (license enforcement disabled)")

        if not self.identity.initialize():
            logger.error("[STARTUP] Identity provider unavailable - authenticated routes will fail")

        if not self.translation.initialize():
            logger.warning("[STARTUP] Translation provider unavailable")

        if not self.payment_gateway.is_configured:
            logger.warning("[STARTUP] TOSS_SECRET_KEY not set - payment confirmation disabled")

        logger.info("[STARTUP] Services initialized")

    async def shutdown(self) -> None:
        """Release every client handle."""
        logger.info("[SHUTDOWN] Closing services...")
        await self.payment_gateway.close()
        self.translation.close()
        self.identity.shutdown()
        await self.database.disconnect()
        logger.info("[SHUTDOWN] Services closed")


def get_container(request: Request) -> ServiceContainer:
    container: Optional[ServiceContainer] = getattr(request.app.state, "services", None)
    if container is None:
        raise ServiceNotConfiguredError("Services are not initialized")
    return container


def get_identity_service(request: Request) -> IdentityService:
    return get_container(request).identity


def get_license_evaluator(request: Request) -> LicenseEvaluator:
    return get_container(request).license_evaluator


def get_translation_service(request: Request) -> TranslationService:
    return get_container(request).translation


def get_payment_gateway(request: Request) -> TossPaymentsGateway:
    return get_container(request).payment_gateway


def get_order_service(request: Request) -> OrderService:
    return get_container(request).orders


def get_activation_service(request: Request) -> ActivationService:
    return get_container(request).activation
