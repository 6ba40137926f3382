"""
Health check utilities for monitoring application status.
"""

import time
from typing import Dict, Any, Callable, Awaitable

from app.config import settings


class HealthChecker:
    """Health checker over the collaborators held by the service container."""

    def __init__(self, container):
        self.container = container
        self.checks: Dict[str, Callable[[], Awaitable[Dict[str, Any]]]] = {
            'database': self._check_database_health,
            'identity': self._check_identity_health,
            'translation': self._check_translation_health,
            'payment_gateway': self._check_payment_gateway_health,
        }

    async def check_health(self) -> Dict[str, Any]:
        """
        Run every check.

        Only the store decides overall health: without it the license gate
        denies every metered request. Other collaborators report "degraded".
        """
        start_time = time.time()
        results = {}
        overall_status = "healthy"

        for check_name, check_func in self.checks.items():
            try:
                result = await check_func()
            except Exception as e:
                result = {'status': 'error', 'error': str(e)}
            results[check_name] = result

            if check_name == 'database' and result.get('status') not in ('healthy', 'not_configured'):
                overall_status = "unhealthy"
            elif result.get('status') not in ('healthy', 'not_configured') and overall_status == "healthy":
                overall_status = "degraded"

        return {
            'status': overall_status,
            'timestamp': time.time(),
            'version': settings.app_version,
            'environment': settings.environment,
            'check_duration': round(time.time() - start_time, 3),
            'checks': results
        }

    async def _check_database_health(self) -> Dict[str, Any]:
        database = self.container.database
        result = await database.health_check()

        if result.get('status') == 'not_configured':
            if self.container.settings.license_enforcement_enabled:
                return {'status': 'unconfigured', 'message': 'License enforcement enabled without a store'}
            return {'status': 'not_configured', 'message': result.get('message')}

        return {
            'status': 'healthy' if result.get('healthy') else 'unhealthy',
            'connection': result.get('status'),
            'database': result.get('database'),
            'message': result.get('message'),
        }

    async def _check_identity_health(self) -> Dict[str, Any]:
        if self.container.identity.is_initialized:
            return {'status': 'healthy'}
        return {'status': 'unavailable', 'message': 'Identity provider not initialized'}

    async def _check_translation_health(self) -> Dict[str, Any]:
        translation = self.container.translation
        if translation.is_configured:
            return {'status': 'healthy', 'parent': translation.parent}
        return {'status': 'unavailable', 'message': 'Translation client not initialized'}

    async def _check_payment_gateway_health(self) -> Dict[str, Any]:
        if self.container.payment_gateway.is_configured:
            return {'status': 'healthy'}
        return {'status': 'unavailable', 'message': 'TOSS_SECRET_KEY not set'}
