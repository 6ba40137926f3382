"""
Logging middleware for request/response tracking.
"""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import time
import logging
import uuid
from typing import Dict, Any

from app.config import settings


logger = logging.getLogger("gateway.middleware")

SENSITIVE_HEADERS = {'authorization', 'cookie', 'x-api-key', 'x-auth-token'}

# Body fields never written to logs (credentials and user content)
SENSITIVE_BODY_FIELDS = {'paymentkey', 'token', 'secret', 'password', 'text'}


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request/response pair with a request id and processing time."""

    def __init__(self, app, log_request_body: bool = False):
        super().__init__(app)
        self.log_request_body = log_request_body or settings.debug

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        await self._log_request(request, request_id)

        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                f"Request error - {request_id} - {type(e).__name__}: {e}",
                extra={'error_data': {
                    'request_id': request_id,
                    'method': request.method,
                    'path': request.url.path,
                    'process_time': process_time,
                }},
                exc_info=True
            )
            raise

        process_time = time.time() - start_time
        self._log_response(request, response, request_id, process_time)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{process_time:.4f}s"
        return response

    async def _log_request(self, request: Request, request_id: str):
        client_ip = request.client.host if request.client else "unknown"
        forwarded_for = request.headers.get('X-Forwarded-For')
        if forwarded_for:
            client_ip = forwarded_for.split(',')[0].strip()

        log_data = {
            'request_id': request_id,
            'method': request.method,
            'path': request.url.path,
            'client_ip': client_ip,
            'headers': self._sanitize_headers(dict(request.headers)),
        }

        if self.log_request_body and request.method == 'POST' and self._is_json(request):
            try:
                log_data['body'] = self._sanitize_body(await request.json())
            except ValueError:
                log_data['body'] = "<invalid json>"

        logger.info(
            f"Request - {request_id} - {request.method} {request.url.path} - {client_ip}",
            extra={'request_data': log_data}
        )

    def _log_response(self, request: Request, response, request_id: str, process_time: float):
        if response.status_code >= 500:
            log_level = logging.ERROR
        elif response.status_code >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        logger.log(
            log_level,
            f"Response - {request_id} - {response.status_code} - {process_time:.4f}s - "
            f"{request.method} {request.url.path}",
            extra={'response_data': {
                'request_id': request_id,
                'status_code': response.status_code,
                'process_time': process_time,
            }}
        )

    @staticmethod
    def _is_json(request: Request) -> bool:
        return 'application/json' in request.headers.get('Content-Type', '').lower()

    @staticmethod
    def _sanitize_headers(headers: Dict[str, str]) -> Dict[str, str]:
        return {
            key: "[REDACTED]" if key.lower() in SENSITIVE_HEADERS else value
            for key, value in headers.items()
        }

    def _sanitize_body(self, body: Any) -> Any:
        if isinstance(body, dict):
            return {
                key: "[REDACTED]" if key.lower() in SENSITIVE_BODY_FIELDS else self._sanitize_body(value)
                for key, value in body.items()
            }
        if isinstance(body, list):
            return [self._sanitize_body(item) for item in body]
        return body
