"""
Rate limiting.

A single slowapi limiter shared by main.py (app.state.limiter) and the
routers that decorate endpoints with @limiter.limit(...). Decorated
endpoints must accept a `request: Request` parameter.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import settings


limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limiting_enabled)
