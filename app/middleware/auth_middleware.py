"""
Authentication dependencies for protecting routes.

Extracts the Firebase ID token from the Authorization header and verifies it
through the IdentityService held by the service container.
"""

from fastapi import Header, Depends
from typing import Optional
import logging

from app.exceptions import AuthenticationError
from app.services.container import get_identity_service
from app.services.identity_service import IdentityService, VerifiedIdentity

logger = logging.getLogger(__name__)


def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Pull the token out of an Authorization header.

    Raises:
        AuthenticationError: If the header is missing or not a Bearer credential
    """
    if not authorization:
        logger.warning("[AUTH] Authorization header missing")
        raise AuthenticationError("Unauthorized: No token provided")

    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token.strip():
        logger.warning("[AUTH] Invalid authorization header format")
        raise AuthenticationError("Unauthorized: No token provided")

    return token.strip()


async def get_current_identity(
    authorization: Optional[str] = Header(None),
    identity_service: IdentityService = Depends(get_identity_service)
) -> VerifiedIdentity:
    """
    Dependency that enforces a verified Firebase identity.

    Usage:
        ```python
        @router.post("/translate")
        async def translate(identity: VerifiedIdentity = Depends(get_current_identity)):
            ...
        ```

    Returns:
        VerifiedIdentity: uid and email of the caller

    Raises:
        AuthenticationError: 401 if the token is missing or rejected
    """
    token = extract_bearer_token(authorization)
    identity = await identity_service.verify_token(token)
    logger.debug(f"[AUTH] Verified identity {identity.uid}")
    return identity
