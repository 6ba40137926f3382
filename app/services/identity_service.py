"""
Identity service - verifies Firebase Authentication ID tokens.

ID tokens are RS256 JWTs signed by securetoken@system.gserviceaccount.com.
google.oauth2.id_token checks the signature against Google's published
certificates, the expiry, and that the audience is the Firebase project.
"""

import asyncio
import logging
from typing import Optional, Dict, Any

from google.auth import exceptions as auth_exceptions
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from pydantic import BaseModel

from app.exceptions import AuthenticationError, ServiceNotConfiguredError, UpstreamServiceError
from app.utils.google_credentials import CredentialsUnavailableError, load_google_credentials

logger = logging.getLogger(__name__)

FIREBASE_ISSUER_PREFIX = "https://securetoken.google.com/"
FIREBASE_SCOPES = [
    "https://www.googleapis.com/auth/cloud-platform",
    "https://www.googleapis.com/auth/firebase",
]


class VerifiedIdentity(BaseModel):
    """Claims of a verified ID token."""
    uid: str
    email: Optional[str] = None
    email_verified: bool = False
    claims: Dict[str, Any] = {}


class IdentityService:
    """Verifies Firebase ID tokens for one Firebase project."""

    def __init__(
        self,
        project_id: Optional[str],
        credentials_path: Optional[str] = None,
        clock_skew_seconds: int = 10
    ):
        self.project_id = project_id
        self.credentials_path = credentials_path
        self.clock_skew_seconds = clock_skew_seconds
        self._request: Optional[google_requests.Request] = None
        self._admin_service = None

    @property
    def is_initialized(self) -> bool:
        return self._request is not None

    def initialize(self) -> bool:
        """
        Prepare token verification.

        Returns:
            bool: True if a Firebase project is configured
        """
        if self._request is not None:
            return True

        if not self.project_id:
            logger.error("[AUTH] FIREBASE_PROJECT_ID is not set - tokens cannot be verified")
            return False

        self._request = google_requests.Request()
        logger.info(f"[AUTH] Verifying ID tokens for Firebase project {self.project_id}")
        return True

    def shutdown(self) -> None:
        if self._request is not None:
            self._request.session.close()
            self._request = None
        if self._admin_service is not None:
            self._admin_service.close()
            self._admin_service = None

    async def verify_token(self, token: str) -> VerifiedIdentity:
        """
        Verify an ID token and return its identity.

        Args:
            token: Raw bearer token

        Returns:
            VerifiedIdentity with uid and email

        Raises:
            AuthenticationError: If the token is invalid or expired
            ServiceNotConfiguredError: If no Firebase project is configured
        """
        if self._request is None:
            raise ServiceNotConfiguredError("Identity provider is not configured")

        if not token:
            raise AuthenticationError("Unauthorized: No token provided")

        try:
            claims = await asyncio.to_thread(
                id_token.verify_firebase_token,
                token,
                self._request,
                audience=self.project_id,
                clock_skew_in_seconds=self.clock_skew_seconds
            )
        except auth_exceptions.TransportError as e:
            logger.error(f"[AUTH] Could not fetch token signing certificates: {e}")
            raise AuthenticationError(original_error=e)
        except (ValueError, auth_exceptions.GoogleAuthError) as e:
            logger.warning(f"[AUTH] Invalid ID token: {e}")
            raise AuthenticationError(original_error=e)

        if not claims or claims.get("iss") != f"{FIREBASE_ISSUER_PREFIX}{self.project_id}":
            logger.warning("[AUTH] ID token issued for another project")
            raise AuthenticationError()

        uid = claims.get("sub") or claims.get("user_id")
        if not uid:
            raise AuthenticationError("Unauthorized: Token has no subject")

        return VerifiedIdentity(
            uid=uid,
            email=claims.get("email"),
            email_verified=bool(claims.get("email_verified", False)),
            claims=claims
        )

    async def lookup_uid_by_email(self, email: str) -> Optional[str]:
        """
        Find the uid registered for an email (Identity Toolkit accounts:lookup).

        Used to re-key user records that earlier revisions stored by email.

        Returns:
            uid, or None when no account uses the email

        Raises:
            ServiceNotConfiguredError: If admin credentials are unavailable
            UpstreamServiceError: If the lookup call fails
        """
        service = self._get_admin_service()
        try:
            response = await asyncio.to_thread(
                lambda: service.projects().accounts().lookup(
                    targetProjectId=self.project_id,
                    body={"email": [email]}
                ).execute()
            )
        except HttpError as e:
            logger.error(f"[AUTH] Account lookup failed for {email}: {e}")
            raise UpstreamServiceError("Account lookup failed", original_error=e)

        users = response.get("users") or []
        if not users:
            return None
        return users[0].get("localId")

    def _get_admin_service(self):
        if self._admin_service is not None:
            return self._admin_service
        if not self.project_id:
            raise ServiceNotConfiguredError("Identity provider is not configured")
        try:
            creds = load_google_credentials(self.credentials_path, FIREBASE_SCOPES)
        except CredentialsUnavailableError as e:
            raise ServiceNotConfiguredError(f"No admin credentials for account lookup: {e}")
        self._admin_service = build('identitytoolkit', 'v1', credentials=creds, cache_discovery=False)
        return self._admin_service
