"""
Google credential loading shared by the translation and identity clients.
"""

import logging
import os
from typing import Optional, List

import google.auth
from google.auth import exceptions as auth_exceptions
from google.oauth2.service_account import Credentials as ServiceAccountCredentials

logger = logging.getLogger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class CredentialsUnavailableError(Exception):
    """Raised when no usable Google credentials can be found."""


def load_google_credentials(credentials_path: Optional[str], scopes: Optional[List[str]] = None):
    """
    Load service-account credentials, falling back to Application Default Credentials.

    Args:
        credentials_path: Path to a service-account JSON key (optional)
        scopes: OAuth scopes (defaults to cloud-platform)

    Returns:
        google.auth credentials

    Raises:
        CredentialsUnavailableError: If neither source yields credentials
    """
    scopes = scopes or [CLOUD_PLATFORM_SCOPE]

    if credentials_path:
        if not os.path.exists(credentials_path):
            raise CredentialsUnavailableError(f"Credentials file not found: {credentials_path}")
        try:
            logger.info(f"Using service account credentials from {credentials_path}")
            return ServiceAccountCredentials.from_service_account_file(credentials_path, scopes=scopes)
        except (ValueError, auth_exceptions.GoogleAuthError) as e:
            raise CredentialsUnavailableError(f"Invalid service account file {credentials_path}: {e}")

    try:
        creds, _ = google.auth.default(scopes=scopes)
        logger.info("Using application default credentials")
        return creds
    except auth_exceptions.DefaultCredentialsError as e:
        raise CredentialsUnavailableError(str(e))
