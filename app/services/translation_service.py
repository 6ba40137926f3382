"""
Translation service - proxies text translation to Google Cloud Translation v3.

Uses the Cloud Translation REST API through googleapiclient. Requests run in
worker threads; httplib2.Http is not thread-safe, so each request executes on
its own authorized Http object.
"""

import asyncio
import logging
from typing import Optional

import httplib2
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from pydantic import BaseModel

from app.exceptions import ServiceNotConfiguredError, UpstreamServiceError
from app.utils.google_credentials import CredentialsUnavailableError, load_google_credentials

logger = logging.getLogger(__name__)


class TranslationResult(BaseModel):
    """Translation returned by the provider."""
    translated_text: str
    detected_source_language: Optional[str] = None


class TranslationService:
    """Service for translating text through Cloud Translation."""

    def __init__(
        self,
        project_id: Optional[str],
        location: str = "global",
        credentials_path: Optional[str] = None,
        timeout_seconds: float = 30.0,
        service=None
    ):
        self.project_id = project_id
        self.location = location
        self.credentials_path = credentials_path
        self.timeout_seconds = timeout_seconds
        self.service = service
        self._credentials = None

    @property
    def parent(self) -> str:
        return f"projects/{self.project_id}/locations/{self.location}"

    @property
    def is_configured(self) -> bool:
        return self.service is not None and bool(self.project_id)

    def initialize(self) -> bool:
        """
        Build the Cloud Translation API client.

        Returns:
            bool: True if the client is ready
        """
        if self.service is not None:
            return True

        if not self.project_id:
            logger.warning("[TRANSLATE] No Google Cloud project configured - translation disabled")
            return False

        try:
            creds = load_google_credentials(self.credentials_path)
        except CredentialsUnavailableError as e:
            logger.error(f"[TRANSLATE] No credentials for translation client: {e}")
            return False

        self._credentials = creds
        self.service = build('translate', 'v3', http=self._new_http(), cache_discovery=False)
        logger.info(f"[TRANSLATE] Translation client ready for {self.parent}")
        return True

    def _new_http(self) -> Optional[AuthorizedHttp]:
        if self._credentials is None:
            return None
        return AuthorizedHttp(self._credentials, http=httplib2.Http(timeout=self.timeout_seconds))

    def close(self) -> None:
        if self.service is not None:
            self.service.close()
            self.service = None
        self._credentials = None

    async def translate(
        self,
        text: str,
        target_language: str,
        source_language: Optional[str] = None
    ) -> TranslationResult:
        """
        Translate text.

        Args:
            text: Plain text to translate
            target_language: Target language code
            source_language: Source language code (auto-detect if not provided)

        Returns:
            TranslationResult

        Raises:
            ServiceNotConfiguredError: If the client is not initialised
            UpstreamServiceError: If the provider call fails
        """
        if not self.is_configured:
            raise ServiceNotConfiguredError("Translation provider is not configured")

        body = {
            "contents": [text],
            "mimeType": "text/plain",
            "targetLanguageCode": target_language,
        }
        if source_language:
            body["sourceLanguageCode"] = source_language

        try:
            response = await asyncio.to_thread(
                lambda: self.service.projects().locations().translateText(
                    parent=self.parent,
                    body=body
                ).execute(http=self._new_http())
            )
        except HttpError as e:
            logger.error(f"[TRANSLATE] Provider returned {e.resp.status}: {e}")
            raise UpstreamServiceError("Translation service failure", original_error=e)
        except (OSError, httplib2.HttpLib2Error) as e:
            logger.error(f"[TRANSLATE] Provider unreachable: {e}")
            raise UpstreamServiceError("Translation service failure", original_error=e)

        translations = response.get("translations") or []
        if not translations:
            raise UpstreamServiceError("Translation service returned no result")

        translation = translations[0]
        return TranslationResult(
            translated_text=translation.get("translatedText", ""),
            detected_source_language=translation.get("detectedLanguageCode") or source_language
        )
