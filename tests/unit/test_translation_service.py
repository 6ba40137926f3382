"""
Unit tests for the Cloud Translation proxy.
"""

import pytest
from unittest.mock import MagicMock, patch

import httplib2
from googleapiclient.errors import HttpError

from app.exceptions import ServiceNotConfiguredError, UpstreamServiceError
from app.services.translation_service import TranslationService


def make_service(response=None, error=None):
    api = MagicMock()
    execute = api.projects.return_value.locations.return_value.translateText.return_value.execute
    if error is not None:
        execute.side_effect = error
    else:
        execute.return_value = response
    return TranslationService(project_id="gateway-test", service=api), api


def translate_call(api):
    return api.projects.return_value.locations.return_value.translateText.call_args


class TestTranslate:

    @pytest.mark.asyncio
    async def test_returns_translation_and_detected_language(self):
        service, api = make_service({
            "translations": [{"translatedText": "안녕하세요", "detectedLanguageCode": "en"}]
        })

        result = await service.translate("Hello", "ko")

        assert result.translated_text == "안녕하세요"
        assert result.detected_source_language == "en"

        call = translate_call(api)
        assert call.kwargs["parent"] == "projects/gateway-test/locations/global"
        assert call.kwargs["body"] == {
            "contents": ["Hello"],
            "mimeType": "text/plain",
            "targetLanguageCode": "ko",
        }

    @pytest.mark.asyncio
    async def test_passes_source_language(self):
        service, api = make_service({"translations": [{"translatedText": "Bonjour"}]})

        result = await service.translate("Hello", "fr", source_language="en")

        assert translate_call(api).kwargs["body"]["sourceLanguageCode"] == "en"
        assert result.detected_source_language == "en"

    @pytest.mark.asyncio
    async def test_provider_http_error_is_upstream_error(self):
        error = HttpError(httplib2.Response({"status": 403}), b'{"error": {"message": "denied"}}')
        service, _ = make_service(error=error)

        with pytest.raises(UpstreamServiceError) as exc_info:
            await service.translate("Hello", "ko")

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_network_error_is_upstream_error(self):
        service, _ = make_service(error=OSError("connection reset"))

        with pytest.raises(UpstreamServiceError):
            await service.translate("Hello", "ko")

    @pytest.mark.asyncio
    async def test_empty_response_is_upstream_error(self):
        service, _ = make_service({"translations": []})

        with pytest.raises(UpstreamServiceError):
            await service.translate("Hello", "ko")

    @pytest.mark.asyncio
    async def test_not_configured(self):
        service = TranslationService(project_id=None)

        assert service.initialize() is False
        with pytest.raises(ServiceNotConfiguredError):
            await service.translate("Hello", "ko")


class TestLifecycle:

    def test_close_releases_client(self):
        service, api = make_service({"translations": []})

        service.close()

        api.close.assert_called_once()
        assert service.is_configured is False


class TestRequestTransport:

    @pytest.mark.asyncio
    async def test_each_request_executes_on_its_own_http(self):
        service, api = make_service({"translations": [{"translatedText": "안녕하세요"}]})
        service._credentials = MagicMock()

        with patch(
            "app.services.translation_service.AuthorizedHttp",
            side_effect=lambda credentials, http: MagicMock(credentials=credentials, inner=http)
        ) as authorized:
            await service.translate("Hello", "ko")
            await service.translate("Hello", "ko")

        execute = api.projects.return_value.locations.return_value.translateText.return_value.execute
        first, second = [c.kwargs["http"] for c in execute.call_args_list]
        assert authorized.call_count == 2
        assert first is not second
        assert first.inner is not second.inner
        assert first.credentials is service._credentials
        assert first.inner.timeout == service.timeout_seconds

    def test_initialize_keeps_credentials_for_requests(self):
        credentials = MagicMock()
        service = TranslationService(project_id="gateway-test")

        with patch("app.services.translation_service.load_google_credentials", return_value=credentials), \
                patch("app.services.translation_service.build") as build:
            assert service.initialize() is True

        assert service._credentials is credentials
        assert build.call_args.args == ("translate", "v3")
        assert build.call_args.kwargs["cache_discovery"] is False

        service.close()
        assert service._credentials is None
        assert service._new_http() is None
