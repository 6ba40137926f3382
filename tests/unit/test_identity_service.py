"""
Unit tests for Firebase ID token verification.

Signature checks are delegated to google.oauth2.id_token, which is patched
here; the tests cover how its results and failures are mapped.
"""

import pytest
from unittest.mock import MagicMock, patch

from google.auth import exceptions as auth_exceptions

from app.exceptions import AuthenticationError, ServiceNotConfiguredError
from app.services.identity_service import IdentityService

VERIFY_PATH = "app.services.identity_service.id_token.verify_firebase_token"
PROJECT_ID = "gateway-test"


def claims(**overrides):
    base = {
        "iss": f"https://securetoken.google.com/{PROJECT_ID}",
        "aud": PROJECT_ID,
        "sub": "uid-123",
        "user_id": "uid-123",
        "email": "user@example.com",
        "email_verified": True,
    }
    base.update(overrides)
    return base


@pytest.fixture
def identity_service():
    service = IdentityService(project_id=PROJECT_ID)
    service.initialize()
    yield service
    service.shutdown()


class TestInitialize:

    def test_without_project_is_not_initialized(self):
        service = IdentityService(project_id=None)

        assert service.initialize() is False
        assert service.is_initialized is False

    def test_with_project_is_initialized(self, identity_service):
        assert identity_service.is_initialized is True


class TestVerifyToken:

    @pytest.mark.asyncio
    async def test_valid_token_returns_identity(self, identity_service):
        with patch(VERIFY_PATH, return_value=claims()) as verify:
            identity = await identity_service.verify_token("valid.jwt.token")

        assert identity.uid == "uid-123"
        assert identity.email == "user@example.com"
        assert identity.email_verified is True
        assert verify.call_args.kwargs["audience"] == PROJECT_ID

    @pytest.mark.asyncio
    async def test_uid_falls_back_to_user_id_claim(self, identity_service):
        with patch(VERIFY_PATH, return_value=claims(sub=None, user_id="uid-legacy")):
            identity = await identity_service.verify_token("valid.jwt.token")

        assert identity.uid == "uid-legacy"

    @pytest.mark.asyncio
    async def test_invalid_token_raises(self, identity_service):
        with patch(VERIFY_PATH, side_effect=ValueError("Token expired")):
            with pytest.raises(AuthenticationError) as exc_info:
                await identity_service.verify_token("expired.jwt.token")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_certificate_fetch_failure_raises(self, identity_service):
        with patch(VERIFY_PATH, side_effect=auth_exceptions.TransportError("no network")):
            with pytest.raises(AuthenticationError):
                await identity_service.verify_token("some.jwt.token")

    @pytest.mark.asyncio
    async def test_other_project_issuer_rejected(self, identity_service):
        with patch(VERIFY_PATH, return_value=claims(iss="https://securetoken.google.com/other-project")):
            with pytest.raises(AuthenticationError):
                await identity_service.verify_token("foreign.jwt.token")

    @pytest.mark.asyncio
    async def test_token_without_subject_rejected(self, identity_service):
        with patch(VERIFY_PATH, return_value=claims(sub=None, user_id=None)):
            with pytest.raises(AuthenticationError):
                await identity_service.verify_token("nosub.jwt.token")

    @pytest.mark.asyncio
    async def test_empty_token_rejected(self, identity_service):
        with pytest.raises(AuthenticationError):
            await identity_service.verify_token("")

    @pytest.mark.asyncio
    async def test_not_initialized_raises_not_configured(self):
        service = IdentityService(project_id=PROJECT_ID)

        with pytest.raises(ServiceNotConfiguredError):
            await service.verify_token("valid.jwt.token")


class TestLookupUidByEmail:

    @pytest.mark.asyncio
    async def test_returns_local_id(self, identity_service):
        admin = MagicMock()
        admin.projects.return_value.accounts.return_value.lookup.return_value.execute.return_value = {
            "users": [{"localId": "uid-from-lookup", "email": "old@example.com"}]
        }
        identity_service._admin_service = admin

        uid = await identity_service.lookup_uid_by_email("old@example.com")

        assert uid == "uid-from-lookup"
        admin.projects.return_value.accounts.return_value.lookup.assert_called_once_with(
            targetProjectId=PROJECT_ID,
            body={"email": ["old@example.com"]}
        )

    @pytest.mark.asyncio
    async def test_unknown_email_returns_none(self, identity_service):
        admin = MagicMock()
        admin.projects.return_value.accounts.return_value.lookup.return_value.execute.return_value = {}
        identity_service._admin_service = admin

        assert await identity_service.lookup_uid_by_email("nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_without_project_raises_not_configured(self):
        service = IdentityService(project_id=None)

        with pytest.raises(ServiceNotConfiguredError):
            await service.lookup_uid_by_email("old@example.com")
