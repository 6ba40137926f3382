"""
Unit tests for configuration and environment variable handling.
"""

import pytest
import os
from unittest.mock import patch
from pydantic import ValidationError

from app.config import Settings


def make_settings(**env):
    with patch.dict(os.environ, env, clear=True):
        return Settings(_env_file=None)


class TestSettingsDefaults:
    """Development defaults let the server start without any configuration."""

    def test_defaults(self):
        settings = make_settings()

        assert settings.environment == "development"
        assert settings.is_development is True
        assert settings.license_enforcement_enabled is True
        assert settings.trial_days == 5
        assert settings.starting_credits == 0
        assert settings.lab_plan_min_amount == 700000
        assert settings.mongodb_uri is None
        assert settings.toss_api_url == "https://api.tosspayments.com"

    def test_license_policy_from_environment(self):
        settings = make_settings(TRIAL_DAYS="14", STARTING_CREDITS="3", LAB_PLAN_MIN_AMOUNT="500000")

        assert settings.trial_days == 14
        assert settings.starting_credits == 3
        assert settings.lab_plan_min_amount == 500000

    def test_translation_project_falls_back_to_firebase_project(self):
        settings = make_settings(FIREBASE_PROJECT_ID="fb-project")

        assert settings.translation_project_id == "fb-project"

    def test_translation_project_override(self):
        settings = make_settings(FIREBASE_PROJECT_ID="fb-project", GOOGLE_CLOUD_PROJECT="gcp-project")

        assert settings.translation_project_id == "gcp-project"


class TestSettingsValidation:

    def test_negative_trial_days_rejected(self):
        with pytest.raises(ValidationError, match="TRIAL_DAYS must be zero or positive"):
            make_settings(TRIAL_DAYS="-1")

    def test_zero_store_timeout_rejected(self):
        with pytest.raises(ValidationError, match="must be greater than zero"):
            make_settings(STORE_TIMEOUT_SECONDS="0")

    def test_cors_origins_parsed_to_list(self):
        settings = make_settings(CORS_ORIGINS="http://localhost:3000, https://example.com ,  ")

        assert settings.cors_origins == ["http://localhost:3000", "https://example.com"]

    def test_cors_methods_upper_cased(self):
        settings = make_settings(CORS_METHODS="get, post")

        assert settings.cors_methods == ["GET", "POST"]

    def test_cors_headers(self):
        assert make_settings().allowed_cors_headers == ["*"]
        assert make_settings(CORS_HEADERS="Authorization, Content-Type").allowed_cors_headers == [
            "Authorization", "Content-Type"
        ]


class TestProductionRequirements:

    def test_production_requires_store(self):
        with pytest.raises(ValidationError, match="MONGODB_URI must be set in production"):
            make_settings(ENVIRONMENT="production")

    def test_production_cannot_disable_enforcement(self):
        with pytest.raises(ValidationError, match="cannot be disabled in production"):
            make_settings(
                ENVIRONMENT="production",
                MONGODB_URI="mongodb://db:27017",
                LICENSE_ENFORCEMENT_ENABLED="false"
            )

    def test_valid_production(self):
        settings = make_settings(ENVIRONMENT="production", MONGODB_URI="mongodb://db:27017")

        assert settings.is_production is True
        assert settings.log_config["handlers"]["default"]["formatter"] == "json"

    def test_development_may_disable_enforcement(self):
        settings = make_settings(LICENSE_ENFORCEMENT_ENABLED="false")

        assert settings.license_enforcement_enabled is False
        assert settings.log_config["handlers"]["default"]["formatter"] == "default"
