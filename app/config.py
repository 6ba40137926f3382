"""
Configuration management for the Translation License Gateway.

CONFIGURATION POLICY:
- Configuration comes from environment variables and the .env file
- Development defaults are provided so the server starts locally
- Production refuses to start without a store or with enforcement disabled
"""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import field_validator, model_validator
import os


# Service account key dropped next to the server for local development
LOCAL_SERVICE_ACCOUNT_PATH = "./service-account.json"


class Settings(BaseSettings):
    """
    Application settings.

    License policy values (trial length, starting credits, plan thresholds)
    are configuration, not protocol, and can be tuned per deployment.
    """

    # Application Configuration
    app_name: str = "TranslationLicenseGateway"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8080

    # Store Configuration - unset MONGODB_URI means no store (local dev only)
    mongodb_uri: Optional[str] = None
    mongodb_database: str = "translation_gateway"
    store_timeout_seconds: float = 5.0
    store_reconnect_interval_seconds: float = 5.0

    # License Policy
    license_enforcement_enabled: bool = True
    trial_days: int = 5
    starting_credits: int = 0
    lab_plan_min_amount: int = 700000
    lab_plan_name: str = "lab"
    personal_plan_name: str = "personal"

    # Identity Provider (Firebase Authentication)
    firebase_project_id: Optional[str] = None
    google_application_credentials: Optional[str] = None

    # Translation Provider (Google Cloud Translation v3)
    google_cloud_project: Optional[str] = None
    translation_location: str = "global"
    translation_timeout_seconds: float = 30.0
    max_text_length: int = 30000

    # Payment Gateway (Toss Payments)
    toss_secret_key: Optional[str] = None
    toss_api_url: str = "https://api.tosspayments.com"
    payment_gateway_timeout_seconds: float = 30.0

    # Rate Limiting
    rate_limiting_enabled: bool = True
    rate_limit_translate: str = "60/minute"
    rate_limit_payment: str = "10/minute"

    # Request timeout applied by the outermost middleware
    request_timeout_seconds: float = 60.0

    # Logging
    log_level: str = "INFO"
    log_file: str = "./logs/gateway.log"

    # CORS Configuration
    cors_origins: str = "*"
    cors_credentials: bool = False
    cors_methods: str = "GET,POST,OPTIONS"
    cors_headers: str = "*"

    @field_validator('cors_origins')
    @classmethod
    def validate_cors_origins(cls, v):
        """Parse CORS origins to list."""
        if not v:
            raise ValueError("CORS_ORIGINS must be set")
        return [origin.strip() for origin in v.split(',') if origin.strip()]

    @field_validator('cors_methods')
    @classmethod
    def validate_cors_methods(cls, v):
        """Parse CORS methods to list."""
        return [method.strip().upper() for method in v.split(',') if method.strip()]

    @field_validator('trial_days', 'starting_credits', 'lab_plan_min_amount')
    @classmethod
    def validate_non_negative(cls, v, info):
        if v < 0:
            raise ValueError(f"{info.field_name.upper()} must be zero or positive")
        return v

    @field_validator('store_timeout_seconds', 'translation_timeout_seconds', 'payment_gateway_timeout_seconds')
    @classmethod
    def validate_timeout(cls, v, info):
        if v <= 0:
            raise ValueError(f"{info.field_name.upper()} must be greater than zero")
        return v

    @field_validator('google_application_credentials')
    @classmethod
    def detect_local_service_account(cls, v):
        """Fall back to a local service account key when one is present."""
        if v is None and os.path.exists(LOCAL_SERVICE_ACCOUNT_PATH):
            return LOCAL_SERVICE_ACCOUNT_PATH
        return v

    @model_validator(mode='after')
    def validate_production_requirements(self):
        """Production must enforce licenses against a real store."""
        if self.is_production:
            if not self.license_enforcement_enabled:
                raise ValueError("LICENSE_ENFORCEMENT_ENABLED cannot be disabled in production")
            if not self.mongodb_uri:
                raise ValueError("MONGODB_URI must be set in production")
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"

    @property
    def translation_project_id(self) -> Optional[str]:
        """Project used for translation requests (falls back to the Firebase project)."""
        return self.google_cloud_project or self.firebase_project_id

    @property
    def allowed_cors_headers(self) -> List[str]:
        if self.cors_headers == "*":
            return ["*"]
        return [header.strip() for header in self.cors_headers.split(',') if header.strip()]

    @property
    def log_config(self) -> dict:
        """Get logging configuration."""
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S"
                },
                "json": {
                    "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
                    "format": "%(asctime)s %(name)s %(levelname)s %(message)s"
                }
            },
            "handlers": {
                "default": {
                    "formatter": "json" if self.is_production else "default",
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stdout"
                },
                "file": {
                    "formatter": "json" if self.is_production else "default",
                    "class": "logging.FileHandler",
                    "filename": self.log_file,
                    "mode": "a"
                }
            },
            "root": {
                "level": self.log_level.upper(),
                "handlers": ["default", "file"]
            }
        }

    def ensure_directories(self):
        """Ensure required directories exist."""
        directory = os.path.dirname(self.log_file) if self.log_file else None
        if directory and not os.path.exists(directory):
            os.makedirs(directory, exist_ok=True)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


# Global settings instance
settings = get_settings()

# Ensure directories exist on import
settings.ensure_directories()
