# /interviewer/config/settings.py

import sys
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # MongoDB
    mongo_uri: str = "mongodb://localhost:27017/interviewer"
    max_pool_size: int = 10
    min_pool_size: int = 1
    mongo_ssl: bool = False
    transaction_retry_seconds: float = 10.0

    # AI APIs
    gemini_api_key: str | None = None
    openai_api_key: str | None = None
    gemini_model: str = "gemini-1.5-flash"
    openai_model: str = "gpt-4o-mini"
    ai_timeout_seconds: float = 20.0
    ai_temperature: float = 0.7

    # Security
    api_key: str | None = None

    # Deployment
    workers: int = 4
    environment: str = Field(default="production", env="ENVIRONMENT")
    request_timeout_seconds: float = 60.0

    # Comma-separated list
    cors_allowed_origins: str = Field(default="*", env="CORS_ALLOWED_ORIGINS")

    # Observability
    sentry_dsn: str | None = None
    sentry_environment: str = "production"
    alerting_webhook_url: str | None = None

    # App Metadata & Limits
    api_version: str = "v1"
    rate_limit_per_minute: int = 100

    # ---------------- Validators ---------------- #

    @field_validator("ai_timeout_seconds", "request_timeout_seconds")
    @classmethod
    def timeout_must_be_positive(cls, v):
        if v <= 0:
            raise ValueError("Timeouts must be positive")
        return v

    @field_validator("environment")
    @classmethod
    def environment_must_be_known(cls, v):
        if v not in ("development", "test", "production"):
            raise ValueError("ENVIRONMENT must be one of development, test, production")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


def validate_environment(settings_obj: Settings):
    try:
        if settings_obj.environment == "production":
            if not settings_obj.gemini_api_key and not settings_obj.openai_api_key:
                raise ValueError("At least one AI API key must be provided in production")
            if not settings_obj.mongo_uri:
                raise ValueError("MONGO_URI is required in production")

        return settings_obj

    except Exception as e:
        print(f"--- [ERROR] Environment validation failed: {e}")
        sys.exit(1)


settings = Settings()
validate_environment(settings)
