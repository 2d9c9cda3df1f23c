# python
# app/core/config.py
"""Configuration settings for the capped conversation store.

Uses Pydantic BaseSettings for environment variable management.
"""
from enum import Enum
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvironmentEnum(str, Enum):
    development = "development"
    testing = "testing"
    staging = "staging"
    production = "production"


class LogLevelEnum(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormatEnum(str, Enum):
    simple = "simple"
    json = "json"


class StorageBackendEnum(str, Enum):
    memory = "memory"
    document = "document"
    kv = "kv"


class Settings(BaseSettings):
    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ===== Application Settings =====
    app_name: str = Field(default="ShadowQuill Conversation Store", description="Application name")
    environment: EnvironmentEnum = Field(
        default=EnvironmentEnum.development, description="Environment type"
    )
    debug: bool = Field(default=False, description="Debug mode")
    version: str = Field(default="1.0.0", description="Application version")

    # ===== Storage Settings =====
    storage_backend: StorageBackendEnum = Field(
        default=StorageBackendEnum.memory, description="Persistence substrate for record stores"
    )
    data_dir: Path | None = Field(default=None, description="Directory for persisted collections")

    # ===== Conversation Limits =====
    message_cap: int = Field(default=50, description="Maximum messages retained per conversation")
    default_message_limit: int = Field(
        default=50, description="Messages returned when loading a conversation"
    )
    local_user_id: str = Field(default="local-user", description="Implicit single local user")

    # ===== Monitoring & Logging =====
    log_level: LogLevelEnum = Field(default=LogLevelEnum.INFO, description="Logging level")
    log_format: LogFormatEnum = Field(default=LogFormatEnum.simple, description="Log format")

    # ===== CORS Settings =====
    allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        description="Allowed CORS origins (comma-separated)",
    )

    @property
    def allowed_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        if isinstance(self.allowed_origins, str):
            return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]
        return self.allowed_origins if isinstance(self.allowed_origins, list) else []

    # ===== Server Settings =====
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")

    # ===== Computed Properties =====
    @property
    def is_development(self) -> bool:
        return self.environment == EnvironmentEnum.development

    @property
    def is_production(self) -> bool:
        return self.environment == EnvironmentEnum.production

    @property
    def is_testing(self) -> bool:
        return self.environment == EnvironmentEnum.testing

    @property
    def is_durable(self) -> bool:
        return self.storage_backend != StorageBackendEnum.memory and self.data_dir is not None

    # ===== Validation Methods =====
    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v):
        if v and isinstance(v, str):
            lv = v.lower()
            if lv in ["dev", "develop"]:
                return "development"
            if lv in ["prod"]:
                return "production"
            return lv
        return v

    @field_validator("message_cap")
    @classmethod
    def validate_message_cap(cls, v):
        if v < 1:
            raise ValueError("Message cap must be at least 1")
        if v > 10000:
            raise ValueError("Message cap cannot exceed 10,000")
        return v

    @field_validator("default_message_limit")
    @classmethod
    def validate_message_limit(cls, v):
        if v < 1:
            raise ValueError("Default message limit must be at least 1")
        return v

    @model_validator(mode="after")
    def set_computed_fields(self):
        if self.data_dir is not None:
            self.data_dir = self.data_dir.expanduser()
        return self


settings = Settings()


class ConfigValidator:
    @staticmethod
    def validate_required_settings():
        errors = []
        if settings.storage_backend != StorageBackendEnum.memory and not settings.data_dir:
            errors.append("DATA_DIR is required for persistent storage backends")
        if settings.is_production and settings.storage_backend == StorageBackendEnum.memory:
            errors.append("STORAGE_BACKEND=memory is not allowed in production")
        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

    @staticmethod
    def get_feature_status() -> dict:
        return {
            "storage_backend": settings.storage_backend,
            "durable": settings.is_durable,
            "message_cap": settings.message_cap,
            "environment": settings.environment,
        }


def get_config_summary() -> dict:
    return {
        "app_name": settings.app_name,
        "version": settings.version,
        "environment": settings.environment,
        "debug": settings.debug,
        "features": ConfigValidator.get_feature_status(),
        "data_dir": str(settings.data_dir) if settings.data_dir else None,
    }


__all__ = [
    "settings",
    "Settings",
    "ConfigValidator",
    "get_config_summary",
    "EnvironmentEnum",
    "LogLevelEnum",
    "LogFormatEnum",
    "StorageBackendEnum",
]
