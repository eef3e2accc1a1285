from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings with validation.

    All sensitive values should be provided via environment variables.
    """

    # Environment
    environment: str = Field(
        default="development",
        description="Environment: development, staging, production"
    )

    # CORS - comma-separated origins or * for development
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed origins, or * for all (dev only)"
    )

    # n8n workflow relay
    n8n_webhook_url: Optional[str] = Field(
        default=None,
        description="Destination webhook URL for outbound events (never exposed in responses)"
    )
    n8n_timeout_seconds: float = Field(
        default=10.0,
        description="Deadline for a single outbound relay call"
    )
    webhook_event_capacity: int = Field(
        default=100,
        description="Number of inbound webhook events kept for polling"
    )

    # Storage
    storage_backend: str = Field(
        default="memory",
        description="Storage backend: memory or redis"
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (storage_backend=redis only)"
    )

    # Misc
    log_level: str = "INFO"
    log_format: str = Field(default="console", description="console or json")
    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        allowed = {"development", "staging", "production"}
        if v.lower() not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v.lower()

    @field_validator("storage_backend")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        allowed = {"memory", "redis"}
        if v.lower() not in allowed:
            raise ValueError(f"storage_backend must be one of {allowed}")
        return v.lower()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        allowed = {"console", "json"}
        if v.lower() not in allowed:
            raise ValueError(f"log_format must be one of {allowed}")
        return v.lower()

    @field_validator("n8n_webhook_url")
    @classmethod
    def blank_url_is_unset(cls, v: Optional[str]) -> Optional[str]:
        # An exported-but-empty N8N_WEBHOOK_URL means "not configured"
        if v is None:
            return None
        return v.strip() or None

    @field_validator("n8n_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("n8n_timeout_seconds must be positive")
        return v

    @field_validator("webhook_event_capacity")
    @classmethod
    def validate_capacity(cls, v: int) -> int:
        if v < 1:
            raise ValueError("webhook_event_capacity must be at least 1")
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate that required settings are properly configured in production."""
        if self.environment != "production":
            return self

        errors = []

        # CORS should not be wildcard in production
        if self.cors_origins == "*":
            errors.append("CORS_ORIGINS must not be '*' in production")

        if self.debug:
            errors.append("DEBUG must be disabled in production")

        if errors:
            raise ValueError(
                "Production configuration errors:\n- " + "\n- ".join(errors)
            )

        return self

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def n8n_configured(self) -> bool:
        return bool(self.n8n_webhook_url)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
