"""Configuration management for the Typesense Cloud reconciler."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from typesense_cloud.core.exceptions import ConfigurationError

DEFAULT_API_URL = "https://cloud.typesense.org/api/v1"
DEFAULT_KEY_ENV_VAR = "TYPESENSE_MANAGEMENT_KEY"


class ApiConfig(BaseModel):
    """Management API configuration."""

    base_url: str = DEFAULT_API_URL
    timeout_seconds: float = 30.0
    key: str | None = Field(default=None, repr=False)
    key_env_var: str = DEFAULT_KEY_ENV_VAR

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalize the base URL so endpoint paths join cleanly."""
        return value.rstrip("/")


class ProvisioningConfig(BaseModel):
    """Provisioning wait configuration."""

    poll_interval_seconds: float = Field(default=8.0, ge=0)
    max_wait_seconds: float | None = Field(default=1800.0, ge=0)  # None waits forever


class RetryConfig(BaseModel):
    """Retry configuration for idempotent reads."""

    max_attempts: int = Field(default=3, ge=1)
    min_wait_seconds: float = 1.0
    max_wait_seconds: float = 10.0


class RateLimitsConfig(BaseModel):
    """Rate limiting configuration."""

    management_api: int = 60  # requests per minute


class StateConfig(BaseModel):
    """Tracked state configuration."""

    path: str = "~/.tscloud/state.json"


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    output: str = "stderr"


class ReconcilerConfig(BaseModel):
    """Main reconciler configuration."""

    api: ApiConfig = Field(default_factory=ApiConfig)
    provisioning: ProvisioningConfig = Field(default_factory=ProvisioningConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    rate_limits: RateLimitsConfig = Field(default_factory=RateLimitsConfig)
    state: StateConfig = Field(default_factory=StateConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def from_file(cls, path: str | Path) -> "ReconcilerConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to configuration file

        Returns:
            ReconcilerConfig instance

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        config_path = Path(path).expanduser()

        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f)
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}") from e

        try:
            return cls(**(data or {}))
        except Exception as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary, without the API key."""
        return self.model_dump(exclude={"api": {"key"}})
