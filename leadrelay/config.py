"""Configuration loading for the leadrelay webhook adapter.

This module provides centralized configuration management:
- Load settings from environment variables and .env files
- Validate configuration using pydantic
- Provide typed access to all settings
- Convert settings into the immutable RelayConfig used by the core
"""

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from leadrelay.core.models import RelayConfig, TransportMode
from leadrelay.core.strategies import (
    DEFAULT_STRATEGY_ORDER,
    parse_strategy_names,
    resolve_strategies,
)


class Settings(BaseSettings):
    """Application configuration loaded from environment.

    Uses pydantic-settings for environment variable handling with
    .env file support via python-dotenv.

    The CRM API key is deliberately optional here: a missing key is
    reported per invocation as a configuration error rather than
    preventing the server from starting.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # CRM credentials
    api_key: str = Field(
        default="",
        description="CRM API key (required for forwarding)",
    )
    list_id: str = Field(
        default="",
        description="Optional CRM list the contact is added to",
    )

    # CRM endpoint configuration
    crm_base_url: str = Field(
        default="https://api.vbout.com/1",
        description="CRM API base URL",
    )
    crm_add_contact_path: str = Field(
        default="/emailmarketing/addcontact",
        description="Path of the CRM add-contact endpoint",
    )
    crm_account_path: str = Field(
        default="/user/me",
        description="Path of the CRM account endpoint used by diagnostics",
    )
    crm_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for each outbound CRM call in seconds",
    )
    request_timeout_margin_seconds: float = Field(
        default=5.0,
        description="Extra seconds an inbound request may run beyond all CRM calls",
    )

    # Transport strategy configuration
    crm_transport_mode: Literal["simple", "fallback"] = Field(
        default="fallback",
        description="Use only the first strategy, or fall back through all of them",
    )
    crm_strategies: str = Field(
        default=",".join(DEFAULT_STRATEGY_ORDER),
        description="Comma-separated transport strategy names, in priority order",
    )
    crm_custom_field_prefix: Literal["custom", "customfield"] = Field(
        default="custom",
        description="Prefix of the CRM custom fields holding visitor id and URL",
    )

    # Result policy
    upstream_failure_status: int = Field(
        default=200,
        description="HTTP status returned when the CRM rejects a contact (200 or 500)",
    )
    include_crm_response: bool = Field(
        default=False,
        description="Include raw CRM payload, strategy and attempts in results",
    )

    # Diagnostics
    diagnostics_enabled: bool = Field(
        default=False,
        description="Expose the GET diagnostics probe endpoint",
    )
    probe_contact_email: str = Field(
        default="",
        description="If set, the probe also creates a contact with this email",
    )

    # Logging configuration
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Log level",
    )
    log_format: Literal["json", "text"] = Field(
        default="text",
        description="Log format",
    )

    # Webhook server configuration
    webhook_host: str = Field(
        default="0.0.0.0",
        description="Host to listen on for webhook server",
    )
    webhook_port: int = Field(
        default=8080,
        description="Port to listen on for webhook server",
    )
    webhook_path: str = Field(
        default="/webhook",
        description="Path the chat widget posts form submissions to",
    )
    webhook_api_key: str = Field(
        default="",
        description="API key for inbound webhook authentication",
    )
    webhook_require_auth: bool = Field(
        default=False,
        description="Require API key authentication for webhook endpoints",
    )

    # Development
    debug: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging",
    )

    @field_validator("crm_timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        """Ensure the outbound timeout is positive and bounded."""
        if v <= 0 or v > 60:
            raise ValueError("crm_timeout_seconds must be in (0, 60]")
        return v

    @field_validator("request_timeout_margin_seconds")
    @classmethod
    def validate_timeout_margin(cls, v: float) -> float:
        """Ensure the request timeout margin is not negative."""
        if v < 0:
            raise ValueError("request_timeout_margin_seconds must be >= 0")
        return v

    @field_validator("crm_strategies")
    @classmethod
    def validate_strategies(cls, v: str) -> str:
        """Ensure every configured strategy name is known."""
        resolve_strategies(parse_strategy_names(v))
        return v

    @field_validator("upstream_failure_status")
    @classmethod
    def validate_upstream_failure_status(cls, v: int) -> int:
        """Only 200 and 500 are meaningful for upstream rejections."""
        if v not in (200, 500):
            raise ValueError("upstream_failure_status must be 200 or 500")
        return v

    @field_validator("webhook_port")
    @classmethod
    def validate_webhook_port(cls, v: int) -> int:
        """Ensure webhook port is in valid range."""
        if v <= 0 or v > 65535:
            raise ValueError("webhook_port must be between 1 and 65535")
        return v

    @field_validator("webhook_path")
    @classmethod
    def validate_webhook_path(cls, v: str) -> str:
        """Ensure webhook path is absolute."""
        if not v.startswith("/"):
            raise ValueError("webhook_path must start with '/'")
        return v

    def to_relay_config(self) -> RelayConfig:
        """Build the immutable configuration handed to core services."""
        return RelayConfig(
            api_key=self.api_key,
            list_id=self.list_id,
            strategies=resolve_strategies(parse_strategy_names(self.crm_strategies)),
            base_url=self.crm_base_url,
            add_contact_path=self.crm_add_contact_path,
            account_path=self.crm_account_path,
            mode=TransportMode(self.crm_transport_mode),
            custom_field_prefix=self.crm_custom_field_prefix,
            upstream_failure_status=self.upstream_failure_status,
            include_crm_response=self.include_crm_response or self.debug,
            probe_contact_email=self.probe_contact_email,
        )

    @property
    def request_timeout(self) -> float:
        """Upper bound for one inbound request: every strategy may time out."""
        count = len(parse_strategy_names(self.crm_strategies))
        return (
            self.crm_timeout_seconds * max(count, 1)
            + self.request_timeout_margin_seconds
        )


def load_settings(env_file: str | None = None) -> Settings:
    """Load application settings from environment.

    Args:
        env_file: Optional path to .env file. If not provided,
                 uses the default .env in the current directory.

    Returns:
        Validated Settings instance.

    Raises:
        ValidationError: If settings validation fails.
    """
    if env_file:
        return Settings(_env_file=env_file)  # type: ignore[call-arg]
    return Settings()


__all__ = ["Settings", "load_settings"]
