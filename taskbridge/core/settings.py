"""Process settings loaded from the environment and an optional .env file."""

import logging
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from taskbridge.core.errors.errors import ConfigurationError, ErrorContext
from taskbridge.core.errors.models import ConfigurationErrorContext

logger = logging.getLogger(__name__)

DEFAULT_TOOLS_CONFIG = Path(__file__).resolve().parents[1] / "tools" / "config" / "tools.json"


class BridgeSettings(BaseSettings):
    """Settings for the task bridge process.

    API_KEY and SERVER_HOST are mandatory for serving; they are declared
    optional here so that a missing value is reported by
    validate_environment() as a single ConfigurationError naming every
    missing variable.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Remote task API
    api_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("API_KEY", "TASKBRIDGE_API_KEY", "api_key")
    )
    server_host: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("SERVER_HOST", "TASKBRIDGE_SERVER_HOST", "server_host")
    )
    request_timeout: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("TASKBRIDGE_REQUEST_TIMEOUT", "request_timeout"),
        description="Timeout for the submission request in seconds; the event stream is never timed out",
    )

    # Tool configuration
    tools_config_path: Path = Field(
        default=DEFAULT_TOOLS_CONFIG,
        validation_alias=AliasChoices("TASKBRIDGE_TOOLS_CONFIG", "tools_config_path"),
    )

    # MCP server
    mcp_host: str = Field(default="localhost", validation_alias=AliasChoices("TASKBRIDGE_MCP_HOST", "mcp_host"))
    mcp_port: int = Field(default=8080, validation_alias=AliasChoices("TASKBRIDGE_MCP_PORT", "mcp_port"))

    # Logging
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "TASKBRIDGE_LOG_LEVEL", "log_level"))
    enable_debug: bool = Field(default=False, validation_alias=AliasChoices("ENABLE_DEBUG", "enable_debug"))

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("mcp_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.enable_debug else self.log_level

    def validate_environment(self) -> None:
        """Fail if credential or target host are missing.

        Raises:
            ConfigurationError: Naming every missing variable
        """
        missing = [
            name
            for name, value in (("API_KEY", self.api_key), ("SERVER_HOST", self.server_host))
            if not value
        ]
        if missing:
            raise ConfigurationError(
                message=f"Missing required environment variables: {', '.join(missing)}",
                context=ErrorContext.create(
                    tool_name="*",
                    error_type="ConfigurationError",
                    error_location="BridgeSettings.validate_environment",
                    component="settings",
                    operation="validate_environment",
                ),
                config_context=ConfigurationErrorContext(
                    config_key=",".join(missing),
                    config_section="environment",
                    expected_type="str",
                    actual_value="",
                ),
            )
        logger.debug(f"Environment validated for server host {self.server_host}")
