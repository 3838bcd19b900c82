"""Tests for process settings."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from taskbridge.core.errors.errors import ConfigurationError
from taskbridge.core.settings import DEFAULT_TOOLS_CONFIG, BridgeSettings

ENV_VARS = [
    "API_KEY",
    "TASKBRIDGE_API_KEY",
    "SERVER_HOST",
    "TASKBRIDGE_SERVER_HOST",
    "LOG_LEVEL",
    "TASKBRIDGE_LOG_LEVEL",
    "ENABLE_DEBUG",
    "TASKBRIDGE_TOOLS_CONFIG",
    "TASKBRIDGE_MCP_PORT",
    "TASKBRIDGE_REQUEST_TIMEOUT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # keep a developer's .env out of the tests
    monkeypatch.chdir(tmp_path)


class TestBridgeSettings:
    """Test BridgeSettings loading."""

    def test_defaults(self):
        settings = BridgeSettings()

        assert settings.api_key is None
        assert settings.server_host is None
        assert settings.log_level == "INFO"
        assert settings.enable_debug is False
        assert settings.mcp_port == 8080
        assert settings.tools_config_path == DEFAULT_TOOLS_CONFIG

    def test_reads_plain_environment_names(self, monkeypatch):
        monkeypatch.setenv("API_KEY", "secret")
        monkeypatch.setenv("SERVER_HOST", "api.example.com")
        monkeypatch.setenv("LOG_LEVEL", "warning")

        settings = BridgeSettings()

        assert settings.api_key == "secret"
        assert settings.server_host == "api.example.com"
        assert settings.log_level == "WARNING"

    def test_reads_prefixed_environment_names(self, monkeypatch):
        monkeypatch.setenv("TASKBRIDGE_API_KEY", "prefixed")
        monkeypatch.setenv("TASKBRIDGE_MCP_PORT", "9000")

        settings = BridgeSettings()

        assert settings.api_key == "prefixed"
        assert settings.mcp_port == 9000

    def test_reads_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("API_KEY=from-file\nSERVER_HOST=file.example.com\n")

        settings = BridgeSettings()

        assert settings.api_key == "from-file"
        assert settings.server_host == "file.example.com"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(PydanticValidationError, match="Log level must be one of"):
            BridgeSettings(log_level="LOUD")

    def test_invalid_port_rejected(self):
        with pytest.raises(PydanticValidationError):
            BridgeSettings(mcp_port=70000)

    def test_enable_debug_overrides_log_level(self, monkeypatch):
        monkeypatch.setenv("ENABLE_DEBUG", "true")
        monkeypatch.setenv("LOG_LEVEL", "ERROR")

        settings = BridgeSettings()

        assert settings.effective_log_level == "DEBUG"


class TestValidateEnvironment:
    """Test the required-variable check."""

    def test_lists_every_missing_variable(self):
        with pytest.raises(ConfigurationError) as exc_info:
            BridgeSettings().validate_environment()

        assert exc_info.value.message == "Missing required environment variables: API_KEY, SERVER_HOST"

    def test_lists_only_missing_variable(self):
        with pytest.raises(ConfigurationError) as exc_info:
            BridgeSettings(api_key="secret").validate_environment()

        assert exc_info.value.message == "Missing required environment variables: SERVER_HOST"

    def test_passes_when_complete(self):
        BridgeSettings(api_key="secret", server_host="api.example.com").validate_environment()
