import pytest

from gemini_mcp.config import load_settings
from gemini_mcp.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    # Keep any developer .env or exported variables out of the tests.
    monkeypatch.chdir(tmp_path)
    for name in (
        "GEMINI_API_KEY",
        "MCP_DEBUG",
        "MCP_LOG_DIR",
        "GEMINI_MCP_MAX_RETRIES",
        "GEMINI_MCP_TEXT_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


def test_missing_api_key_is_fatal():
    with pytest.raises(ConfigurationError) as exc_info:
        load_settings()
    assert str(exc_info.value).startswith("FATAL: GEMINI_API_KEY environment variable is required")


def test_blank_api_key_is_fatal(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "   ")
    with pytest.raises(ConfigurationError):
        load_settings()


def test_defaults(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "key-123")
    settings = load_settings()
    assert settings.api_key == "key-123"
    assert settings.debug is True
    assert settings.log_dir == "logs"
    assert settings.log_files_enabled is True
    assert settings.max_retries == 2
    assert settings.text_timeout == 300.0
    assert settings.image_timeout == 180.0
    assert settings.research_poll_interval == 10.0


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "key-123")
    monkeypatch.setenv("MCP_DEBUG", "false")
    monkeypatch.setenv("MCP_LOG_DIR", "none")
    monkeypatch.setenv("GEMINI_MCP_MAX_RETRIES", "5")
    monkeypatch.setenv("GEMINI_MCP_TEXT_TIMEOUT", "42")

    settings = load_settings()

    assert settings.debug is False
    assert settings.log_files_enabled is False
    assert settings.max_retries == 5
    assert settings.text_timeout == 42.0


def test_env_file_is_read(tmp_path):
    (tmp_path / ".env").write_text("GEMINI_API_KEY=from-dotenv\n", encoding="utf-8")
    assert load_settings().api_key == "from-dotenv"


def test_invalid_values_are_configuration_errors(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "key-123")
    monkeypatch.setenv("GEMINI_MCP_MAX_RETRIES", "-1")
    with pytest.raises(ConfigurationError, match="invalid configuration"):
        load_settings()
