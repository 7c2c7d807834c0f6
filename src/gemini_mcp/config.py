from pydantic import Field, HttpUrl, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gemini_mcp.errors import ConfigurationError

LOG_DIR_DISABLED = "none"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="GEMINI_MCP_",
        extra="ignore",
        populate_by_name=True,
    )

    api_key: str = Field(
        ..., validation_alias="GEMINI_API_KEY", description="Gemini API key."
    )
    debug: bool = Field(
        True, validation_alias="MCP_DEBUG", description="Verbose (debug) logging."
    )
    log_dir: str = Field(
        "logs",
        validation_alias="MCP_LOG_DIR",
        description="Directory for the log and usage files, or 'none' to disable them.",
    )
    max_retries: int = Field(
        2, ge=0, description="Retries for transient failures of a provider call."
    )
    text_timeout: float = Field(
        300.0, gt=0, description="Seconds allowed per text generation attempt."
    )
    image_timeout: float = Field(
        180.0, gt=0, description="Seconds allowed per image generation attempt."
    )
    research_request_timeout: float = Field(
        60.0, gt=0, description="Seconds allowed per deep research HTTP request."
    )
    research_poll_interval: float = Field(
        10.0, ge=0, description="Seconds between deep research status checks."
    )
    research_base_url: HttpUrl = Field(
        "https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the interactions REST API.",
    )

    @field_validator("api_key")
    @classmethod
    def _api_key_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("GEMINI_API_KEY must not be empty")
        return value.strip()

    @property
    def log_files_enabled(self) -> bool:
        return self.log_dir.strip().lower() != LOG_DIR_DISABLED


def load_settings(**overrides) -> Settings:
    try:
        return Settings(**overrides)
    except ValidationError as e:
        missing_key = any(
            err.get("loc") and err["loc"][0] in ("GEMINI_API_KEY", "api_key")
            for err in e.errors()
        )
        if missing_key:
            raise ConfigurationError(
                "FATAL: GEMINI_API_KEY environment variable is required. "
                "Set it in your MCP server configuration or export it in your shell."
            ) from None
        raise ConfigurationError(f"FATAL: invalid configuration: {e}") from None
