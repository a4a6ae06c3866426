"""Project-level configuration and path helpers."""

from pathlib import Path
from typing import Union

from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_PRICING_PATH = DATA_DIR / "pricing_config.json"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"


PathLike = Union[str, Path]


def resolve_data_path(env_value: PathLike | None = None) -> Path:
    """Resolve PRICING_CONFIG_PATH to an absolute path."""
    if not env_value:
        return DEFAULT_PRICING_PATH

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


class Settings(BaseSettings):
    """Runtime settings, read once from the environment and .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    # Credentials are checked per turn, not at startup
    openai_api_key: str = Field(
        default="", validation_alias=AliasChoices("OPENAI_API_KEY", "CHATGPT_API_KEY")
    )
    assistant_id: str = Field(default="", validation_alias="OPENAI_ASSISTANT_ID")
    openai_base_url: str = "https://api.openai.com/v1"

    line_channel_access_token: str = ""
    line_api_base_url: str = "https://api.line.me"
    line_data_api_base_url: str = "https://api-data.line.me"

    scheduling_url: str = ""
    pricing_config_path: Path = DEFAULT_PRICING_PATH

    # Timings, in seconds
    debounce_seconds: float = Field(default=15.0, gt=0)
    poll_interval_seconds: float = Field(default=1.0, ge=0)
    poll_max_attempts: int = Field(default=60, ge=1)
    tool_submit_settle_seconds: float = Field(default=0.7, ge=0)
    duplicate_wait_seconds: float = Field(default=0.8, ge=0)
    conflict_retry_delay_seconds: float = Field(default=2.0, ge=0)
    http_timeout_seconds: float = Field(default=30.0, gt=0)

    min_reply_length: int = Field(default=10, ge=0)  # UTF-8 bytes
    max_image_bytes: int = Field(default=5 * 1024 * 1024, gt=0)
    session_idle_ttl_seconds: float = Field(default=0.0, ge=0)

    timezone: str = Field(default="Asia/Bangkok", validation_alias="BOT_TIMEZONE")
    log_level: str = "INFO"

    @field_validator("pricing_config_path", mode="before")
    @classmethod
    def _resolve_pricing_path(cls, value: PathLike | None) -> Path:
        return resolve_data_path(value)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment.

        Raises:
            ConfigurationError: a value has the wrong type or is out of range.
        """
        try:
            return cls()
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            )
            raise ConfigurationError(f"Invalid settings: {problems}") from e
