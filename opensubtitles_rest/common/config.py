import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from opensubtitles_rest.common.logging import DEFAULT_LOG_PATH

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

DEFAULT_API_VERSION = "v1"
DEFAULT_USER_AGENT = f"opensubtitles-rest v{VERSION}"
DEFAULT_BASE_URL = f"https://api.opensubtitles.com/api/{DEFAULT_API_VERSION}/"
VIP_BASE_URL = f"https://vip-api.opensubtitles.com/api/{DEFAULT_API_VERSION}/"
DEFAULT_TIMEOUT_SECONDS = 30


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


class Settings(BaseSettings):
    opensubtitles_api_key: str = ""
    opensubtitles_base_url: str = DEFAULT_BASE_URL
    opensubtitles_user_agent: str = DEFAULT_USER_AGENT
    opensubtitles_timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    opensubtitles_auth_token: str | None = None
    opensubtitles_log_path: str = DEFAULT_LOG_PATH

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def timeout_seconds(self) -> int:
        """Alias for opensubtitles_timeout_seconds."""
        return self.opensubtitles_timeout_seconds

    @field_validator("opensubtitles_base_url")
    @classmethod
    def validate_base_url(cls, v) -> str:
        """Validate opensubtitles_base_url ends with a trailing slash."""
        if not v.endswith("/"):
            raise ValueError(
                f"opensubtitles_base_url must have a trailing slash, but {v!r} does not"
            )
        return v

    @field_validator("opensubtitles_timeout_seconds", mode="before")
    @classmethod
    def validate_opensubtitles_timeout_seconds(cls, v) -> int:
        """Validate and return opensubtitles_timeout_seconds, using default if invalid."""
        if v is None:
            return DEFAULT_TIMEOUT_SECONDS

        try:
            timeout = int(v)
            if timeout <= 0:
                logger.warning(
                    f"Invalid timeout_seconds value: {v}. Using default: {DEFAULT_TIMEOUT_SECONDS}s"
                )
                return DEFAULT_TIMEOUT_SECONDS
            return timeout
        except (ValueError, TypeError):
            logger.warning(
                f"Invalid timeout_seconds value: {v}. Using default: {DEFAULT_TIMEOUT_SECONDS}s"
            )
            return DEFAULT_TIMEOUT_SECONDS
