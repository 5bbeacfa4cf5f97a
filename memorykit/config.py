import logging

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.memorykit.io/v1"
API_KEY_PREFIX = "ctx_"


class MemoryKitConfig(BaseModel):
    """Configuration for the MemoryKit client.

    Immutable once the client is built; ``max_retries`` and
    ``retry_base_delay`` form the retry policy for every request.
    """

    model_config = ConfigDict(frozen=True)

    api_key: str = Field(min_length=1)
    base_url: str = DEFAULT_BASE_URL
    timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=0)
    retry_base_delay: float = Field(default=1.0, gt=0)

    @field_validator("api_key")
    @classmethod
    def warn_on_unexpected_key_prefix(cls, v: str) -> str:
        if not v.startswith(API_KEY_PREFIX):
            logger.warning(
                f"MemoryKit API keys normally start with '{API_KEY_PREFIX}'"
            )
        return v

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class MemoryKitSettings(BaseSettings):
    """Settings read from ``MEMORYKIT_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="MEMORYKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    timeout: float = 30.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    log_level: str = "INFO"

    def to_config(self) -> MemoryKitConfig:
        """Build a client configuration, requiring an API key."""
        if not self.api_key:
            raise ValueError(
                "MemoryKit API key is not set. Set the MEMORYKIT_API_KEY "
                "environment variable."
            )
        return MemoryKitConfig(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout,
            max_retries=self.max_retries,
            retry_base_delay=self.retry_base_delay,
        )


def load_settings() -> MemoryKitSettings:
    """Load settings, honoring a ``.env`` file in the working directory."""
    load_dotenv()
    return MemoryKitSettings()
