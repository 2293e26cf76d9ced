"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:109.0) Gecko/20100101 Firefox/121.0"
)

# Provider endpoints as observed on the AllAnime web player
DEFAULT_API_URL = "https://api.allanime.day/api"
DEFAULT_PROVIDER_BASE = "https://allanime.day"
DEFAULT_REFERER = "https://allmanga.to"

TRANSLATION_MODES = ("sub", "dub")


class AppConfig(BaseModel):
    """A validated configuration model for the application."""

    # Download Settings
    download_dir: str = "."
    mode: str = "sub"

    # HLS Settings
    batch_size: int = 10
    segment_timeout: float = 30.0
    playlist_timeout: float = 10.0

    # Provider Settings
    user_agent: str = DEFAULT_USER_AGENT
    api_url: str = DEFAULT_API_URL
    provider_base: str = DEFAULT_PROVIDER_BASE
    referer: str = DEFAULT_REFERER

    # Internal fields not loaded from INI file
    config_path: str = Field("", repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        """Ensures the translation mode is one the API understands."""
        v = v.lower()
        if v not in TRANSLATION_MODES:
            raise ValueError("Mode must be either 'sub' or 'dub'.")
        return v

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, v: int) -> int:
        """Ensures a reasonable number of concurrent segment fetches."""
        if v < 1 or v > 64:
            raise ValueError("Batch size must be between 1 and 64.")
        return v

    @field_validator("segment_timeout", "playlist_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be positive.")
        return v

    @field_validator("api_url", "provider_base", "referer")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validates provider URLs and strips any trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Expected an http(s) URL, got: {v!r}")
        return v.rstrip("/")

    @field_validator("download_dir")
    @classmethod
    def validate_download_dir(cls, v: str) -> str:
        if not v:
            raise ValueError("Download directory cannot be empty.")
        return v

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        internal_fields = {"config_path"}
        return {key for key in cls.model_fields if key not in internal_fields}
