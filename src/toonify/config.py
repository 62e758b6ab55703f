"""Environment-based configuration for Toonify."""

from __future__ import annotations

from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# One per-attempt timeout per deployment tier (seconds).
TIER_ATTEMPT_TIMEOUTS: dict[str, float] = {
    "development": 30.0,
    "standard": 120.0,
    "extended": 300.0,
}

PLACEHOLDER_MARKERS: tuple[str, ...] = ("your_", "****", "changeme", "placeholder")


class Settings(BaseSettings):
    """Proxy settings loaded from TOONIFY_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TOONIFY_",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Server
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8082

    # Upstream credential (never sent to the client)
    upstream_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("TOONIFY_UPSTREAM_API_KEY", "OPENAI_API_KEY"),
    )

    # Upstream request
    upstream_url: str = "https://api.openai.com/v1/images/edits"
    upstream_model: str = "gpt-image-1"
    output_size: str = "1024x1024"
    output_quality: Literal["low", "medium", "high", "auto"] = "medium"

    # Timeouts (seconds)
    upstream_timeout: float = Field(default=120.0, gt=0)
    long_running_timeout: float = Field(default=300.0, gt=0)

    # Input limits
    max_payload_bytes: int = Field(default=52_428_800, ge=1)

    @property
    def credential_state(self) -> Literal["missing", "placeholder", "ok"]:
        """Classify the configured upstream credential."""
        key = (self.upstream_api_key or "").strip()
        if not key:
            return "missing"
        lowered = key.lower()
        if any(marker in lowered for marker in PLACEHOLDER_MARKERS):
            return "placeholder"
        return "ok"


class ClientSettings(BaseSettings):
    """Client pipeline settings loaded from TOONIFY_CLIENT_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TOONIFY_CLIENT_",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Routes
    primary_url: str = "http://localhost:8082/api/v1/generate-image"
    fallback_url: str | None = "http://localhost:8082/api/v1/generate-image/long-running"

    # Timeouts: the tier picks the value unless attempt_timeout is set explicitly
    deployment_tier: Literal["development", "standard", "extended"] = "standard"
    attempt_timeout_override: float | None = Field(
        default=None,
        gt=0,
        validation_alias="TOONIFY_CLIENT_ATTEMPT_TIMEOUT",
    )

    # Retry policy
    max_retries: int = Field(default=3, ge=0)
    backoff_base: float = Field(default=1.0, ge=0)
    backoff_min: float = Field(default=0.5, ge=0)
    backoff_cap: float = Field(default=8.0, ge=0)

    # Preprocessing
    max_edge: int = Field(default=1024, ge=1)
    jpeg_quality: int = Field(default=90, ge=1, le=95)
    max_image_pixels: int = Field(default=67_108_864, ge=1)

    @property
    def attempt_timeout(self) -> float:
        """Per-attempt timeout in seconds."""
        if self.attempt_timeout_override is not None:
            return self.attempt_timeout_override
        return TIER_ATTEMPT_TIMEOUTS[self.deployment_tier]


def get_settings() -> Settings:
    """Create and return proxy settings."""
    return Settings()


def get_client_settings() -> ClientSettings:
    """Create and return client pipeline settings."""
    return ClientSettings()
