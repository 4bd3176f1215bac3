"""
Configuration module for the token proxy.

This module uses Pydantic Settings to load and validate environment variables
for the upstream target, the optional client shared secret, the Entra ID
token scope, and the listener.

Environment variables are loaded from .env file or system environment.
Settings are read once at startup and never change afterwards.
"""

from functools import lru_cache
from typing import Optional

import httpx
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SCOPE = "https://cognitiveservices.azure.com/.default"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Only TARGET_URL is required; everything else has a default.
    """

    # =========================================================================
    # Upstream
    # =========================================================================

    TARGET_URL: str = Field(
        ...,
        description=(
            "Upstream base URL requests are forwarded to "
            "(e.g., https://my-aoai.openai.azure.com)"
        ),
        min_length=1,
    )

    UPSTREAM_CONNECT_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        description="Connect timeout towards the upstream; reads are unbounded for streams",
        gt=0,
    )

    # =========================================================================
    # Client authentication
    # =========================================================================

    EXPECTED_KEY: Optional[str] = Field(
        None,
        description="Shared secret clients must send in api-key or x-api-key (unset disables the check)",
    )

    # =========================================================================
    # Entra ID
    # =========================================================================

    AZURE_OPENAI_SCOPE: str = Field(
        default=DEFAULT_SCOPE,
        description="Scope requested from the identity provider",
        min_length=1,
    )

    AZURE_MANAGED_IDENTITY_CLIENT_ID: Optional[str] = Field(
        None,
        description="Client ID of a user-assigned managed identity",
    )

    TOKEN_REFRESH_MARGIN_SECONDS: int = Field(
        default=60,
        description="Treat cached tokens as expired this many seconds early",
        ge=0,
        le=3600,
    )

    # =========================================================================
    # Server
    # =========================================================================

    HOST: str = Field(
        default="0.0.0.0",
        description="Host to bind the proxy server",
    )

    PORT: int = Field(
        default=8081,
        description="Port to bind the proxy server",
        ge=1,
        le=65535,
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def target_url(self) -> httpx.URL:
        """Parsed upstream base URL."""
        return httpx.URL(self.TARGET_URL)

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("TARGET_URL")
    @classmethod
    def validate_target_url(cls, v: str) -> str:
        """
        Validate that TARGET_URL is an absolute http(s) URL.

        Raises:
            ValueError: If the URL cannot be parsed or has no scheme/host
        """
        v = v.strip()
        try:
            url = httpx.URL(v)
        except httpx.InvalidURL as e:
            raise ValueError(f"TARGET_URL is not a valid URL: {e}") from e

        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError(
                f"TARGET_URL must be an absolute http(s) URL, got: {v!r}"
            )
        return v

    @field_validator("EXPECTED_KEY", "AZURE_MANAGED_IDENTITY_CLIENT_ID")
    @classmethod
    def empty_as_unset(cls, v: Optional[str]) -> Optional[str]:
        # EXPECTED_KEY="" in a manifest means "no key"
        if v is None or v == "":
            return None
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}, got: {v}")
        return v


# =============================================================================
# Settings Singleton
# =============================================================================

@lru_cache()
def get_settings() -> Settings:
    """
    Get or create a singleton Settings instance.

    This function is cached so that the settings are loaded only once
    during the application lifecycle.

    Raises:
        ValidationError: If TARGET_URL is missing or invalid.
    """
    return Settings()
