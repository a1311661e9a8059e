"""Configuration management for the Bitbucket MCP server."""

import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings.

    Built once at startup and handed to every component that talks to
    Bitbucket. Frozen so nothing can change credentials mid-flight.
    """

    model_config = SettingsConfigDict(
        env_file=".env" if os.getenv("ENVIRONMENT") != "test" else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application
    app_name: str = "Bitbucket MCP"
    app_version: str = "0.1.0"
    debug: bool = Field(default=False)
    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)

    # Transport
    mcp_transport: Literal["stdio", "http"] = Field(default="stdio")
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)

    # Bitbucket
    bitbucket_url: str = Field(default="https://api.bitbucket.org/2.0")
    bitbucket_token: Optional[str] = Field(default=None)
    bitbucket_username: Optional[str] = Field(default=None)
    bitbucket_password: Optional[str] = Field(default=None)
    bitbucket_workspace: Optional[str] = Field(default=None)
    http_timeout: float = Field(default=30.0)

    @field_validator("bitbucket_url", mode="before")
    @classmethod
    def validate_bitbucket_url(cls, v):
        url = str(v or "").strip()
        if not url:
            raise ValueError("BITBUCKET_URL is required")
        return url.rstrip("/")

    @field_validator(
        "bitbucket_token",
        "bitbucket_username",
        "bitbucket_password",
        "bitbucket_workspace",
        "log_file",
        mode="before",
    )
    @classmethod
    def empty_to_none(cls, v):
        # Blank env vars count as unset
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @model_validator(mode="after")
    def validate_credentials(self):
        if not self.bitbucket_token and not (self.bitbucket_username and self.bitbucket_password):
            raise ValueError(
                "Either BITBUCKET_TOKEN or BITBUCKET_USERNAME/BITBUCKET_PASSWORD is required"
            )
        return self

    @property
    def uses_token_auth(self) -> bool:
        """Whether requests authenticate with a bearer token."""
        return bool(self.bitbucket_token)

    def get_log_level(self) -> str:
        """Effective log level, forced to DEBUG in debug mode."""
        return "DEBUG" if self.debug else self.log_level.upper()


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
