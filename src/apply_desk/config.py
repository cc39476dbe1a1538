"""Configuration management for Apply Desk."""

import logging
from typing import Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings, read from the environment and ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Live browser
    browser_headless: bool = Field(True, description="Launch Chromium headless")
    browser_viewport_width: int = Field(1400, gt=0, description="Page viewport width in pixels")
    browser_viewport_height: int = Field(1400, gt=0, description="Page viewport height in pixels")
    browser_navigation_timeout: int = Field(30000, gt=0, description="DOM-ready wait on navigation (ms)")
    focus_timeout: int = Field(4000, gt=0, description="Wait for a first form field to scroll into view (ms)")

    # Frame stream
    frame_interval_seconds: float = Field(1.0, gt=0, description="Seconds between screenshots pushed to a viewer")

    # Store
    resume_dir: str = Field("./data/resumes", description="RESUME_DIR: where stored resume files resolve")
    seed_file: Optional[str] = Field(None, description="JSON seed document loaded into the in-memory store")

    # Service
    debug: bool = Field(False, description="Console log rendering and API docs")
    log_level: str = Field("INFO", description="Root log level name")
    api_host: str = Field("0.0.0.0", description="Bind address")
    api_port: int = Field(4000, description="Bind port")
    reload: bool = Field(False, description="Restart the server on code changes")
    allowed_origins: list[str] = Field(["*"], description="CORS allowed origins")
    allowed_hosts: Optional[list[str]] = Field(None, description="Trusted Host header values")

    # Tokens
    jwt_secret_key: str = Field("apply-desk-dev-secret-change-me-in-production", description="HS256 signing key")
    jwt_algorithm: str = Field("HS256", description="JWT algorithm")
    jwt_expiration_hours: int = Field(24, gt=0, description="Token lifetime in hours")
    password_salt: str = Field("apply-desk-salt", description="Salt mixed into password hashes")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def viewport_size(self) -> Tuple[int, int]:
        return (self.browser_viewport_width, self.browser_viewport_height)


# Global settings instance
settings = Settings()
