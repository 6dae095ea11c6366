"""
Smart Scribbler Backend — Application Configuration
=====================================================

What:  Every tunable of the service in one typed object: Gemini models and
       key, the Google OAuth client, upload limits, server and logging.
How:   pydantic-settings reads the environment (names are case-insensitive)
       and an optional .env file in the working directory.

Example .env:
    GEMINI_API_KEY=...
    GOOGLE_CLIENT_ID=1234.apps.googleusercontent.com
    GOOGLE_CLIENT_SECRET=...
    APP_URL=https://scribbler.example.com
"""

from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have development defaults. GEMINI_API_KEY is required for
    any AI call; GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET are required only
    for the Google Docs import.
    """

    # ── Google Gemini ─────────────────────────────────────────────────────
    # How to obtain: https://aistudio.google.com/app/apikey
    gemini_api_key: str = Field(
        default="",
        description="Google Gemini API key used for note analysis and diagram images"
    )

    # Model that reads the notes and returns the structured JSON
    gemini_model: str = Field(default="gemini-3-flash-preview")

    # Model that draws one image per detected diagram
    gemini_image_model: str = Field(default="gemini-2.5-flash-image")

    # Per-call timeout in seconds for both models
    gemini_timeout: int = Field(default=120, ge=10, le=600)

    # ── Google OAuth / Docs ───────────────────────────────────────────────
    google_client_id: str = Field(default="")
    google_client_secret: str = Field(default="")

    # What: Public base URL of this server; the OAuth redirect URI is
    #       {app_url}/auth/callback and must be registered in Google Cloud.
    app_url: str = Field(default="http://localhost:8000")

    # Space- or comma-separated OAuth scopes
    google_scopes: str = Field(
        default="https://www.googleapis.com/auth/documents.readonly"
    )

    @property
    def google_scopes_list(self) -> List[str]:
        """Splits the configured scopes into the list Google expects."""
        return [s for s in self.google_scopes.replace(",", " ").split() if s]

    @property
    def oauth_redirect_uri(self) -> str:
        return f"{self.app_url.rstrip('/')}/auth/callback"

    # ── Uploads ───────────────────────────────────────────────────────────
    # Default: 10MB per image. Photos from phones are typically 2-6MB.
    max_file_size: int = Field(default=10_485_760, ge=1_048_576, le=52_428_800)

    # Images sent to Gemini in a single request
    max_files: int = Field(default=10, ge=1, le=50)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Format: Comma-separated URLs
    cors_origins: str = Field(default="http://localhost:8000,http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=8000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def google_oauth_configured(self) -> bool:
        return bool(self.google_client_id and self.google_client_secret)

    def validate_required_for_production(self) -> None:
        """
        Checked once from the lifespan hook; the server keeps running either
        way so /health can report the problem.

        Raises: ValueError naming each problem.
        """
        problems = []
        if not self.gemini_api_key:
            problems.append("GEMINI_API_KEY is not set (https://aistudio.google.com/app/apikey)")
        if self.google_oauth_configured and not self.app_url.startswith(("http://", "https://")):
            problems.append(f"APP_URL must be an absolute http(s) URL, got '{self.app_url}'")
        if problems:
            raise ValueError("; ".join(problems))


# Singleton instance, imported throughout the application
settings = Settings()
