"""
PromptSketch Backend - Application Configuration
==================================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and exposes one `Settings` object.
Who:   Constructed once by the application factory (main.create_app) and
       handed to route handlers through the `get_settings` dependency.
When:  Loaded at process startup. Credentials are looked up on the injected
       object for every upstream call, so a missing key is reported per
       request instead of crashing the server.

Credentials:
    OPENAI_API_KEY   Bearer token for chat, completion and vision calls
    STABILITY_KEY    Bearer token for Stability AI image generation
    IMGBB_API_KEY    Form-field key for ImgBB image hosting

    Secrets are stored as SecretStr so that repr(), logging and tracebacks
    show '**********' instead of the key.
"""

from typing import Dict, List, Optional

from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from promptsketch.exceptions import ConfigurationError

# Environment variable that feeds each credential field, used in error
# messages and in the health report.
CREDENTIAL_ENV_NAMES: Dict[str, str] = {
    "openai_api_key": "OPENAI_API_KEY",
    "stability_key": "STABILITY_KEY",
    "imgbb_api_key": "IMGBB_API_KEY",
}

# 32 MiB, the largest file ImgBB accepts.
DEFAULT_MAX_UPLOAD_SIZE = 32 * 1024 * 1024


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have development defaults except the three provider
    credentials, which default to None and must be supplied by the deployment.
    """

    # ── Provider Credentials ──────────────────────────────────────────────
    # VITE_OPENAI_API_KEY is accepted for frontends that share one .env file
    # with the backend.
    openai_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("openai_api_key", "vite_openai_api_key"),
        description="OpenAI API key (chat, completion, image description)",
    )
    stability_key: Optional[SecretStr] = Field(
        default=None,
        description="Stability AI API key (image generation)",
    )
    imgbb_api_key: Optional[SecretStr] = Field(
        default=None,
        description="ImgBB API key (image hosting)",
    )

    # ── Provider Endpoints ────────────────────────────────────────────────
    openai_base_url: str = Field(default="https://api.openai.com/v1")
    stability_base_url: str = Field(default="https://api.stability.ai/v2beta/stable-image")
    imgbb_upload_url: str = Field(default="https://api.imgbb.com/1/upload")

    # ── Models ────────────────────────────────────────────────────────────
    openai_model: str = Field(default="gpt-4o-mini")
    stability_model: str = Field(default="sd3.5-large-turbo")

    # ── Upstream Transport ────────────────────────────────────────────────
    # Seconds allowed for connect, read, write and pool acquisition of a
    # single upstream call. A streaming call applies it per chunk read.
    upstream_timeout: float = Field(default=60.0, gt=0, le=600)

    # Capacity of the channel between the upstream reader and the client
    # writer for streamed chat. Small values keep the two sides paced.
    stream_buffer_size: int = Field(default=1, ge=1, le=64)

    # ── Uploads ───────────────────────────────────────────────────────────
    max_upload_size: int = Field(default=DEFAULT_MAX_UPLOAD_SIZE, ge=1024)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Comma-separated list of allowed browser origins.
    cors_origins: str = Field(default="http://localhost:5173")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

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
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def require(self, name: str) -> str:
        """
        Return the plain value of a credential or raise ConfigurationError.

        Args:
            name: Settings field name, e.g. "openai_api_key".

        The error carries the environment variable name for the server log.
        The secret itself never appears in the message or the context.
        """
        secret: Optional[SecretStr] = getattr(self, name)
        value = secret.get_secret_value().strip() if secret is not None else ""
        if not value:
            raise ConfigurationError(
                context={"setting": CREDENTIAL_ENV_NAMES.get(name, name.upper())},
            )
        return value

    def missing_credentials(self) -> List[str]:
        """Environment variable names of every credential that is unset or blank."""
        missing = []
        for field_name, env_name in CREDENTIAL_ENV_NAMES.items():
            secret: Optional[SecretStr] = getattr(self, field_name)
            if secret is None or not secret.get_secret_value().strip():
                missing.append(env_name)
        return missing
