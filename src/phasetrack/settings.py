"""Application settings using pydantic-settings."""

from functools import cache
from typing import Annotated, Literal
from urllib.parse import urlsplit, urlunsplit

from pydantic import BeforeValidator, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Annotated[
    Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
    BeforeValidator(lambda v: v.upper() if isinstance(v, str) else v),
]


def _strip_trailing_slash(v: object) -> object:
    return v.rstrip("/") if isinstance(v, str) else v


BaseUrl = Annotated[str, BeforeValidator(_strip_trailing_slash)]


def derive_ws_url(base_url: str) -> str:
    """Socket hub URL on the same host as the REST API.

    ``https://portal.example.com`` becomes ``wss://portal.example.com/ws``.
    """
    parts = urlsplit(base_url)
    scheme = "wss" if parts.scheme == "https" else "ws"
    path = parts.path.rstrip("/") + "/ws"
    return urlunsplit((scheme, parts.netloc, path, "", ""))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PHASETRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend settings
    base_url: BaseUrl = Field(
        default="http://localhost:3000", description="Portal REST base URL"
    )
    ws_url: str | None = Field(
        default=None, description="Socket hub URL (derived from base_url if unset)"
    )
    auth_token: SecretStr | None = Field(
        default=None, description="Bearer token for REST and socket auth"
    )
    request_timeout: float = Field(
        default=10.0, gt=0, description="REST request timeout in seconds"
    )

    # Sync settings
    poll_interval_seconds: float = Field(
        default=30.0,
        ge=0,
        description="Auto-refresh interval while no socket is live (0 disables)",
    )
    reconnect_delay_seconds: float = Field(
        default=5.0, gt=0, description="Delay before reconnecting the socket"
    )

    log_level: LogLevel = Field(default="INFO", description="Log level")

    @model_validator(mode="after")
    def set_ws_default(self) -> "Settings":
        """Derive the socket URL from the base URL when not configured."""
        if not self.ws_url:
            self.ws_url = derive_ws_url(self.base_url)
        return self

    @property
    def token(self) -> str | None:
        """Plain bearer token, if configured."""
        return self.auth_token.get_secret_value() if self.auth_token else None


@cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
