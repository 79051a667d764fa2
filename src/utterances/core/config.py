"""Relay Configuration - Environment based settings for the OAuth relay.

This module loads the relay configuration from environment variables into a
pydantic model. Configuration is read once at startup and treated as
read-only afterwards.

Usage:
    from utterances.core.config import load_config

    config = load_config()
    print(config.authorize_url)

Environment Variables:
- UTTERANCES_CLIENT_ID -> client_id (required)
- UTTERANCES_CLIENT_SECRET -> client_secret (required)
- UTTERANCES_CALLBACK_URL -> callback_url (required)
- UTTERANCES_STATE_PASSWORD -> state_password (required)
- UTTERANCES_ACCESS_TOKEN -> service_token
- UTTERANCES_GITLAB_URL -> gitlab_url
- UTTERANCES_FRONTEND_URL -> frontend_url
- UTTERANCES_ALLOWED_ORIGINS -> allowed_origins (comma-separated)
- UTTERANCES_AVATAR_EMAIL_DOMAIN -> avatar_email_domain
- UTTERANCES_HOST -> host
- UTTERANCES_PORT -> port
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_GITLAB_URL = "https://gitlab.com"
DEFAULT_FRONTEND_URL = "http://localhost:8080/index.html"
DEFAULT_ALLOWED_ORIGINS = "http://localhost:8080"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 7000

OAUTH_SCOPES = "api read_user read_api read_repository write_repository"

# Format: (env_var_name, field_name)
ENV_VAR_MAPPINGS: list[tuple[str, str]] = [
    ("UTTERANCES_CLIENT_ID", "client_id"),
    ("UTTERANCES_CLIENT_SECRET", "client_secret"),
    ("UTTERANCES_CALLBACK_URL", "callback_url"),
    ("UTTERANCES_STATE_PASSWORD", "state_password"),
    ("UTTERANCES_ACCESS_TOKEN", "service_token"),
    ("UTTERANCES_GITLAB_URL", "gitlab_url"),
    ("UTTERANCES_FRONTEND_URL", "frontend_url"),
    ("UTTERANCES_ALLOWED_ORIGINS", "allowed_origins"),
    ("UTTERANCES_AVATAR_EMAIL_DOMAIN", "avatar_email_domain"),
    ("UTTERANCES_HOST", "host"),
    ("UTTERANCES_PORT", "port"),
]

REQUIRED_FIELDS = ("client_id", "client_secret", "callback_url", "state_password")


class ConfigError(Exception):
    """Raised when the relay configuration is missing or invalid."""

    def __init__(self, message: str, missing: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.missing = missing or []


# =============================================================================
# Config Model
# =============================================================================


class RelayConfig(BaseModel):
    """Configuration for the OAuth relay."""

    client_id: str
    client_secret: str
    callback_url: str
    state_password: str
    service_token: str = ""
    gitlab_url: str = DEFAULT_GITLAB_URL
    frontend_url: str = DEFAULT_FRONTEND_URL
    allowed_origins: list[str] = Field(
        default_factory=lambda: parse_origins(DEFAULT_ALLOWED_ORIGINS)
    )
    avatar_email_domain: str = "example.com"
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        if isinstance(value, str):
            return parse_origins(value)
        return value

    @field_validator("gitlab_url", "callback_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def authorize_url(self) -> str:
        """GitLab OAuth authorization endpoint."""
        return f"{self.gitlab_url}/oauth/authorize"

    @property
    def token_url(self) -> str:
        """GitLab OAuth token endpoint."""
        return f"{self.gitlab_url}/oauth/token"

    @property
    def api_base(self) -> str:
        """GitLab REST API v4 base URL."""
        return f"{self.gitlab_url}/api/v4"

    @property
    def callback_redirect_uri(self) -> str:
        """The relay's own /authorized URL as registered with GitLab."""
        return f"{self.callback_url}/authorized"


# =============================================================================
# Loading
# =============================================================================


def parse_origins(origins_str: str) -> list[str]:
    """Parse a comma-separated list of origins.

    Args:
        origins_str: Comma-separated origins.

    Returns:
        List of non-empty, stripped origin strings.
    """
    return [origin.strip() for origin in origins_str.split(",") if origin.strip()]


def load_config(environ: Mapping[str, str] | None = None) -> RelayConfig:
    """Build a RelayConfig from environment variables.

    Args:
        environ: Mapping to read from. Defaults to os.environ.

    Returns:
        The loaded configuration.

    Raises:
        ConfigError: If required variables are missing or values are invalid.
    """
    env = os.environ if environ is None else environ

    values: dict[str, str] = {}
    for env_var, field_name in ENV_VAR_MAPPINGS:
        value = env.get(env_var)
        if value:
            values[field_name] = value

    missing = [
        env_var
        for env_var, field_name in ENV_VAR_MAPPINGS
        if field_name in REQUIRED_FIELDS and field_name not in values
    ]
    if missing:
        raise ConfigError(
            f"Missing required environment variables: {', '.join(missing)}", missing=missing
        )

    try:
        return RelayConfig(**values)  # type: ignore[arg-type]
    except ValidationError as e:
        invalid = [".".join(str(loc) for loc in error["loc"]) for error in e.errors()]
        raise ConfigError(f"Invalid configuration: {', '.join(invalid)}") from e


def truncate_secret(secret: str) -> str:
    """Truncate a secret for safe display.

    Shows first 4 and last 4 characters with ellipsis in between.

    Args:
        secret: The secret to truncate.

    Returns:
        Truncated string or "(not set)" if empty.
    """
    if not secret:
        return "(not set)"
    if len(secret) <= 12:
        return secret[:2] + "..." + secret[-2:]
    return secret[:4] + "..." + secret[-4:]
