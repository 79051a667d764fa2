"""Tests for the relay configuration model and loader.

Tests for:
- Environment variable loading and required fields
- Origin list parsing
- Derived GitLab endpoint URLs
- Secret truncation for log output
- Rich logging setup
"""

import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from utterances.core.config import (
    DEFAULT_GITLAB_URL,
    DEFAULT_PORT,
    ENV_VAR_MAPPINGS,
    REQUIRED_FIELDS,
    ConfigError,
    RelayConfig,
    load_config,
    parse_origins,
    truncate_secret,
)
from utterances.core.logging import configure_logging


class TestLoadConfig:
    """Tests for load_config()."""

    def test_loads_all_variables(self, relay_env: dict[str, str]) -> None:
        config = load_config(relay_env)
        assert config.client_id == "test-client-id"
        assert config.client_secret == "test-client-secret"
        assert config.service_token == "service-token-1234567890"
        assert config.gitlab_url == "https://gitlab.example.com"
        assert config.allowed_origins == ["https://docs.example.com", "https://blog.example.com"]

    def test_defaults_for_optional_variables(self) -> None:
        config = load_config(
            {
                "UTTERANCES_CLIENT_ID": "id",
                "UTTERANCES_CLIENT_SECRET": "secret",
                "UTTERANCES_CALLBACK_URL": "https://relay.example.com",
                "UTTERANCES_STATE_PASSWORD": "pw",
            }
        )
        assert config.gitlab_url == DEFAULT_GITLAB_URL
        assert config.port == DEFAULT_PORT
        assert config.service_token == ""
        assert config.allowed_origins == ["http://localhost:8080"]

    @pytest.mark.parametrize(
        "env_var",
        [env_var for env_var, field in ENV_VAR_MAPPINGS if field in REQUIRED_FIELDS],
    )
    def test_missing_required_variable(self, relay_env: dict[str, str], env_var: str) -> None:
        del relay_env[env_var]
        with pytest.raises(ConfigError) as exc_info:
            load_config(relay_env)
        assert exc_info.value.missing == [env_var]
        assert env_var in str(exc_info.value)

    def test_empty_value_counts_as_missing(self, relay_env: dict[str, str]) -> None:
        relay_env["UTTERANCES_STATE_PASSWORD"] = ""
        with pytest.raises(ConfigError, match="UTTERANCES_STATE_PASSWORD"):
            load_config(relay_env)

    def test_invalid_port(self, relay_env: dict[str, str]) -> None:
        relay_env["UTTERANCES_PORT"] = "not-a-number"
        with pytest.raises(ConfigError, match="port"):
            load_config(relay_env)

    def test_reads_os_environ_by_default(
        self, relay_env: dict[str, str], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        for key, value in relay_env.items():
            monkeypatch.setenv(key, value)
        monkeypatch.setenv("UTTERANCES_PORT", "7100")
        assert load_config().port == 7100


class TestRelayConfig:
    """Tests for RelayConfig derived properties."""

    def test_endpoint_urls(self, relay_config: RelayConfig) -> None:
        assert relay_config.authorize_url == "https://gitlab.example.com/oauth/authorize"
        assert relay_config.token_url == "https://gitlab.example.com/oauth/token"
        assert relay_config.api_base == "https://gitlab.example.com/api/v4"
        assert relay_config.callback_redirect_uri == "https://relay.example.com/authorized"

    def test_trailing_slashes_stripped(self, relay_config: RelayConfig) -> None:
        config = RelayConfig(
            **{
                **relay_config.model_dump(),
                "gitlab_url": "https://gitlab.example.com/",
                "callback_url": "https://relay.example.com/",
            }
        )
        assert config.api_base == "https://gitlab.example.com/api/v4"
        assert config.callback_redirect_uri == "https://relay.example.com/authorized"

    def test_origins_from_string(self) -> None:
        config = RelayConfig(
            client_id="id",
            client_secret="secret",
            callback_url="https://relay.example.com",
            state_password="pw",
            allowed_origins="https://a.example, https://b.example",
        )
        assert config.allowed_origins == ["https://a.example", "https://b.example"]


class TestHelpers:
    """Tests for parse_origins() and truncate_secret()."""

    def test_parse_origins_skips_blanks(self) -> None:
        assert parse_origins(" https://a.example ,, https://b.example, ") == [
            "https://a.example",
            "https://b.example",
        ]

    def test_truncate_long_secret(self) -> None:
        assert truncate_secret("glpat-abcdefghijklmnop") == "glpa...mnop"

    def test_truncate_short_secret(self) -> None:
        assert truncate_secret("abcdef") == "ab...ef"

    def test_truncate_empty_secret(self) -> None:
        assert truncate_secret("") == "(not set)"


class TestConfigureLogging:
    """Tests for configure_logging()."""

    def test_installs_rich_handler(self) -> None:
        configure_logging("debug", console=Console(quiet=True))
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert any(isinstance(handler, RichHandler) for handler in root.handlers)

    def test_rejects_unknown_level(self) -> None:
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging("verbose")
