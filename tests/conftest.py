"""Pytest configuration and fixtures for utterances tests."""

import pytest

from utterances.core.config import RelayConfig

STATE_PASSWORD = "test-state-password"

# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def relay_env() -> dict[str, str]:
    """Provide a complete set of relay environment variables."""
    return {
        "UTTERANCES_CLIENT_ID": "test-client-id",
        "UTTERANCES_CLIENT_SECRET": "test-client-secret",
        "UTTERANCES_CALLBACK_URL": "https://relay.example.com",
        "UTTERANCES_STATE_PASSWORD": STATE_PASSWORD,
        "UTTERANCES_ACCESS_TOKEN": "service-token-1234567890",
        "UTTERANCES_GITLAB_URL": "https://gitlab.example.com",
        "UTTERANCES_FRONTEND_URL": "https://docs.example.com/index.html",
        "UTTERANCES_ALLOWED_ORIGINS": "https://docs.example.com,https://blog.example.com",
    }


@pytest.fixture
def relay_config() -> RelayConfig:
    """Provide a relay configuration pointing at a fake GitLab."""
    return RelayConfig(
        client_id="test-client-id",
        client_secret="test-client-secret",
        callback_url="https://relay.example.com",
        state_password=STATE_PASSWORD,
        service_token="service-token-1234567890",
        gitlab_url="https://gitlab.example.com",
        frontend_url="https://docs.example.com/index.html",
        allowed_origins=["https://docs.example.com", "https://blog.example.com"],
    )
