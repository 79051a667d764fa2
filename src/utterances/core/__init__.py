"""Core configuration and logging for Utterances."""

from utterances.core.config import ConfigError, RelayConfig, load_config

__all__ = ["ConfigError", "RelayConfig", "load_config"]
