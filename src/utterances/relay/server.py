"""FastAPI server for the Utterances OAuth relay.

This module provides a FastAPI application factory and server runner for the
stateless relay that turns GitLab OAuth authorization codes into encrypted
session tokens.

Key Features:
- App factory pattern for testability
- Credentialed CORS reflecting the request origin
- Injectable HTTP client factory for upstream GitLab calls
- Lifespan context for startup/shutdown logging

Usage:
    # Create app and run with uvicorn
    from utterances.relay.server import create_app, run_server

    app = create_app()
    # or
    run_server(host="0.0.0.0", port=7000)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from utterances import __version__
from utterances.core.config import RelayConfig, load_config, truncate_secret
from utterances.relay.cors import CORSHeadersMiddleware
from utterances.relay.routes import (
    HttpClientFactory,
    default_http_client_factory,
    register_routes,
)

logger = logging.getLogger(__name__)


def _log_relay_config(config: RelayConfig) -> None:
    """Log relay configuration at startup, with secrets truncated."""
    logger.info("=" * 50)
    logger.info("Relay Configuration:")
    logger.info(f"  GitLab: {config.gitlab_url}")
    logger.info(f"  Callback URL: {config.callback_redirect_uri}")
    logger.info(f"  Frontend URL: {config.frontend_url}")
    logger.info(f"  Allowed Origins: {', '.join(config.allowed_origins) or '(none)'}")
    logger.info(f"  Client ID: {truncate_secret(config.client_id)}")
    logger.info(f"  Service Token: {truncate_secret(config.service_token)}")
    logger.info("=" * 50)


# =============================================================================
# Lifespan Context
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log startup and shutdown of the relay.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the running application.
    """
    logger.info(f"Utterances relay v{__version__} starting up")
    _log_relay_config(app.state.config)

    yield

    logger.info("Utterances relay shutting down")


# =============================================================================
# App Factory
# =============================================================================


def create_app(
    config: RelayConfig | None = None,
    http_client_factory: HttpClientFactory | None = None,
    include_docs: bool = False,
) -> FastAPI:
    """Create and configure the relay application.

    Args:
        config: Relay configuration. Defaults to load_config().
        http_client_factory: Callable returning the httpx.AsyncClient used
            for upstream GitLab calls. Tests inject a mock transport here.
        include_docs: Whether to expose OpenAPI docs.

    Returns:
        Configured FastAPI application instance.

    Raises:
        ConfigError: If config is None and the environment is incomplete.

    Example:
        >>> app = create_app(config)
        >>> # Use with uvicorn: uvicorn.run(app, host="0.0.0.0", port=7000)
    """
    relay_config = config if config is not None else load_config()

    app = FastAPI(
        title="Utterances Relay",
        description="Stateless OAuth relay for the Utterances GitLab comment widget.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if include_docs else None,
        redoc_url=None,
        openapi_url="/openapi.json" if include_docs else None,
    )

    # Read-only after startup
    app.state.config = relay_config
    app.state.http_client_factory = http_client_factory or default_http_client_factory

    app.add_middleware(CORSHeadersMiddleware, allowed_origins=relay_config.allowed_origins)

    register_routes(app)

    logger.debug(f"Relay app created for {relay_config.gitlab_url}")
    return app


# =============================================================================
# Server Runner
# =============================================================================


def run_server(
    host: str | None = None,
    port: int | None = None,
    config: RelayConfig | None = None,
    reload: bool = False,
    log_level: str = "info",
) -> None:
    """Run the relay with uvicorn.

    Args:
        host: Host to bind to. Defaults to the configured host.
        port: Port to bind to. Defaults to the configured port.
        config: Relay configuration. Defaults to load_config().
        reload: Enable auto-reload for development.
        log_level: Uvicorn log level.
    """
    relay_config = config if config is not None else load_config()
    effective_host = host or relay_config.host
    effective_port = port or relay_config.port

    if reload:
        # Reload mode needs an import string; the factory re-reads the environment.
        uvicorn.run(
            "utterances.relay.server:get_app",
            factory=True,
            host=effective_host,
            port=effective_port,
            reload=True,
            log_level=log_level,
        )
    else:
        uvicorn.run(
            create_app(config=relay_config),
            host=effective_host,
            port=effective_port,
            reload=False,
            log_level=log_level,
        )


def get_app(**kwargs: Any) -> FastAPI:
    """Create the app from environment configuration.

    Useful as a uvicorn factory:
        uvicorn utterances.relay.server:get_app --factory
    """
    return create_app(**kwargs)
