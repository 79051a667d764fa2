"""Shared fixtures for relay tests.

Provides:
- A factory building a TestClient whose upstream GitLab calls are served
  by an httpx.MockTransport handler
- A default handler that fails any unexpected upstream call
"""

from collections.abc import Callable, Generator

import httpx
import pytest
from fastapi.testclient import TestClient

from utterances.core.config import RelayConfig
from utterances.relay.server import create_app

Handler = Callable[[httpx.Request], httpx.Response]


def _unexpected(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"Unexpected upstream request: {request.method} {request.url}")


@pytest.fixture
def upstream_requests() -> list[httpx.Request]:
    """Collect the upstream requests made by the relay."""
    return []


@pytest.fixture
def make_client(
    relay_config: RelayConfig, upstream_requests: list[httpx.Request]
) -> Generator[Callable[[Handler], TestClient], None, None]:
    """Provide a factory creating a relay TestClient for an upstream handler."""
    clients: list[TestClient] = []

    def factory(handler: Handler = _unexpected) -> TestClient:
        def recording(request: httpx.Request) -> httpx.Response:
            upstream_requests.append(request)
            return handler(request)

        app = create_app(
            config=relay_config,
            http_client_factory=lambda: httpx.AsyncClient(transport=httpx.MockTransport(recording)),
        )
        client = TestClient(app, follow_redirects=False)
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.close()


@pytest.fixture
def client(make_client: Callable[[Handler], TestClient]) -> TestClient:
    """Provide a relay TestClient that rejects all upstream calls."""
    return make_client(_unexpected)
