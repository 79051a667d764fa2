"""HTTP routes for the OAuth relay.

This module defines the relay's endpoints. Each request is handled
independently; the only shared state is the read-only RelayConfig and the
HTTP client factory stored on the app.

Endpoints:
- GET /: Liveness check
- GET /authorize: Redirect to the GitLab authorization page
- GET /authorized: OAuth callback, exchanges the code for an access token
- POST /token: Decode an encrypted session into the access token
- GET /avatar/{username}: Proxy a user's avatar using the service token
- POST /projects/{project_id}/issues: Create an issue using the service token

Usage:
    from utterances.relay.routes import register_routes

    register_routes(app)
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qsl, urlencode

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse, Response
from pydantic import ValidationError

from utterances.auth.state_codec import (
    SESSION_LIFETIME_MS,
    StateError,
    decode_state,
    encode_state,
    now_ms,
)
from utterances.core.config import OAUTH_SCOPES, RelayConfig
from utterances.relay.models import CreateIssueRequest, ErrorResponse, TokenRequest

logger = logging.getLogger(__name__)

DEFAULT_UPSTREAM_TIMEOUT = 30.0

# Fixed anti-replay value sent with the authorization request
OAUTH_STATE = "STATE"

# Query parameter carrying the encrypted session back to the frontend
SESSION_PARAM = "utterances"

HttpClientFactory = Callable[[], httpx.AsyncClient]


# =============================================================================
# Exceptions
# =============================================================================


class UpstreamError(Exception):
    """GitLab returned an error or could not be reached.

    The status code and body are kept for logging only and are never
    returned to the browser.

    Attributes:
        status_code: Upstream HTTP status code if available.
        response_body: Upstream response body if available.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_body = response_body

    def __str__(self) -> str:
        parts = [self.message]
        if self.status_code:
            parts.append(f"status={self.status_code}")
        if self.response_body:
            parts.append(f"body={self.response_body[:200]}")
        return " ".join(parts)


# =============================================================================
# Helper Functions
# =============================================================================


def default_http_client_factory() -> httpx.AsyncClient:
    """Create the HTTP client used for upstream GitLab calls."""
    return httpx.AsyncClient(timeout=DEFAULT_UPSTREAM_TIMEOUT)


def _get_config(request: Request) -> RelayConfig:
    config: RelayConfig = request.app.state.config
    return config


def _get_client_factory(request: Request) -> HttpClientFactory:
    factory: HttpClientFactory = getattr(
        request.app.state, "http_client_factory", default_http_client_factory
    )
    return factory


def build_authorize_url(config: RelayConfig, relay_base: str) -> str:
    """Build the GitLab authorization URL.

    Args:
        config: Relay configuration.
        relay_base: Scheme and host of the incoming request.

    Returns:
        The authorization URL the browser is redirected to.
    """
    params = {
        "client_id": config.client_id,
        "redirect_uri": f"{relay_base}/authorized",
        "response_type": "code",
        "state": OAUTH_STATE,
        "scope": OAUTH_SCOPES,
    }
    return f"{config.authorize_url}?{urlencode(params)}"


def build_frontend_redirect(frontend_url: str, session: str) -> str:
    """Attach the encrypted session to the frontend entry point URL."""
    url = httpx.URL(frontend_url).copy_merge_params({SESSION_PARAM: session})
    return str(url)


async def _read_body(request: Request) -> dict[str, Any]:
    """Read a JSON or form-encoded request body into a dict.

    Returns an empty dict when the body is missing or cannot be parsed.
    """
    content_type = request.headers.get("content-type", "")
    raw = await request.body()
    if not raw:
        return {}
    try:
        if content_type.startswith("application/x-www-form-urlencoded"):
            return dict(parse_qsl(raw.decode("utf-8")))
        data = json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


async def exchange_code(config: RelayConfig, client: httpx.AsyncClient, code: str) -> str:
    """Exchange an authorization code for an access token.

    Args:
        config: Relay configuration.
        client: HTTP client for the upstream call.
        code: The authorization code from the callback.

    Returns:
        The access token.

    Raises:
        UpstreamError: If GitLab does not answer 200 with an access token.
    """
    params = {
        "client_id": config.client_id,
        "client_secret": config.client_secret,
        "code": code,
        "grant_type": "authorization_code",
        "redirect_uri": config.callback_redirect_uri,
    }
    try:
        response = await client.post(
            config.token_url,
            data=params,
            headers={"Accept": "application/json"},
        )
    except httpx.RequestError as e:
        raise UpstreamError(f"Token request failed: {e}") from e

    if response.status_code != 200:
        raise UpstreamError(
            f"Access token response had status {response.status_code}.",
            status_code=response.status_code,
            response_body=response.text,
        )

    try:
        access_token = response.json()["access_token"]
    except (ValueError, KeyError, TypeError) as e:
        raise UpstreamError(
            "Access token response is missing 'access_token'",
            status_code=response.status_code,
            response_body=response.text,
        ) from e

    if not isinstance(access_token, str) or not access_token:
        raise UpstreamError("Access token response contains an empty token")
    return access_token


async def fetch_avatar(
    config: RelayConfig, client: httpx.AsyncClient, username: str
) -> tuple[bytes, str]:
    """Fetch a user's avatar image through the service account.

    Args:
        config: Relay configuration.
        client: HTTP client for the upstream calls.
        username: The user whose avatar is requested.

    Returns:
        Tuple of (image bytes, content type).

    Raises:
        UpstreamError: If either upstream call fails.
    """
    try:
        lookup = await client.get(
            f"{config.api_base}/avatar",
            params={"email": f"{username}@{config.avatar_email_domain}"},
            headers={"PRIVATE-TOKEN": config.service_token, "Accept": "application/json"},
        )
        if lookup.status_code != 200:
            raise UpstreamError(
                "Avatar lookup failed",
                status_code=lookup.status_code,
                response_body=lookup.text,
            )
        avatar_url = lookup.json()["avatar_url"]
        image = await client.get(avatar_url)
    except httpx.RequestError as e:
        raise UpstreamError(f"Avatar request failed: {e}") from e
    except (ValueError, KeyError, TypeError) as e:
        raise UpstreamError("Avatar lookup returned no avatar_url") from e

    if image.status_code != 200:
        raise UpstreamError("Avatar download failed", status_code=image.status_code)
    return image.content, image.headers.get("content-type", "image/png")


async def create_issue(
    config: RelayConfig,
    client: httpx.AsyncClient,
    project_id: str,
    issue: CreateIssueRequest,
) -> tuple[int, Any]:
    """Create an issue through the service account.

    Returns:
        Tuple of (upstream status code, upstream JSON body).

    Raises:
        UpstreamError: On transport failure or a non-2xx upstream status.
    """
    try:
        response = await client.post(
            f"{config.api_base}/projects/{project_id}/issues",
            json=issue.upstream_payload(),
            headers={"PRIVATE-TOKEN": config.service_token},
        )
    except httpx.RequestError as e:
        raise UpstreamError(f"Issue request failed: {e}") from e

    if not 200 <= response.status_code < 300:
        raise UpstreamError(
            "Issue creation failed",
            status_code=response.status_code,
            response_body=response.text,
        )

    try:
        body = response.json()
    except ValueError as e:
        raise UpstreamError("Issue response is not valid JSON") from e
    return response.status_code, body


# =============================================================================
# OAuth Router (authorize, authorized, token)
# =============================================================================


def create_oauth_router() -> APIRouter:
    """Create router for the OAuth code exchange endpoints.

    Returns:
        APIRouter configured with /authorize, /authorized and /token.
    """
    router = APIRouter(tags=["OAuth"])

    @router.get(
        "/authorize",
        status_code=302,
        responses={400: {"model": ErrorResponse, "description": "redirect_uri missing"}},
        summary="Start OAuth authorization",
    )
    async def authorize(request: Request, redirect_uri: str | None = None) -> Response:
        """Redirect the browser to the GitLab authorization page.

        The redirect_uri sent to GitLab is the relay's own /authorized
        endpoint, built from the incoming request's scheme and host.
        """
        if not redirect_uri:
            return PlainTextResponse('"redirect_uri" is required.', status_code=400)

        config = _get_config(request)
        relay_base = f"{request.url.scheme}://{request.url.netloc}"
        return RedirectResponse(build_authorize_url(config, relay_base), status_code=302)

    @router.get(
        "/authorized",
        status_code=302,
        responses={
            400: {"model": ErrorResponse, "description": "code missing"},
            500: {"model": ErrorResponse, "description": "Token exchange failed"},
        },
        summary="OAuth callback",
    )
    async def authorized(request: Request, code: str | None = None) -> Response:
        """Exchange the authorization code and redirect to the frontend.

        The access token is wrapped in an encrypted session valid for one
        year and attached to the frontend URL as the `utterances` parameter.
        """
        if not code:
            return PlainTextResponse('"code" is required.', status_code=400)

        config = _get_config(request)
        try:
            async with _get_client_factory(request)() as client:
                access_token = await exchange_code(config, client, code)
        except UpstreamError as e:
            logger.error(f"Error fetching access token: {e}")
            return PlainTextResponse("Unable to load token from GitLab.", status_code=500)

        logger.info("Received access token from GitLab")
        session = encode_state(
            access_token, config.state_password, now_ms() + SESSION_LIFETIME_MS
        )
        return RedirectResponse(
            build_frontend_redirect(config.frontend_url, session), status_code=302
        )

    @router.post(
        "/token",
        responses={400: {"model": ErrorResponse, "description": "Missing or bad session"}},
        summary="Decode session",
    )
    async def token(request: Request) -> Response:
        """Decode an encrypted session and return the access token as JSON."""
        try:
            body = TokenRequest.model_validate(await _read_body(request))
        except ValidationError:
            body = TokenRequest()

        if not body.session:
            return PlainTextResponse("Unable to parse body", status_code=400)

        config = _get_config(request)
        try:
            access_token = decode_state(body.session, config.state_password)
        except StateError as e:
            logger.info(f"Rejected session: {e}")
            return PlainTextResponse(str(e), status_code=400)

        return JSONResponse(access_token)

    return router


# =============================================================================
# Proxy Router (avatar, issue creation)
# =============================================================================


def create_proxy_router() -> APIRouter:
    """Create router for endpoints using the service credential.

    Returns:
        APIRouter configured with the avatar and issue creation proxies.
    """
    router = APIRouter(tags=["Proxy"])

    @router.get(
        "/avatar/{username}",
        responses={500: {"model": ErrorResponse, "description": "Upstream failure"}},
        summary="Proxy avatar",
    )
    async def avatar(request: Request, username: str) -> Response:
        """Return the avatar image of the requested user."""
        config = _get_config(request)
        try:
            async with _get_client_factory(request)() as client:
                content, content_type = await fetch_avatar(config, client, username)
        except UpstreamError as e:
            logger.error(f"Error fetching avatar for {username}: {e}")
            return PlainTextResponse("Unable to fetch avatar from GitLab.", status_code=500)

        return Response(content=content, media_type=content_type)

    @router.post(
        "/projects/{project_id}/issues",
        responses={
            400: {"model": ErrorResponse, "description": "title or description missing"},
            500: {"model": ErrorResponse, "description": "Upstream failure"},
        },
        summary="Create issue",
    )
    async def create_project_issue(request: Request, project_id: str) -> Response:
        """Create an issue in the given project and mirror GitLab's response."""
        try:
            issue = CreateIssueRequest.model_validate(await _read_body(request))
        except ValidationError:
            issue = CreateIssueRequest()

        if not issue.title or not issue.description:
            return PlainTextResponse("Title and description are required.", status_code=400)

        config = _get_config(request)
        try:
            async with _get_client_factory(request)() as client:
                status_code, body = await create_issue(config, client, project_id, issue)
        except UpstreamError as e:
            logger.error(f"Error creating issue in project {project_id}: {e}")
            return PlainTextResponse("Unable to create issue in GitLab.", status_code=500)

        return JSONResponse(body, status_code=status_code)

    return router


# =============================================================================
# Route Registration
# =============================================================================


def register_routes(app: FastAPI) -> None:
    """Register all relay routes with the app."""

    @app.get("/", response_class=PlainTextResponse, tags=["General"], summary="Liveness")
    async def root() -> str:
        """Report that the relay is running."""
        return "alive"

    app.include_router(create_oauth_router())
    app.include_router(create_proxy_router())
    logger.debug("Registered relay routes")
