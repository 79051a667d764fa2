"""CORS middleware for the OAuth relay.

The relay is called from the widget iframe with credentials, so the allowed
origin is reflected from the request instead of being a wildcard.

The middleware:
- Adds CORS headers to every response
- Reflects the request Origin, falling back to the first configured origin
- Short-circuits every OPTIONS request with an empty 200 response

Usage:
    from fastapi import FastAPI
    from utterances.relay.cors import CORSHeadersMiddleware

    app = FastAPI()
    app.add_middleware(CORSHeadersMiddleware, allowed_origins=["https://docs.example.com"])
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

ALLOW_METHODS = "GET, POST, OPTIONS"
ALLOW_HEADERS = (
    "X-Requested-With, X-HTTP-Method-Override, Content-Type, Accept, Authorization, label"
)
MAX_AGE_SECONDS = 86400  # 24 hours


def permitted_origin(request_origin: str | None, allowed_origins: list[str]) -> str:
    """Choose the Access-Control-Allow-Origin value for a request.

    Args:
        request_origin: The request's Origin header, if any.
        allowed_origins: Configured origins; the first is the default.

    Returns:
        The request origin when present, otherwise the default origin.

    Example:
        >>> permitted_origin("https://a.example", ["https://b.example"])
        'https://a.example'
        >>> permitted_origin(None, ["https://b.example"])
        'https://b.example'
    """
    if request_origin:
        return request_origin
    return allowed_origins[0] if allowed_origins else "*"


def cors_headers(request_origin: str | None, allowed_origins: list[str]) -> dict[str, str]:
    """Build the CORS headers added to every relay response."""
    return {
        "Access-Control-Allow-Origin": permitted_origin(request_origin, allowed_origins),
        "Access-Control-Allow-Methods": ALLOW_METHODS,
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Max-Age": str(MAX_AGE_SECONDS),
        "Access-Control-Allow-Headers": ALLOW_HEADERS,
    }


# =============================================================================
# Middleware
# =============================================================================


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware adding credentialed CORS headers to every response."""

    def __init__(self, app: ASGIApp, allowed_origins: list[str] | None = None) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application.
            allowed_origins: Configured origins; the first is the default.
        """
        super().__init__(app)
        self.allowed_origins = list(allowed_origins or [])

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        """Add CORS headers and answer preflight requests directly."""
        headers = cors_headers(request.headers.get("origin"), self.allowed_origins)

        if request.method.upper() == "OPTIONS":
            logger.debug(f"Preflight request for {request.url.path}")
            return Response(status_code=200, headers=headers)

        response = await call_next(request)
        response.headers.update(headers)
        return response
