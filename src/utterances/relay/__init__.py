"""Stateless OAuth relay for the Utterances widget.

The relay performs the GitLab OAuth code exchange, hands the browser an
encrypted session, and decodes that session back into an access token.

Usage:
    from utterances.relay import create_app

    app = create_app(config)
"""

from utterances.relay.routes import UpstreamError, register_routes
from utterances.relay.server import create_app, get_app, run_server

__all__ = [
    "UpstreamError",
    "create_app",
    "get_app",
    "register_routes",
    "run_server",
]
