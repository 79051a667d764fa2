"""Session token handling for the widget.

The relay redirects the browser back with an encrypted session in the
`utterances` query parameter. load_token() exchanges that session for the
GitLab access token at the relay's /token endpoint and keeps it in a
TokenStore shared with the API client.
"""

from __future__ import annotations

import logging

import httpx

from utterances.gitlab.exceptions import TrackerRequestError

logger = logging.getLogger(__name__)


class TokenStore:
    """Holds the current access token, if any."""

    def __init__(self, value: str | None = None) -> None:
        self._value = value or None

    @property
    def value(self) -> str | None:
        return self._value

    @value.setter
    def value(self, token: str | None) -> None:
        self._value = token or None

    def clear(self) -> None:
        """Forget the token so the next use requires logging in again."""
        if self._value is not None:
            logger.info("Clearing access token")
        self._value = None

    def __bool__(self) -> bool:
        return self._value is not None

    def __repr__(self) -> str:
        return f"TokenStore(has_token={self._value is not None})"


async def load_token(
    relay_url: str,
    session: str | None,
    store: TokenStore,
    http_client: httpx.AsyncClient,
) -> str | None:
    """Load the access token, exchanging a session with the relay if needed.

    Args:
        relay_url: Base URL of the OAuth relay.
        session: Encrypted session from the `utterances` query parameter.
        store: Token store to populate.
        http_client: Client used for the relay call.

    Returns:
        The access token, or None if there is none.

    Raises:
        TrackerRequestError: If the relay cannot be reached.
    """
    if store.value:
        return store.value
    if not session:
        return None

    url = f"{relay_url.rstrip('/')}/token"
    try:
        response = await http_client.post(url, json={"session": session})
    except httpx.RequestError as e:
        raise TrackerRequestError(f"Failed to reach relay: {e}", url=url) from e

    if response.status_code != 200:
        logger.warning(f"Failed to load token: {response.status_code} {response.text[:200]}")
        return None

    try:
        token = response.json()
    except ValueError:
        logger.warning("Relay returned a malformed token response")
        return None

    if not isinstance(token, str):
        logger.warning("Relay returned a non-string token")
        return None

    store.value = token
    return store.value
