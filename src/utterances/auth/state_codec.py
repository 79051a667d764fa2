"""Session state encryption for the OAuth relay.

This module wraps an opaque value (the GitLab access token) together with an
expiry timestamp into a self-contained, tamper-evident string that can travel
through the browser as a query parameter.

Format:
    hex(nonce, 12 bytes) + hex(ciphertext) + hex(tag, 16 bytes), lowercase,
    no separators. The key is the SHA-256 digest of the configured password
    and the cipher is AES-256-GCM.

Security Notes:
    - A fresh random nonce is generated for every call to encrypt()
    - Any modification of nonce, body or tag fails authentication
    - Expired and invalid states raise distinct exceptions
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import time
from typing import Any

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

logger = logging.getLogger(__name__)

NONCE_SIZE = 12
TAG_SIZE = 16
NONCE_HEX_LENGTH = NONCE_SIZE * 2
TAG_HEX_LENGTH = TAG_SIZE * 2

DEFAULT_VALIDITY_MS = 5 * 60 * 1000  # 5 minutes
SESSION_LIFETIME_MS = 365 * 24 * 60 * 60 * 1000  # 1 year

# =============================================================================
# Exceptions
# =============================================================================


class InputError(ValueError):
    """Raised when a required argument is missing or empty."""

    pass


class AuthenticationError(Exception):
    """Raised when a ciphertext cannot be parsed or fails authentication."""

    def __init__(self, message: str = "Unable to authenticate ciphertext") -> None:
        super().__init__(message)


class StateError(Exception):
    """Base exception for session state decoding failures."""

    pass


class InvalidStateError(StateError):
    """Raised when a session state cannot be decrypted or parsed."""

    def __init__(self, message: str = "state is invalid") -> None:
        super().__init__(message)


class ExpiredStateError(StateError):
    """Raised when a session state authenticated but is past its expiry.

    Attributes:
        expires: The expiry timestamp in epoch milliseconds.
    """

    def __init__(self, expires: int | float | None = None, message: str = "state is expired") -> None:
        super().__init__(message)
        self.expires = expires


# =============================================================================
# Encryption
# =============================================================================


def now_ms() -> int:
    """Return the current time in milliseconds since the epoch."""
    return int(time.time() * 1000)


def derive_key(password: str) -> bytes:
    """Derive the 256-bit AES key from a password.

    Args:
        password: The shared state password.

    Returns:
        The SHA-256 digest of the UTF-8 encoded password.
    """
    return hashlib.sha256(password.encode("utf-8")).digest()


def encrypt(plaintext: str, password: str) -> str:
    """Encrypt plaintext with AES-256-GCM.

    Args:
        plaintext: The text to encrypt.
        password: The password the key is derived from.

    Returns:
        Hex string laid out as nonce, body, tag.

    Raises:
        InputError: If plaintext or password is empty.

    Example:
        >>> token = encrypt("secret", "password")
        >>> decrypt(token, "password")
        'secret'
    """
    if not plaintext or not password:
        raise InputError("Plaintext and password are required")

    nonce = os.urandom(NONCE_SIZE)
    sealed = AESGCM(derive_key(password)).encrypt(nonce, plaintext.encode("utf-8"), None)
    # AESGCM appends the tag to the ciphertext
    body, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return nonce.hex() + body.hex() + tag.hex()


def decrypt(ciphertext: str, password: str) -> str:
    """Decrypt a string produced by encrypt().

    Args:
        ciphertext: Hex string laid out as nonce, body, tag.
        password: The password the key is derived from.

    Returns:
        The decrypted plaintext.

    Raises:
        InputError: If ciphertext or password is empty.
        AuthenticationError: If parsing fails or the tag does not verify.
    """
    if not ciphertext or not password:
        raise InputError("Ciphertext and password are required")

    if len(ciphertext) < NONCE_HEX_LENGTH + TAG_HEX_LENGTH:
        raise AuthenticationError("Ciphertext is too short")

    try:
        nonce = bytes.fromhex(ciphertext[:NONCE_HEX_LENGTH])
        body = bytes.fromhex(ciphertext[NONCE_HEX_LENGTH:-TAG_HEX_LENGTH])
        tag = bytes.fromhex(ciphertext[-TAG_HEX_LENGTH:])
    except ValueError as e:
        raise AuthenticationError("Ciphertext is not valid hex") from e

    try:
        plaintext = AESGCM(derive_key(password)).decrypt(nonce, body + tag, None)
    except InvalidTag as e:
        raise AuthenticationError() from e

    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError as e:
        raise AuthenticationError("Plaintext is not valid UTF-8") from e


# =============================================================================
# Session State
# =============================================================================


def encode_state(value: Any, password: str, expires_at: int | None = None) -> str:
    """Serialize and encrypt a value with an expiry.

    Args:
        value: JSON-serializable value to wrap (usually an access token).
        password: The state password.
        expires_at: Absolute expiry in epoch milliseconds. Defaults to
            five minutes from now.

    Returns:
        The encrypted state string.
    """
    if expires_at is None:
        expires_at = now_ms() + DEFAULT_VALIDITY_MS
    state = {"value": value, "expires": expires_at}
    return encrypt(json.dumps(state, separators=(",", ":")), password)


def decode_state(encrypted_state: str, password: str) -> Any:
    """Decrypt a state and return its value if it has not expired.

    Args:
        encrypted_state: String produced by encode_state().
        password: The state password.

    Returns:
        The wrapped value.

    Raises:
        InvalidStateError: If decryption or parsing fails.
        ExpiredStateError: If the state is past its expiry.
    """
    try:
        state = json.loads(decrypt(encrypted_state, password))
        expires = state["expires"]
        value = state["value"]
    except (InputError, AuthenticationError, ValueError, TypeError, KeyError) as e:
        logger.debug(f"Rejected session state: {e}")
        raise InvalidStateError() from e

    if not isinstance(expires, (int, float)) or isinstance(expires, bool):
        raise InvalidStateError()

    if now_ms() > expires:
        raise ExpiredStateError(expires)

    return value


def try_decode_state(encrypted_state: str, password: str) -> Any:
    """Decode a state, returning the StateError instead of raising it.

    Args:
        encrypted_state: String produced by encode_state().
        password: The state password.

    Returns:
        The wrapped value, or the InvalidStateError/ExpiredStateError instance.
    """
    try:
        return decode_state(encrypted_state, password)
    except StateError as e:
        return e
