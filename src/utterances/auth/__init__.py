"""Session state module for the Utterances relay.

This module provides authenticated encryption of session payloads. The relay
uses it to hand the browser a self-contained token after the OAuth code
exchange and to decode that token again at the /token endpoint.

Usage:
    from utterances.auth import encode_state, decode_state

    state = encode_state("access-token", password, expires_at)
    token = decode_state(state, password)

Example:
    >>> from utterances.auth import encrypt, decrypt
    >>> decrypt(encrypt("hello", "pw"), "pw")
    'hello'
"""

from utterances.auth.state_codec import (
    DEFAULT_VALIDITY_MS,
    SESSION_LIFETIME_MS,
    AuthenticationError,
    ExpiredStateError,
    InputError,
    InvalidStateError,
    StateError,
    decode_state,
    decrypt,
    encode_state,
    encrypt,
    now_ms,
    try_decode_state,
)

__all__ = [
    # Constants
    "DEFAULT_VALIDITY_MS",
    "SESSION_LIFETIME_MS",
    # Functions
    "encrypt",
    "decrypt",
    "encode_state",
    "decode_state",
    "try_decode_state",
    "now_ms",
    # Exceptions
    "InputError",
    "AuthenticationError",
    "StateError",
    "InvalidStateError",
    "ExpiredStateError",
]
