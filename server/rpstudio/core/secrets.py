"""Sealing of third-party provider API keys at rest.

A sealed key reads ``v1:<base64url(nonce | ciphertext | tag)>``. The owning
user id is bound in as AES-GCM associated data, so a sealed value moved onto
another user's row fails authentication instead of decrypting.
"""

from __future__ import annotations

import base64
import binascii
import secrets

from cryptography.hazmat.primitives.ciphers.aead import AESGCM


SEALED_PREFIX = "v1:"

_NONCE_LEN = 12
_TAG_LEN = 16
_MASTER_KEY_LEN = 32


def _owner_context(user_id: int) -> bytes:
    return f"rpstudio/api-key/v1/user={user_id}".encode("ascii")


class ApiKeyVault:
    """Seals and opens provider keys with one master key."""

    def __init__(self, master_key: bytes) -> None:
        if len(master_key) != _MASTER_KEY_LEN:
            raise ValueError(f"api key master key must be {_MASTER_KEY_LEN} bytes")
        self._aead: AESGCM = AESGCM(master_key)

    def seal(self, plain_key: str, *, user_id: int) -> str:
        key = plain_key.strip()
        if not key:
            raise ValueError("api key must not be blank")
        nonce = secrets.token_bytes(_NONCE_LEN)
        sealed = self._aead.encrypt(nonce, key.encode("utf-8"), _owner_context(user_id))
        body = base64.urlsafe_b64encode(nonce + sealed).decode("ascii").rstrip("=")
        return SEALED_PREFIX + body

    def open(self, sealed_key: str, *, user_id: int) -> str:
        """Raises ``ValueError`` on a malformed value and ``InvalidTag`` on a wrong key or owner."""
        if not sealed_key.startswith(SEALED_PREFIX):
            raise ValueError("unsupported api key encoding")
        body = sealed_key[len(SEALED_PREFIX) :].strip()
        try:
            blob = base64.urlsafe_b64decode(body + "=" * (-len(body) % 4))
        except binascii.Error as exc:
            raise ValueError("api key encoding is not base64url") from exc
        if len(blob) <= _NONCE_LEN + _TAG_LEN:
            raise ValueError("sealed api key is truncated")
        plain = self._aead.decrypt(blob[:_NONCE_LEN], blob[_NONCE_LEN:], _owner_context(user_id))
        return plain.decode("utf-8")


def key_hint(plain_key: str) -> str:
    """Last four characters of a key, for logs and listings; short keys reveal nothing."""
    key = plain_key.strip()
    if len(key) < 12:
        return "..."
    return f"...{key[-4:]}"
