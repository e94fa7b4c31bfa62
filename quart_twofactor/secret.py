"""Base32 encoding of the shared secret and its encryption at rest."""

from __future__ import annotations

import base64
import binascii
import secrets

from .errors import (
    DecryptError,
    InsufficientEntropy,
    InvalidSecretEncoding,
    SecretDecryptionFailed,
)


def encode(raw: bytes) -> str:
    """Return the canonical textual form: upper-case base32, no padding."""
    return base64.b32encode(raw).decode("ascii").rstrip("=")


def decode(text: str) -> bytes:
    """Decode base32 text in any case, with or without padding."""
    if not isinstance(text, str) or not text.strip("="):
        raise InvalidSecretEncoding("Secret must be a non-empty base32 string")

    value = text.rstrip("=").upper()
    padding = "=" * (-len(value) % 8)
    try:
        return base64.b32decode(f"{value}{padding}")
    except (binascii.Error, ValueError) as exc:
        raise InvalidSecretEncoding("Secret is not valid base32") from exc


def generate_random_secret(length: int, random_bytes=secrets.token_bytes) -> str:
    try:
        raw = random_bytes(length)
    except (OSError, NotImplementedError) as exc:
        raise InsufficientEntropy("Random source failed") from exc

    if raw is None or len(raw) != length:
        raise InsufficientEntropy(f"Random source did not return {length} bytes")
    return encode(raw)


class SecretCodec:
    """Moves the shared secret between its canonical and stored forms."""

    def __init__(self, encrypter=None):
        self.encrypter = encrypter

    def _require_encrypter(self):
        if self.encrypter is None:
            raise RuntimeError("An encrypter is required for encrypted secrets")
        return self.encrypter

    def dump(self, text: str, encrypted: bool) -> str:
        raw = decode(text)
        if encrypted:
            return self._require_encrypter().encrypt(raw)
        return encode(raw)

    def load(self, stored: str, encrypted: bool) -> str:
        if not encrypted:
            return encode(decode(stored))

        try:
            raw = self._require_encrypter().decrypt(stored)
        except DecryptError as exc:
            raise SecretDecryptionFailed("Shared secret could not be decrypted") from exc
        return encode(raw)
