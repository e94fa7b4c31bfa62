"""Fernet encryption service for secrets and recovery codes at rest."""

from __future__ import annotations

from cryptography.fernet import Fernet, InvalidToken

from .errors import DecryptError


class FernetEncrypter:
    """Symmetric encrypt/decrypt keyed by a process-wide Fernet key."""

    def __init__(self, key: str | bytes):
        if isinstance(key, str):
            key = key.encode("utf-8")
        self._fernet = Fernet(key)

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("utf-8")

    def encrypt(self, plaintext: bytes) -> str:
        return self._fernet.encrypt(plaintext).decode("utf-8")

    def decrypt(self, ciphertext: str) -> bytes:
        try:
            return self._fernet.decrypt(ciphertext.encode("utf-8"))
        except (InvalidToken, UnicodeEncodeError) as exc:
            raise DecryptError("Could not decrypt value") from exc
