"""Single-use recovery codes."""

from __future__ import annotations

import hmac
import json
import secrets
from dataclasses import dataclass
from datetime import datetime

from .errors import DecryptError, RecoveryCodesDecryptionFailed

# Upper-case alphanumerics without 0/O, 1/I/L.
ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"


@dataclass
class RecoveryCode:
    code: str
    used_at: datetime | None = None

    @property
    def is_used(self) -> bool:
        return self.used_at is not None

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "used_at": self.used_at.isoformat() if self.used_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RecoveryCode":
        used_at = data.get("used_at")
        return cls(
            code=data["code"],
            used_at=datetime.fromisoformat(used_at) if used_at else None,
        )


def generate_recovery_code(length: int) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


class RecoveryCodeManager:
    """Holds a batch of recovery codes; used entries are kept, never deleted."""

    def __init__(self, codes=None, generated_at: datetime | None = None):
        self.codes: list[RecoveryCode] = list(codes or [])
        self.generated_at = generated_at

    def __len__(self):
        return len(self.codes)

    def generate(self, count: int, length: int, now: datetime) -> list[str]:
        if count < 1:
            raise ValueError("count must be at least 1")
        if length < 4:
            raise ValueError("length must be at least 4")
        if count > len(ALPHABET) ** length:
            raise ValueError(f"Cannot generate {count} unique codes of length {length}")

        batch: list[str] = []
        seen: set[str] = set()
        while len(batch) < count:
            code = generate_recovery_code(length)
            if code in seen:
                continue
            seen.add(code)
            batch.append(code)

        self.codes = [RecoveryCode(code) for code in batch]
        self.generated_at = now
        return list(batch)

    def verify_and_consume(self, code, now: datetime) -> bool:
        if not isinstance(code, str) or not code:
            return False

        submitted = code.encode("utf-8")
        match = None
        # Scan every unused entry so timing does not reveal the match position.
        for entry in self.codes:
            if entry.is_used:
                continue
            if hmac.compare_digest(entry.code.encode("utf-8"), submitted) and match is None:
                match = entry

        if match is None:
            return False
        match.used_at = now
        return True

    def has_unused(self) -> bool:
        return any(not entry.is_used for entry in self.codes)

    def unused(self) -> list[str]:
        return [entry.code for entry in self.codes if not entry.is_used]

    def clear(self) -> None:
        self.codes = []
        self.generated_at = None

    def dump(self, encrypter=None, encrypted: bool = False) -> str | None:
        """Serialise the whole collection as one JSON blob, encrypted if asked."""
        if not self.codes:
            return None

        payload = json.dumps([entry.to_dict() for entry in self.codes])
        if not encrypted:
            return payload
        if encrypter is None:
            raise RuntimeError("An encrypter is required for encrypted recovery codes")
        return encrypter.encrypt(payload.encode("utf-8"))

    @classmethod
    def load(
        cls,
        stored: str | None,
        encrypter=None,
        encrypted: bool = False,
        generated_at: datetime | None = None,
    ) -> "RecoveryCodeManager":
        if stored is None:
            return cls(generated_at=generated_at)

        if encrypted:
            if encrypter is None:
                raise RuntimeError(
                    "An encrypter is required for encrypted recovery codes"
                )
            try:
                stored = encrypter.decrypt(stored).decode("utf-8")
            except (DecryptError, UnicodeDecodeError) as exc:
                raise RecoveryCodesDecryptionFailed(
                    "Recovery codes could not be decrypted"
                ) from exc

        try:
            items = json.loads(stored)
            if not isinstance(items, list) or not all(
                isinstance(item, dict) for item in items
            ):
                raise TypeError("Recovery codes must be a list of objects")
            codes = [RecoveryCode.from_dict(item) for item in items]
        except (TypeError, ValueError, KeyError) as exc:
            raise RecoveryCodesDecryptionFailed(
                "Recovery codes are not a valid collection"
            ) from exc
        return cls(codes, generated_at=generated_at)
