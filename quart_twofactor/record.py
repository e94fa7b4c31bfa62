"""The authentication record: secret, code parameters and auxiliary state."""

from __future__ import annotations

import hmac
import logging
from datetime import datetime, timezone

from . import secret as secret_codec
from . import totp
from .devices import SafeDeviceManager
from .errors import InvalidCodeFormat, TwoFactorStateError
from .recovery import RecoveryCodeManager
from .settings import TotpConfig

logger = logging.getLogger(__name__)


def _aware(value: datetime | None) -> datetime | None:
    # Some backends (sqlite) drop tzinfo on the way back.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AuthenticationRecord:
    """Aggregate for one principal's two-factor state.

    A record starts out provisioned (secret present, ``enabled_at`` unset),
    becomes enabled once the owner proves possession of the secret, and goes
    back to provisioned with a brand-new secret on :meth:`flush`.
    """

    def __init__(
        self,
        owner_id,
        shared_secret: str,
        config: TotpConfig | None = None,
        encrypted: bool = False,
        recovery_codes: RecoveryCodeManager | None = None,
        safe_devices: SafeDeviceManager | None = None,
        enabled_at: datetime | None = None,
        last_used_step: int | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.owner_id = owner_id
        self.shared_secret = secret_codec.encode(secret_codec.decode(shared_secret))
        self.config = config or TotpConfig()
        self.encrypted = encrypted
        self.recovery_codes = recovery_codes or RecoveryCodeManager()
        self.safe_devices = safe_devices or SafeDeviceManager()
        self.enabled_at = enabled_at
        self.last_used_step = last_used_step
        self.created_at = created_at
        self.updated_at = updated_at

    def __repr__(self):
        state = "enabled" if self.is_enabled() else "provisioned"
        return f"<AuthenticationRecord owner_id={self.owner_id!r} {state}>"

    @classmethod
    def create(cls, owner_id, settings, now: datetime, random_bytes=None):
        kwargs = {} if random_bytes is None else {"random_bytes": random_bytes}
        return cls(
            owner_id=owner_id,
            shared_secret=secret_codec.generate_random_secret(
                settings.secret_length, **kwargs
            ),
            config=settings.totp,
            encrypted=settings.encrypted,
            created_at=now,
            updated_at=now,
        )

    @property
    def raw_secret(self) -> bytes:
        return secret_codec.decode(self.shared_secret)

    @property
    def recovery_codes_generated_at(self) -> datetime | None:
        return self.recovery_codes.generated_at

    # Lifecycle

    def is_enabled(self) -> bool:
        return self.enabled_at is not None

    def is_disabled(self) -> bool:
        return not self.is_enabled()

    def enable(self, now: datetime) -> None:
        if self.is_enabled():
            raise TwoFactorStateError("Two-factor authentication is already enabled")
        self.enabled_at = now

    def confirm(self, code, at: datetime) -> bool:
        """Enable the record if ``code`` proves possession of the secret."""
        if self.is_enabled():
            raise TwoFactorStateError("Two-factor authentication is already enabled")
        if not self.validate_code(code, at):
            return False
        self.enable(at)
        return True

    def flush(self, settings, now: datetime, random_bytes=None) -> None:
        """Wipe everything and start over from a fresh secret and config."""
        kwargs = {} if random_bytes is None else {"random_bytes": random_bytes}
        previous = self.shared_secret
        fresh = secret_codec.generate_random_secret(settings.secret_length, **kwargs)
        while hmac.compare_digest(fresh, previous):
            fresh = secret_codec.generate_random_secret(settings.secret_length, **kwargs)

        self.shared_secret = fresh
        self.config = settings.totp
        self.encrypted = settings.encrypted
        self.recovery_codes.clear()
        self.safe_devices.forget_all()
        self.enabled_at = None
        self.last_used_step = None
        self.updated_at = now
        logger.info("Flushed two-factor state for owner %s", self.owner_id)

    # Codes

    def make_code(self, at: datetime, offset: int = 0) -> str:
        return totp.make_code(self.shared_secret, self.config, at, offset)

    def check_code(self, code, at: datetime) -> totp.TotpMatch:
        """Verify without swallowing format errors; records the matched step."""
        match = totp.verify(
            self.shared_secret, self.config, code, at, self.last_used_step
        )
        if match:
            self.last_used_step = match.step
        return match

    def validate_code(self, code, at: datetime) -> bool:
        try:
            return bool(self.check_code(code, at))
        except InvalidCodeFormat:
            logger.debug("Rejected malformed code for owner %s", self.owner_id)
            return False

    def rejection_reason(self, code, at: datetime) -> str:
        try:
            totp.check_format(code, self.config.digits)
        except InvalidCodeFormat:
            return "invalid_format"
        if totp.is_replay(self.shared_secret, self.config, code, at, self.last_used_step):
            return "replay"
        return "mismatch"

    def to_uri(self, label: str, issuer: str) -> str:
        return totp.get_totp_uri(self.shared_secret, self.config, label, issuer)

    def to_qr(self, label: str, issuer: str) -> str:
        return totp.generate_qr_code(self.to_uri(label, issuer))

    # Recovery codes

    def generate_recovery_codes(self, settings, now: datetime) -> list[str]:
        return self.recovery_codes.generate(
            settings.recovery_codes_n, settings.recovery_codes_length, now
        )

    def use_recovery_code(self, code, now: datetime) -> bool:
        return self.recovery_codes.verify_and_consume(code, now)

    def has_unused_recovery_codes(self) -> bool:
        return self.recovery_codes.has_unused()

    # Safe devices

    def add_safe_device(self, fingerprint: str, settings, now: datetime, ip=None):
        self.safe_devices.max_devices = settings.safe_devices_max
        return self.safe_devices.trust(
            fingerprint, now, settings.safe_device_lifetime, ip=ip
        )

    def is_safe_device(self, fingerprint, now: datetime) -> bool:
        return self.safe_devices.is_trusted(fingerprint, now)

    def forget_safe_device(self, fingerprint: str) -> None:
        self.safe_devices.forget(fingerprint)

    # Persistence

    def to_row(self, codec) -> dict:
        """Flatten into the persisted layout, encrypting where configured."""
        return {
            "owner_id": self.owner_id,
            "shared_secret": codec.dump(self.shared_secret, self.encrypted),
            "digits": self.config.digits,
            "seconds": self.config.seconds,
            "window": self.config.window,
            "algorithm": self.config.algorithm,
            "encrypted": self.encrypted,
            "recovery_codes": self.recovery_codes.dump(codec.encrypter, self.encrypted),
            "recovery_codes_generated_at": self.recovery_codes.generated_at,
            "safe_devices": self.safe_devices.dump(),
            "enabled_at": self.enabled_at,
            "last_used_step": self.last_used_step,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_row(cls, row, codec) -> "AuthenticationRecord":
        encrypted = bool(row.get("encrypted"))
        return cls(
            owner_id=row["owner_id"],
            shared_secret=codec.load(row["shared_secret"], encrypted),
            config=TotpConfig(
                digits=row["digits"],
                seconds=row["seconds"],
                window=row["window"],
                algorithm=row["algorithm"],
            ),
            encrypted=encrypted,
            recovery_codes=RecoveryCodeManager.load(
                row.get("recovery_codes"),
                codec.encrypter,
                encrypted,
                generated_at=_aware(row.get("recovery_codes_generated_at")),
            ),
            safe_devices=SafeDeviceManager.load(row.get("safe_devices")),
            enabled_at=_aware(row.get("enabled_at")),
            last_used_step=row.get("last_used_step"),
            created_at=_aware(row.get("created_at")),
            updated_at=_aware(row.get("updated_at")),
        )
