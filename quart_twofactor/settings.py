"""Settings consumed by the two-factor core."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import timedelta

ALGORITHMS = {
    "sha1": hashlib.sha1,
    "sha256": hashlib.sha256,
    "sha512": hashlib.sha512,
}

DEFAULTS = {
    "SECURITY_TOTP_DIGITS": 6,
    "SECURITY_TOTP_SECONDS": 30,
    "SECURITY_TOTP_WINDOW": 1,
    "SECURITY_TOTP_ALGORITHM": "sha1",
    "SECURITY_TOTP_SECRET_LENGTH": 20,
    "SECURITY_TOTP_ISSUER": "Quart",
    "SECURITY_TWO_FACTOR_ENCRYPTED": False,
    "SECURITY_TWO_FACTOR_ENCRYPTION_KEY": None,
    "SECURITY_MULTI_FACTOR_RECOVERY_CODES": True,
    "SECURITY_MULTI_FACTOR_RECOVERY_CODES_N": 10,
    "SECURITY_MULTI_FACTOR_RECOVERY_CODES_LENGTH": 8,
    "SECURITY_TWO_FACTOR_SAFE_DEVICES": False,
    "SECURITY_TWO_FACTOR_SAFE_DEVICES_MAX": 3,
    "SECURITY_TWO_FACTOR_SAFE_DEVICE_LIFETIME": timedelta(days=14),
}


@dataclass(frozen=True)
class TotpConfig:
    """Code parameters snapshotted onto each authentication record."""

    digits: int = 6
    seconds: int = 30
    window: int = 1
    algorithm: str = "sha1"

    def __post_init__(self):
        # Frozen, so normalise through object.__setattr__.
        object.__setattr__(self, "algorithm", str(self.algorithm).lower())
        if not 6 <= self.digits <= 10:
            raise ValueError("digits must be between 6 and 10")
        if self.seconds <= 0:
            raise ValueError("seconds must be positive")
        if self.window < 0:
            raise ValueError("window must not be negative")
        if self.algorithm not in ALGORITHMS:
            raise ValueError(f"Unsupported TOTP algorithm '{self.algorithm}'")

    @property
    def digest(self):
        return ALGORITHMS[self.algorithm]


@dataclass(frozen=True)
class TwoFactorSettings:
    totp: TotpConfig = field(default_factory=TotpConfig)
    secret_length: int = 20
    issuer: str = "Quart"
    encrypted: bool = False
    recovery_codes_enabled: bool = True
    recovery_codes_n: int = 10
    recovery_codes_length: int = 8
    safe_devices_enabled: bool = False
    safe_devices_max: int = 3
    safe_device_lifetime: timedelta = timedelta(days=14)

    def __post_init__(self):
        if self.secret_length < 10:
            raise ValueError("secret_length must be at least 10 bytes")
        if self.recovery_codes_n < 1:
            raise ValueError("recovery_codes_n must be at least 1")
        if self.recovery_codes_length < 4:
            raise ValueError("recovery_codes_length must be at least 4")
        if self.safe_devices_max < 1:
            raise ValueError("safe_devices_max must be at least 1")
        if self.safe_device_lifetime <= timedelta(0):
            raise ValueError("safe_device_lifetime must be positive")

    @classmethod
    def from_config(cls, config) -> "TwoFactorSettings":
        """Build settings from a ``SECURITY_*`` mapping such as ``app.config``."""

        def get(key):
            return config.get(key, DEFAULTS[key])

        lifetime = get("SECURITY_TWO_FACTOR_SAFE_DEVICE_LIFETIME")
        if not isinstance(lifetime, timedelta):
            lifetime = timedelta(seconds=int(lifetime))

        return cls(
            totp=TotpConfig(
                digits=int(get("SECURITY_TOTP_DIGITS")),
                seconds=int(get("SECURITY_TOTP_SECONDS")),
                window=int(get("SECURITY_TOTP_WINDOW")),
                algorithm=get("SECURITY_TOTP_ALGORITHM"),
            ),
            secret_length=int(get("SECURITY_TOTP_SECRET_LENGTH")),
            issuer=get("SECURITY_TOTP_ISSUER"),
            encrypted=bool(get("SECURITY_TWO_FACTOR_ENCRYPTED")),
            recovery_codes_enabled=bool(get("SECURITY_MULTI_FACTOR_RECOVERY_CODES")),
            recovery_codes_n=int(get("SECURITY_MULTI_FACTOR_RECOVERY_CODES_N")),
            recovery_codes_length=int(
                get("SECURITY_MULTI_FACTOR_RECOVERY_CODES_LENGTH")
            ),
            safe_devices_enabled=bool(get("SECURITY_TWO_FACTOR_SAFE_DEVICES")),
            safe_devices_max=int(get("SECURITY_TWO_FACTOR_SAFE_DEVICES_MAX")),
            safe_device_lifetime=lifetime,
        )
