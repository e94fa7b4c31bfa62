"""Safe devices that may skip the second factor for a limited time."""

from __future__ import annotations

import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from .errors import SafeDevicesDecodeFailed


@dataclass
class SafeDevice:
    trusted_at: datetime
    expires_at: datetime
    ip: str | None = None

    def to_dict(self) -> dict:
        return {
            "trusted_at": self.trusted_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "ip": self.ip,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SafeDevice":
        return cls(
            trusted_at=datetime.fromisoformat(data["trusted_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
            ip=data.get("ip"),
        )


def generate_device_token() -> str:
    return secrets.token_urlsafe(32)


class SafeDeviceManager:
    def __init__(self, devices=None, max_devices: int | None = None):
        self.devices: dict[str, SafeDevice] = dict(devices or {})
        self.max_devices = max_devices

    def __len__(self):
        return len(self.devices)

    def __contains__(self, fingerprint):
        return fingerprint in self.devices

    def trust(
        self,
        fingerprint: str,
        now: datetime,
        ttl: timedelta,
        ip: str | None = None,
    ) -> SafeDevice:
        if not fingerprint:
            raise ValueError("fingerprint must not be empty")
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")

        device = SafeDevice(trusted_at=now, expires_at=now + ttl, ip=ip)
        self.devices.pop(fingerprint, None)
        self.devices[fingerprint] = device
        self._evict_overflow()
        return device

    def _evict_overflow(self) -> None:
        if self.max_devices is None:
            return
        while len(self.devices) > self.max_devices:
            oldest = min(self.devices, key=lambda key: self.devices[key].trusted_at)
            del self.devices[oldest]

    def is_trusted(self, fingerprint, now: datetime) -> bool:
        device = self.devices.get(fingerprint) if fingerprint else None
        if device is None:
            return False
        return now < device.expires_at

    def forget(self, fingerprint: str) -> None:
        self.devices.pop(fingerprint, None)

    def forget_all(self) -> None:
        self.devices.clear()

    def purge_expired(self, now: datetime) -> int:
        expired = [key for key, device in self.devices.items() if now >= device.expires_at]
        for key in expired:
            del self.devices[key]
        return len(expired)

    def dump(self) -> str | None:
        if not self.devices:
            return None
        return json.dumps({key: device.to_dict() for key, device in self.devices.items()})

    @classmethod
    def load(cls, stored: str | None, max_devices: int | None = None) -> "SafeDeviceManager":
        if not stored:
            return cls(max_devices=max_devices)
        try:
            items = json.loads(stored)
            devices = {
                key: SafeDevice.from_dict(value) for key, value in items.items()
            }
        except (AttributeError, TypeError, ValueError, KeyError) as exc:
            raise SafeDevicesDecodeFailed("Safe devices are not a valid mapping") from exc
        return cls(devices, max_devices=max_devices)
