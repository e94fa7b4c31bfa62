import datetime

import pytest

from conftest import at
from quart_twofactor import (
    SafeDeviceManager,
    SafeDevicesDecodeFailed,
    generate_device_token,
)

HOUR = datetime.timedelta(hours=1)


def test_trusted_strictly_before_expiry():
    manager = SafeDeviceManager()
    now = at(1_700_000_000)
    device = manager.trust("device-1", now, HOUR, ip="127.0.0.1")

    assert device.expires_at > device.trusted_at
    assert manager.is_trusted("device-1", now)
    assert manager.is_trusted("device-1", now + HOUR - datetime.timedelta(seconds=1))
    assert not manager.is_trusted("device-1", now + HOUR)
    assert not manager.is_trusted("device-1", now + 2 * HOUR)


def test_unknown_device_is_not_trusted():
    manager = SafeDeviceManager()
    assert not manager.is_trusted("missing", at(0))
    assert not manager.is_trusted(None, at(0))


def test_trust_refreshes_existing_entry():
    manager = SafeDeviceManager()
    manager.trust("device-1", at(0), HOUR)
    manager.trust("device-1", at(3000), HOUR)

    assert len(manager) == 1
    assert manager.is_trusted("device-1", at(3600 + 60))


@pytest.mark.parametrize("ttl", [datetime.timedelta(0), -HOUR])
def test_trust_requires_positive_ttl(ttl):
    with pytest.raises(ValueError):
        SafeDeviceManager().trust("device-1", at(0), ttl)


def test_overflow_evicts_oldest_devices():
    manager = SafeDeviceManager(max_devices=2)
    manager.trust("first", at(0), HOUR)
    manager.trust("second", at(10), HOUR)
    manager.trust("third", at(20), HOUR)

    assert "first" not in manager
    assert "second" in manager
    assert "third" in manager


def test_forget_and_forget_all():
    manager = SafeDeviceManager()
    manager.trust("device-1", at(0), HOUR)
    manager.trust("device-2", at(0), HOUR)

    manager.forget("device-1")
    manager.forget("never-trusted")
    assert not manager.is_trusted("device-1", at(1))
    assert manager.is_trusted("device-2", at(1))

    manager.forget_all()
    assert len(manager) == 0


def test_purge_expired_removes_only_stale_entries():
    manager = SafeDeviceManager()
    manager.trust("stale", at(0), HOUR)
    manager.trust("fresh", at(3000), HOUR)

    assert manager.purge_expired(at(3600)) == 1
    assert "stale" not in manager
    assert "fresh" in manager


def test_dump_and_load_preserve_entries():
    manager = SafeDeviceManager()
    manager.trust("device-1", at(0), HOUR, ip="10.0.0.1")

    loaded = SafeDeviceManager.load(manager.dump(), max_devices=3)

    assert loaded.devices == manager.devices
    assert loaded.max_devices == 3
    assert SafeDeviceManager().dump() is None
    assert len(SafeDeviceManager.load(None)) == 0


def test_generate_device_token_is_random():
    assert generate_device_token() != generate_device_token()


@pytest.mark.parametrize(
    "stored",
    [
        "not json",
        '["x"]',
        '{"device-1": 1}',
        '{"device-1": {"trusted_at": "2024-01-01T00:00:00+00:00"}}',
        '{"device-1": {"trusted_at": "garbage", "expires_at": "garbage"}}',
    ],
)
def test_load_rejects_corrupted_storage(stored):
    with pytest.raises(SafeDevicesDecodeFailed):
        SafeDeviceManager.load(stored)
