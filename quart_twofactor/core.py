"""Quart extension wiring the two-factor core to config, storage and signals."""

from __future__ import annotations

import datetime
import logging

from .crypto import FernetEncrypter
from .devices import generate_device_token
from .errors import InvalidCodeFormat, RecordNotFound, TwoFactorStateError
from .record import AuthenticationRecord
from .secret import SecretCodec
from .settings import DEFAULTS, TwoFactorSettings
from .signals import (
    code_rejected,
    code_validated,
    recovery_code_used,
    recovery_codes_generated,
    safe_device_forgotten,
    safe_device_trusted,
    two_factor_enabled,
    two_factor_flushed,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class TwoFactor:
    """Quart extension implementing TOTP two-factor authentication."""

    def __init__(self, app=None, datastore=None, **kwargs):
        self.app = None
        self.datastore = datastore
        self.encrypter = kwargs.get("encrypter")
        self.clock = kwargs.get("clock", utcnow)
        self.random_bytes = kwargs.get("random_bytes")
        self.settings: TwoFactorSettings | None = None
        self.codec: SecretCodec | None = None

        if app is not None:
            self.init_app(app, datastore=datastore, **kwargs)

    def init_app(self, app, datastore=None, **kwargs):
        self.app = app
        if datastore is not None:
            self.datastore = datastore
        if self.datastore is None:
            raise RuntimeError("TwoFactor requires a datastore")

        self.encrypter = kwargs.get("encrypter", self.encrypter)
        self.clock = kwargs.get("clock", self.clock)
        self.random_bytes = kwargs.get("random_bytes", self.random_bytes)

        self._load_defaults(app)
        self.settings = TwoFactorSettings.from_config(app.config)

        key = app.config.get("SECURITY_TWO_FACTOR_ENCRYPTION_KEY")
        if self.encrypter is None and key:
            self.encrypter = FernetEncrypter(key)
        if self.settings.encrypted and self.encrypter is None:
            raise RuntimeError(
                "SECURITY_TWO_FACTOR_ENCRYPTED requires an encryption key or encrypter"
            )
        self.codec = SecretCodec(self.encrypter)

        app.extensions["two_factor"] = self
        return self

    @staticmethod
    def _load_defaults(app):
        for key, value in DEFAULTS.items():
            app.config.setdefault(key, value)

    def now(self) -> datetime.datetime:
        return self.clock()

    async def _call(self, method_name, *args):
        method = getattr(self.datastore, method_name)
        return await self.app.ensure_async(method)(*args)

    async def _send(self, signal, **kwargs):
        await signal.send_async(
            self.app, _sync_wrapper=self.app.ensure_async, **kwargs
        )

    # Storage

    async def find(self, owner_id) -> AuthenticationRecord | None:
        row = await self._call("find_record", owner_id)
        if row is None:
            return None
        return AuthenticationRecord.from_row(row, self.codec)

    async def get(self, owner_id) -> AuthenticationRecord:
        record = await self.find(owner_id)
        if record is None:
            raise RecordNotFound(f"No two-factor record for owner {owner_id}")
        return record

    async def save(self, record: AuthenticationRecord) -> None:
        record.updated_at = self.now()
        if record.created_at is None:
            record.created_at = record.updated_at
        await self._call("save", record.to_row(self.codec))
        await self._call("commit")

    async def create(self, owner_id) -> AuthenticationRecord:
        """Provision a record with a fresh secret, replacing any existing one."""
        existing = await self.find(owner_id)
        if existing is not None:
            return await self.flush(owner_id)

        record = AuthenticationRecord.create(
            owner_id, self.settings, self.now(), random_bytes=self.random_bytes
        )
        await self.save(record)
        logger.info("Provisioned two-factor record for owner %s", owner_id)
        return record

    async def delete(self, owner_id) -> bool:
        deleted = await self._call("delete", owner_id)
        await self._call("commit")
        return bool(deleted)

    # Lifecycle

    async def is_required(self, owner_id) -> bool:
        record = await self.find(owner_id)
        return record is not None and record.is_enabled()

    async def confirm(self, owner_id, code) -> bool:
        """Enable two-factor once the owner submits a valid code."""
        record = await self.get(owner_id)
        if record.is_enabled():
            raise TwoFactorStateError("Two-factor authentication is already enabled")

        if not await self._verify(record, code):
            return False

        record.enable(self.now())
        await self.save(record)
        await self._send(two_factor_enabled, owner_id=owner_id)
        logger.info("Enabled two-factor for owner %s", owner_id)
        return True

    async def flush(self, owner_id) -> AuthenticationRecord:
        record = await self.get(owner_id)
        record.flush(self.settings, self.now(), random_bytes=self.random_bytes)
        await self.save(record)
        await self._send(two_factor_flushed, owner_id=owner_id)
        return record

    # Verification

    async def _verify(self, record: AuthenticationRecord, code) -> bool:
        at = self.now()
        try:
            match = record.check_code(code, at)
        except InvalidCodeFormat:
            match = None

        if match:
            await self.save(record)
            await self._send(
                code_validated,
                owner_id=record.owner_id,
                method="totp",
                offset=match.offset,
            )
            return True

        reason = record.rejection_reason(code, at)
        logger.info(
            "Rejected TOTP code for owner %s (%s)", record.owner_id, reason
        )
        await self._send(
            code_rejected, owner_id=record.owner_id, method="totp", reason=reason
        )
        return False

    async def _get_enabled(self, owner_id) -> AuthenticationRecord:
        record = await self.get(owner_id)
        if record.is_disabled():
            raise TwoFactorStateError("Two-factor authentication is not enabled")
        return record

    async def validate_code(self, owner_id, code) -> bool:
        record = await self._get_enabled(owner_id)
        return await self._verify(record, code)

    # Recovery codes

    def _require_recovery_codes(self):
        if not self.settings.recovery_codes_enabled:
            raise TwoFactorStateError("Recovery codes are disabled")

    async def generate_recovery_codes(self, owner_id) -> list[str]:
        """Replace the owner's recovery codes; the plaintext is returned once."""
        self._require_recovery_codes()
        record = await self.get(owner_id)
        codes = record.generate_recovery_codes(self.settings, self.now())
        await self.save(record)
        await self._send(
            recovery_codes_generated, owner_id=owner_id, count=len(codes)
        )
        return codes

    async def use_recovery_code(self, owner_id, code) -> bool:
        self._require_recovery_codes()
        record = await self._get_enabled(owner_id)
        if record.use_recovery_code(code, self.now()):
            await self.save(record)
            remaining = len(record.recovery_codes.unused())
            await self._send(
                recovery_code_used, owner_id=owner_id, remaining=remaining
            )
            if not remaining:
                logger.warning("Owner %s used their last recovery code", owner_id)
            return True

        await self._send(
            code_rejected,
            owner_id=owner_id,
            method="recovery_code",
            reason="mismatch",
        )
        return False

    # Safe devices

    def _require_safe_devices(self):
        if not self.settings.safe_devices_enabled:
            raise TwoFactorStateError("Safe devices are disabled")

    async def trust_device(self, owner_id, fingerprint=None, ip=None) -> str:
        """Remember a device; returns the fingerprint to hand back to the client."""
        self._require_safe_devices()
        record = await self._get_enabled(owner_id)
        fingerprint = fingerprint or generate_device_token()
        device = record.add_safe_device(fingerprint, self.settings, self.now(), ip=ip)
        await self.save(record)
        await self._send(
            safe_device_trusted, owner_id=owner_id, expires_at=device.expires_at
        )
        return fingerprint

    async def is_trusted_device(self, owner_id, fingerprint) -> bool:
        if not self.settings.safe_devices_enabled or not fingerprint:
            return False
        record = await self.find(owner_id)
        if record is None or record.is_disabled():
            return False
        return record.is_safe_device(fingerprint, self.now())

    async def forget_device(self, owner_id, fingerprint=None) -> None:
        """Forget one device, or every device when no fingerprint is given."""
        record = await self.get(owner_id)
        if fingerprint is None:
            record.safe_devices.forget_all()
        else:
            record.forget_safe_device(fingerprint)
        record.safe_devices.purge_expired(self.now())
        await self.save(record)
        await self._send(safe_device_forgotten, owner_id=owner_id, all=fingerprint is None)
