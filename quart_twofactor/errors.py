"""Exceptions raised by quart-twofactor."""


class TwoFactorError(Exception):
    """Base class for all two-factor errors."""


class InvalidSecretEncoding(TwoFactorError):
    """The shared secret is not valid base32."""


class DecryptError(TwoFactorError):
    """The encryption service could not decrypt a value."""


class SecretDecryptionFailed(TwoFactorError):
    """The stored shared secret could not be decrypted."""


class RecoveryCodesDecryptionFailed(TwoFactorError):
    """The stored recovery codes could not be decrypted or parsed."""


class InsufficientEntropy(TwoFactorError):
    """The random source failed to produce enough bytes."""


class InvalidCodeFormat(TwoFactorError):
    """A submitted code has the wrong length or non-digit characters."""


class TwoFactorStateError(TwoFactorError):
    """An operation is not allowed in the record's current state."""


class RecordNotFound(TwoFactorError):
    """No authentication record exists for the owner."""


class PersistError(TwoFactorError):
    """The datastore failed to read or write a record."""


class SafeDevicesDecodeFailed(TwoFactorError):
    """The stored safe devices are not a valid mapping."""
