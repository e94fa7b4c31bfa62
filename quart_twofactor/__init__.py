"""Public API for quart-twofactor."""

from .core import TwoFactor
from .crypto import FernetEncrypter
from .datastore import SQLAlchemyTwoFactorDatastore
from .devices import SafeDevice, SafeDeviceManager, generate_device_token
from .errors import (
    DecryptError,
    InsufficientEntropy,
    InvalidCodeFormat,
    InvalidSecretEncoding,
    PersistError,
    RecordNotFound,
    RecoveryCodesDecryptionFailed,
    SafeDevicesDecodeFailed,
    SecretDecryptionFailed,
    TwoFactorError,
    TwoFactorStateError,
)
from .models import TwoFactorRecordMixin
from .proxies import current_two_factor
from .record import AuthenticationRecord
from .recovery import RecoveryCode, RecoveryCodeManager
from .secret import SecretCodec, generate_random_secret
from .settings import TotpConfig, TwoFactorSettings
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

__all__ = [
    "TwoFactor",
    "FernetEncrypter",
    "SQLAlchemyTwoFactorDatastore",
    "TwoFactorRecordMixin",
    "AuthenticationRecord",
    "TotpConfig",
    "TwoFactorSettings",
    "SecretCodec",
    "generate_random_secret",
    "RecoveryCode",
    "RecoveryCodeManager",
    "SafeDevice",
    "SafeDeviceManager",
    "generate_device_token",
    "current_two_factor",
    "TwoFactorError",
    "InvalidSecretEncoding",
    "SecretDecryptionFailed",
    "InsufficientEntropy",
    "InvalidCodeFormat",
    "RecoveryCodesDecryptionFailed",
    "SafeDevicesDecodeFailed",
    "DecryptError",
    "PersistError",
    "RecordNotFound",
    "TwoFactorStateError",
    "two_factor_enabled",
    "two_factor_flushed",
    "code_validated",
    "code_rejected",
    "recovery_codes_generated",
    "recovery_code_used",
    "safe_device_trusted",
    "safe_device_forgotten",
]
