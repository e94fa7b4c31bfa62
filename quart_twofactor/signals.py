"""Signals emitted by quart-twofactor."""

from blinker import Namespace

_signals = Namespace()

two_factor_enabled = _signals.signal("two-factor-enabled")
two_factor_flushed = _signals.signal("two-factor-flushed")
code_validated = _signals.signal("code-validated")
code_rejected = _signals.signal("code-rejected")
recovery_codes_generated = _signals.signal("recovery-codes-generated")
recovery_code_used = _signals.signal("recovery-code-used")
safe_device_trusted = _signals.signal("safe-device-trusted")
safe_device_forgotten = _signals.signal("safe-device-forgotten")
