"""TOTP code generation, verification and provisioning helpers."""

from __future__ import annotations

import base64
import io
import logging
import math
import string
from datetime import datetime
from typing import NamedTuple

from .errors import InvalidCodeFormat

logger = logging.getLogger(__name__)


def _require_pyotp():
    try:
        import pyotp
    except ImportError as exc:
        raise RuntimeError("pyotp is required for TOTP support") from exc
    return pyotp


class TotpMatch(NamedTuple):
    accepted: bool
    offset: int | None = None
    step: int | None = None

    def __bool__(self):
        return self.accepted


def _unix(at) -> float:
    if isinstance(at, datetime):
        if at.tzinfo is None:
            raise ValueError("Naive datetimes are ambiguous; pass an aware datetime")
        return at.timestamp()
    return float(at)


def time_step(at, seconds: int) -> int:
    """Return the counter for ``at``: whole steps elapsed since the Unix epoch."""
    return math.floor(_unix(at) / seconds)


def window_offsets(window: int):
    """Yield ``0, -1, +1, -2, +2, ...`` up to ``window`` steps either side."""
    yield 0
    for distance in range(1, window + 1):
        yield -distance
        yield distance


def _hotp(secret: str, config):
    pyotp = _require_pyotp()
    return pyotp.HOTP(secret, digits=config.digits, digest=config.digest)


def make_code(secret: str, config, at, offset: int = 0) -> str:
    step = time_step(at, config.seconds) + offset
    if step < 0:
        raise ValueError("Time step must not be negative")
    return _hotp(secret, config).at(step)


def check_format(code, digits: int) -> None:
    if (
        not isinstance(code, str)
        or len(code) != digits
        or any(char not in string.digits for char in code)
    ):
        raise InvalidCodeFormat(f"Code must be exactly {digits} digits")


def verify(secret: str, config, code, at, last_used_step: int | None = None) -> TotpMatch:
    """Check ``code`` against every step in the drift window around ``at``.

    Steps at or before ``last_used_step`` are never accepted, so a code that
    already authenticated cannot be replayed inside its window.

    Raises:
        InvalidCodeFormat: the code cannot possibly match, no HMAC was computed.
    """
    check_format(code, config.digits)

    pyotp = _require_pyotp()
    hotp = _hotp(secret, config)
    current = time_step(at, config.seconds)

    for offset in window_offsets(config.window):
        step = current + offset
        if step < 0:
            continue
        if last_used_step is not None and step <= last_used_step:
            continue
        if pyotp.utils.strings_equal(code, hotp.at(step)):
            if offset:
                logger.debug("TOTP code matched with clock drift of %d step(s)", offset)
            return TotpMatch(True, offset, step)

    return TotpMatch(False)


def is_replay(secret: str, config, code, at, last_used_step: int | None) -> bool:
    """True when ``code`` is only valid at steps already consumed."""
    if last_used_step is None:
        return False
    return bool(verify(secret, config, code, at)) and not verify(
        secret, config, code, at, last_used_step
    )


def get_totp_uri(secret: str, config, label: str, issuer: str) -> str:
    pyotp = _require_pyotp()
    totp = pyotp.TOTP(
        secret,
        digits=config.digits,
        digest=config.digest,
        interval=config.seconds,
    )
    return totp.provisioning_uri(name=label, issuer_name=issuer)


def generate_qr_code(uri: str) -> str:
    try:
        import qrcode
    except ImportError as exc:
        raise RuntimeError("qrcode is required for QR generation") from exc

    image = qrcode.make(uri)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    b64 = base64.b64encode(buffer.getvalue()).decode("utf-8")
    return f"data:image/png;base64,{b64}"
