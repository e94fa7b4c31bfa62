import datetime
from dataclasses import dataclass

import pytest
from quart import Quart

from quart_twofactor import FernetEncrypter, TotpConfig, TwoFactor, TwoFactorSettings
from quart_twofactor.secret import encode

# RFC 6238 appendix B seed for HMAC-SHA1.
RFC_SECRET = encode(b"12345678901234567890")


@dataclass
class FrozenClock:
    current: datetime.datetime

    def __call__(self):
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + datetime.timedelta(**kwargs)
        return self.current


class InMemoryDatastore:
    def __init__(self):
        self.rows: dict[str, dict] = {}
        self.commits = 0

    def find_record(self, owner_id):
        row = self.rows.get(str(owner_id))
        return dict(row) if row is not None else None

    def save(self, row):
        self.rows[str(row["owner_id"])] = dict(row)
        return row

    def delete(self, owner_id):
        return self.rows.pop(str(owner_id), None) is not None

    def commit(self):
        self.commits += 1


def at(seconds) -> datetime.datetime:
    return datetime.datetime.fromtimestamp(seconds, tz=datetime.timezone.utc)


@pytest.fixture
def clock():
    return FrozenClock(at(1_700_000_000))


@pytest.fixture
def settings():
    return TwoFactorSettings(totp=TotpConfig(window=1), recovery_codes_n=5)


@pytest.fixture
def encrypter():
    return FernetEncrypter(FernetEncrypter.generate_key())


@pytest.fixture
def datastore():
    return InMemoryDatastore()


def _build_app(datastore, clock, **config) -> Quart:
    app = Quart(__name__)
    app.config.update(SECRET_KEY="test-secret", TESTING=True, **config)
    TwoFactor(app, datastore, clock=clock)
    return app


@pytest.fixture
def app(datastore, clock):
    return _build_app(datastore, clock)


@pytest.fixture
def app_safe_devices(datastore, clock):
    return _build_app(datastore, clock, SECURITY_TWO_FACTOR_SAFE_DEVICES=True)


@pytest.fixture
def app_encrypted(datastore, clock):
    return _build_app(
        datastore,
        clock,
        SECURITY_TWO_FACTOR_ENCRYPTED=True,
        SECURITY_TWO_FACTOR_ENCRYPTION_KEY=FernetEncrypter.generate_key(),
    )
