import pytest
import pytest_asyncio
from quart import Quart
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from quart_twofactor import (
    RecordNotFound,
    SQLAlchemyTwoFactorDatastore,
    TwoFactor,
    TwoFactorRecordMixin,
)


class Base(DeclarativeBase):
    pass


class TwoFactorRecord(Base, TwoFactorRecordMixin):
    __tablename__ = "two_factor_authentications"


@pytest_asyncio.fixture
async def sql_datastore():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = async_sessionmaker(engine, expire_on_commit=False)()
    yield SQLAlchemyTwoFactorDatastore(lambda: session, TwoFactorRecord)

    await session.close()
    await engine.dispose()


@pytest.fixture
def sql_app(sql_datastore, clock):
    app = Quart(__name__)
    app.config["SECURITY_TWO_FACTOR_SAFE_DEVICES"] = True
    TwoFactor(app, sql_datastore, clock=clock)
    return app


@pytest.mark.asyncio
async def test_load_missing_record(sql_datastore):
    assert await sql_datastore.find_record("nobody") is None
    with pytest.raises(RecordNotFound):
        await sql_datastore.load("nobody")


@pytest.mark.asyncio
async def test_save_inserts_then_updates(sql_datastore):
    row = {
        "owner_id": 42,
        "shared_secret": "JBSWY3DPEHPK3PXP",
        "digits": 6,
        "seconds": 30,
        "window": 1,
        "algorithm": "sha1",
        "encrypted": False,
    }
    await sql_datastore.save(row)
    await sql_datastore.commit()

    await sql_datastore.save(dict(row, digits=8))
    await sql_datastore.commit()

    loaded = await sql_datastore.load(42)
    assert loaded["owner_id"] == "42"
    assert loaded["digits"] == 8
    assert loaded["recovery_codes"] is None

    assert await sql_datastore.delete(42)
    assert not await sql_datastore.delete(42)


@pytest.mark.asyncio
async def test_two_factor_round_trip_through_sqlalchemy(sql_app, clock):
    two_factor = sql_app.extensions["two_factor"]
    record = await two_factor.create("user-1")
    assert await two_factor.confirm("user-1", record.make_code(clock()))

    codes = await two_factor.generate_recovery_codes("user-1")
    fingerprint = await two_factor.trust_device("user-1")

    loaded = await two_factor.get("user-1")
    assert loaded.shared_secret == record.shared_secret
    assert loaded.is_enabled()
    assert loaded.enabled_at.tzinfo is not None
    assert loaded.recovery_codes.unused() == codes
    assert await two_factor.is_trusted_device("user-1", fingerprint)
    assert await two_factor.use_recovery_code("user-1", codes[0])
    assert not await two_factor.use_recovery_code("user-1", codes[0])


def test_window_column_keeps_its_name_and_is_quoted():
    column = TwoFactorRecord.__table__.c.window
    assert column.name == "window"
    assert column.name.quote is True
