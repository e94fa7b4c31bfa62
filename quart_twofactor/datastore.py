"""Async SQLAlchemy datastore for two-factor records."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from .errors import PersistError, RecordNotFound
from .models import RECORD_COLUMNS


class SQLAlchemyTwoFactorDatastore:
    """Async datastore backed by SQLAlchemy AsyncSession.

    Exchanges flat row dictionaries (see ``AuthenticationRecord.to_row``) so
    the core never depends on the mapped model.
    """

    def __init__(self, session_factory, record_model):
        self.session_factory = session_factory
        self.record_model = record_model

    @property
    def session(self):
        return self.session_factory()

    async def _first(self, **kwargs):
        stmt = select(self.record_model).filter_by(**kwargs)
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistError("Could not read two-factor record") from exc
        return result.scalars().first()

    async def find_record(self, owner_id) -> dict | None:
        instance = await self._first(owner_id=str(owner_id))
        if instance is None:
            return None
        return {name: getattr(instance, name) for name in RECORD_COLUMNS}

    async def load(self, owner_id) -> dict:
        row = await self.find_record(owner_id)
        if row is None:
            raise RecordNotFound(f"No two-factor record for owner {owner_id}")
        return row

    async def save(self, row: dict):
        values = dict(row, owner_id=str(row["owner_id"]))
        instance = await self._first(owner_id=values["owner_id"])
        if instance is None:
            instance = self.record_model(**values)
        else:
            for name, value in values.items():
                setattr(instance, name, value)

        self.session.add(instance)
        try:
            await self.session.flush()
        except SQLAlchemyError as exc:
            raise PersistError("Could not write two-factor record") from exc
        return instance

    async def delete(self, owner_id) -> bool:
        instance = await self._first(owner_id=str(owner_id))
        if instance is None:
            return False
        try:
            await self.session.delete(instance)
            await self.session.flush()
        except SQLAlchemyError as exc:
            raise PersistError("Could not delete two-factor record") from exc
        return True

    async def commit(self):
        try:
            await self.session.commit()
        except SQLAlchemyError as exc:
            raise PersistError("Could not commit two-factor changes") from exc
