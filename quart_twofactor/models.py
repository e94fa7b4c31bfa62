"""Declarative mixin for the persisted authentication record."""

from __future__ import annotations

import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

RECORD_COLUMNS = (
    "owner_id",
    "shared_secret",
    "digits",
    "seconds",
    "window",
    "algorithm",
    "encrypted",
    "recovery_codes",
    "recovery_codes_generated_at",
    "safe_devices",
    "enabled_at",
    "last_used_step",
    "created_at",
    "updated_at",
)


class TwoFactorRecordMixin:
    """Columns for one two-factor record per owner.

    Mix into a declarative model and set ``__tablename__``::

        class TwoFactorRecord(Base, TwoFactorRecordMixin):
            __tablename__ = "two_factor_authentications"
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    shared_secret: Mapped[str] = mapped_column(Text)
    digits: Mapped[int] = mapped_column(Integer, default=6)
    seconds: Mapped[int] = mapped_column(Integer, default=30)
    window: Mapped[int] = mapped_column("window", Integer, default=1, quote=True)
    algorithm: Mapped[str] = mapped_column(String(16), default="sha1")
    encrypted: Mapped[bool] = mapped_column(Boolean, default=False)
    recovery_codes: Mapped[str | None] = mapped_column(Text, nullable=True)
    recovery_codes_generated_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    safe_devices: Mapped[str | None] = mapped_column(Text, nullable=True)
    enabled_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_used_step: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
