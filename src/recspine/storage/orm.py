"""Declarative base, archive table and engine factory.

Uses SQLAlchemy 2.0 ``DeclarativeBase`` with a ``type_annotation_map`` so
mapped columns can use plain Python types.
"""

from __future__ import annotations

import datetime
from typing import Any

from sqlalchemy import DateTime, Integer, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool


class RecSpineBase(DeclarativeBase):
    """Shared declarative base.

    * ``str``   -> ``Text``
    * ``int``   -> ``Integer``
    * ``datetime.datetime`` -> ``DateTime``
    """

    type_annotation_map = {
        str: Text,
        int: Integer,
        datetime.datetime: DateTime,
    }


class ArchiveRecordTable(RecSpineBase):
    """One processed recording. ``identifier`` keeps the writer's encoding."""

    __tablename__ = "archive_records"

    record_id: Mapped[str] = mapped_column(primary_key=True)
    identifier: Mapped[str] = mapped_column(index=True)
    fingerprint: Mapped[str | None] = mapped_column(index=True)
    external_meeting_id: Mapped[str | None]
    topic: Mapped[str | None]
    start_time: Mapped[datetime.datetime | None]
    category: Mapped[str | None]
    location: Mapped[str | None]
    created_at: Mapped[datetime.datetime] = mapped_column(
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )


def create_archive_engine(url: str = "sqlite:///recspine.db", *, echo: bool = False, **kwargs: Any) -> Engine:
    """Create an engine with SQLite tweaks.

    ``sqlite://`` (in-memory) shares one connection across threads so every
    session sees the same database.
    """
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs.setdefault("poolclass", StaticPool)

        engine = create_engine(url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection: Any, _rec: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        return engine

    return create_engine(url, echo=echo, **kwargs)


def archive_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)
