"""SQLAlchemy-backed archive store.

Each call runs in its own short session, so one ``SqlArchive`` can be shared
by intake workers. Commits are visible to the next lookup on any thread.
Database connectivity failures surface as ``LookupUnavailableError`` so the
retry wrapper can tell them apart from programming errors.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError

from recspine.core.enums import Category
from recspine.core.errors import LookupUnavailableError
from recspine.core.logging import get_logger
from recspine.core.models import ArchiveRecord
from recspine.core.timestamps import parse_timestamp

from .orm import ArchiveRecordTable, RecSpineBase, archive_session_factory

logger = get_logger(__name__)

T = TypeVar("T")


def _to_record(row: ArchiveRecordTable) -> ArchiveRecord:
    return ArchiveRecord(
        record_id=row.record_id,
        identifier=row.identifier,
        fingerprint=row.fingerprint,
        external_meeting_id=row.external_meeting_id,
        topic=row.topic,
        start_time=parse_timestamp(row.start_time) if row.start_time else None,
        category=Category(row.category) if row.category else None,
        location=row.location,
    )


def _to_row(record: ArchiveRecord) -> ArchiveRecordTable:
    return ArchiveRecordTable(
        record_id=record.record_id,
        identifier=record.identifier.strip(),
        fingerprint=record.fingerprint,
        external_meeting_id=record.external_meeting_id,
        topic=record.topic,
        # SQLite drops tzinfo; rows are always written in UTC.
        start_time=parse_timestamp(record.start_time).replace(tzinfo=None)
        if record.start_time
        else None,
        category=record.category.value if record.category else None,
        location=record.location,
    )


class SqlArchive:
    """``RecordLookup`` and ``ArchiveWriter`` over the ``archive_records`` table."""

    def __init__(self, engine: Engine, create_schema: bool = True):
        self.engine = engine
        self._sessions = archive_session_factory(engine)
        # SQLite serializes writers anyway; this keeps in-process writes ordered.
        self._write_lock = threading.Lock()
        if create_schema:
            RecSpineBase.metadata.create_all(engine)

    def find_by_identity(self, value: str) -> ArchiveRecord | None:
        stmt = (
            select(ArchiveRecordTable)
            .where(ArchiveRecordTable.identifier == value.strip())
            .order_by(ArchiveRecordTable.created_at, ArchiveRecordTable.record_id)
            .limit(1)
        )
        return self._first(stmt, "find_by_identity")

    def find_by_fingerprint(self, fingerprint: str) -> ArchiveRecord | None:
        stmt = (
            select(ArchiveRecordTable)
            .where(ArchiveRecordTable.fingerprint == fingerprint)
            .order_by(ArchiveRecordTable.created_at, ArchiveRecordTable.record_id)
            .limit(1)
        )
        return self._first(stmt, "find_by_fingerprint")

    def record(self, record: ArchiveRecord) -> None:
        def write() -> None:
            with self._write_lock, self._sessions() as session, session.begin():
                session.add(_to_row(record))

        self._guard(write, "record")
        logger.debug("sql_archive.recorded", record_id=record.record_id)

    def snapshot(self) -> list[ArchiveRecord]:
        def read() -> list[ArchiveRecord]:
            with self._sessions() as session:
                rows = session.scalars(
                    select(ArchiveRecordTable).order_by(
                        ArchiveRecordTable.created_at, ArchiveRecordTable.record_id
                    )
                ).all()
                return [_to_record(r) for r in rows]

        return self._guard(read, "snapshot")

    def _first(self, stmt, operation: str) -> ArchiveRecord | None:
        def read() -> ArchiveRecord | None:
            with self._sessions() as session:
                row = session.scalars(stmt).first()
                return _to_record(row) if row is not None else None

        return self._guard(read, operation)

    def _guard(self, func: Callable[[], T], operation: str) -> T:
        try:
            return func()
        except OperationalError as e:
            raise LookupUnavailableError(
                f"Archive database unavailable during {operation}", cause=e
            ).with_context(operation=operation) from e
        except DBAPIError as e:
            if e.connection_invalidated:
                raise LookupUnavailableError(
                    f"Archive connection lost during {operation}", cause=e
                ).with_context(operation=operation) from e
            raise
