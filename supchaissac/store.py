"""Session storage.

Writes of a transition are compare-and-swap on the status the engine read:
if another actor moved the session in between, the write is refused with
:class:`~supchaissac.errors.ConflictError` and nothing is changed.
"""
from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import replace
from typing import Iterable, Protocol

from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from .errors import ConflictError, NotFoundError
from .extensions import db
from .models import Session
from .records import SessionRecord


logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    def get(self, session_id: int) -> SessionRecord:  # pragma: no cover - interface
        ...

    def add(self, record: SessionRecord) -> SessionRecord:  # pragma: no cover - interface
        ...

    def replace(
        self, record: SessionRecord, expected_status: str
    ) -> SessionRecord:  # pragma: no cover - interface
        ...

    def delete(self, session_id: int) -> None:  # pragma: no cover - interface
        ...

    def all(self, teacher_id: int | None = None) -> list[SessionRecord]:  # pragma: no cover
        ...


class InMemorySessionStore:
    """Thread-safe store keeping records in a dict, one lock per record."""

    def __init__(self, records: Iterable[SessionRecord] = ()) -> None:
        self._records: dict[int, SessionRecord] = {}
        self._locks: dict[int, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._ids = itertools.count(1)
        for record in records:
            self.add(record)

    def _lock_for(self, session_id: int) -> threading.Lock:
        with self._registry_lock:
            if session_id not in self._records:
                raise NotFoundError(session_id=session_id)
            return self._locks[session_id]

    def get(self, session_id: int) -> SessionRecord:
        try:
            return self._records[session_id]
        except KeyError:
            raise NotFoundError(session_id=session_id) from None

    def add(self, record: SessionRecord) -> SessionRecord:
        with self._registry_lock:
            session_id = next(self._ids)
            stored = replace(record, id=session_id)
            self._records[session_id] = stored
            self._locks[session_id] = threading.Lock()
        return stored

    def replace(self, record: SessionRecord, expected_status: str) -> SessionRecord:
        with self._lock_for(record.id):
            current = self.get(record.id)
            if current.status != expected_status:
                logger.warning(
                    "Conflict on session %s: expected %s, found %s",
                    record.id,
                    expected_status,
                    current.status,
                )
                raise ConflictError(
                    session_id=record.id, expected=expected_status, found=current.status
                )
            self._records[record.id] = record
        return record

    def delete(self, session_id: int) -> None:
        with self._lock_for(session_id):
            with self._registry_lock:
                del self._records[session_id]
                del self._locks[session_id]

    def all(self, teacher_id: int | None = None) -> list[SessionRecord]:
        records = list(self._records.values())
        if teacher_id is not None:
            records = [record for record in records if record.teacher_id == teacher_id]
        return sorted(records, key=lambda record: record.id)


class SqlSessionStore:
    """Store backed by the Flask-SQLAlchemy ``sessions`` table."""

    def _query(self):
        return select(Session).options(selectinload(Session.attachments))

    def get(self, session_id: int) -> SessionRecord:
        row = db.session.execute(
            self._query().where(Session.id == session_id)
        ).scalar_one_or_none()
        if row is None:
            raise NotFoundError(session_id=session_id)
        return row.to_record()

    def add(self, record: SessionRecord) -> SessionRecord:
        row = Session.from_record(record)
        db.session.add(row)
        db.session.commit()
        return row.to_record()

    def replace(self, record: SessionRecord, expected_status: str) -> SessionRecord:
        statement = (
            update(Session)
            .where(Session.id == record.id, Session.status == expected_status)
            .values(**Session.column_values(record))
            .execution_options(synchronize_session=False)
        )
        result = db.session.execute(statement)
        if result.rowcount != 1:
            db.session.rollback()
            found = db.session.get(Session, record.id)
            if found is None:
                raise NotFoundError(session_id=record.id)
            logger.warning(
                "Conflict on session %s: expected %s, found %s",
                record.id,
                expected_status,
                found.status,
            )
            raise ConflictError(
                session_id=record.id, expected=expected_status, found=found.status
            )
        db.session.commit()
        db.session.expire_all()
        return self.get(record.id)

    def delete(self, session_id: int) -> None:
        row = db.session.get(Session, session_id)
        if row is None:
            raise NotFoundError(session_id=session_id)
        db.session.delete(row)
        db.session.commit()

    def all(self, teacher_id: int | None = None) -> list[SessionRecord]:
        query = self._query().order_by(Session.date.desc(), Session.time_slot, Session.id)
        if teacher_id is not None:
            query = query.where(Session.teacher_id == teacher_id)
        return [row.to_record() for row in db.session.execute(query).scalars()]
