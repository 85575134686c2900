"""
SQL document store -- the remote document backend over SQLAlchemy.

Each partition is one ``payroll_documents`` row addressed by
``document_key(kind, employee_id, year, month)``; its body holds the same
JSON month document the file backend writes, so records round-trip
identically through either backend.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.logging_config import get_logger
from payroll_store.base import RecordKind, document_key
from payroll_store.db import get_session_factory, session_scope
from payroll_store.documents import build_document, dump_json, parse_json_text, read_document
from payroll_store.orm import DocumentModel

logger = get_logger("store.sql")


class SqlDocumentStore:
    """RecordStore keeping one document row per partition."""

    def __init__(
        self,
        session_factory: Callable[[], Session] | None = None,
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory or get_session_factory()
        self._clock = clock or SystemClock()

    def load(
        self, employee_id: str, year: int, month: int, kind: RecordKind
    ) -> list[dict[str, Any]]:
        key = document_key(kind, employee_id, year, month)
        with session_scope(self._session_factory) as session:
            row = session.get(DocumentModel, key)
            body = row.body if row is not None else None
        if body is None:
            return []
        document = parse_json_text(body, key)
        if not document:
            return []
        return read_document(kind, document, employee_id, year, month, key)

    def save(
        self,
        employee_id: str,
        year: int,
        month: int,
        kind: RecordKind,
        records: list[dict[str, Any]],
    ) -> None:
        key = document_key(kind, employee_id, year, month)
        now = self._clock.now()
        body = dump_json(build_document(kind, employee_id, year, month, records, now))
        with session_scope(self._session_factory) as session:
            row = session.get(DocumentModel, key)
            if row is None:
                session.add(
                    DocumentModel(
                        key=key,
                        kind=kind.value,
                        employee_id=employee_id,
                        year=year,
                        month=month,
                        body=body,
                        last_modified=now,
                    )
                )
            else:
                row.body = body
                row.last_modified = now
        logger.debug(
            "document_saved",
            extra={"key": key, "record_count": len(records)},
        )

    def exists(self, employee_id: str, year: int, month: int, kind: RecordKind) -> bool:
        key = document_key(kind, employee_id, year, month)
        with session_scope(self._session_factory) as session:
            return session.get(DocumentModel, key) is not None

    def partitions(self, employee_id: str, kind: RecordKind) -> list[tuple[int, int]]:
        stmt = (
            select(DocumentModel.year, DocumentModel.month)
            .where(DocumentModel.kind == kind.value)
            .where(DocumentModel.employee_id == employee_id)
            .order_by(DocumentModel.year, DocumentModel.month)
        )
        with session_scope(self._session_factory) as session:
            return [(year, month) for year, month in session.execute(stmt).all()]
