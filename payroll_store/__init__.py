"""
Payroll Store - partition persistence.

Backends satisfy the ``RecordStore`` protocol and are interchangeable:
    - FileRecordStore: JSON month documents (legacy CSV read/write)
    - SqlDocumentStore: one document row per partition via SQLAlchemy

``RecordRepository`` converts partition records to domain value objects.
"""

from payroll_store.base import RecordKind, RecordStore, StorageFormat, document_key
from payroll_store.collaborators import (
    EmployeeDirectory,
    HolidayCalendar,
    InMemoryEmployeeDirectory,
    InMemoryHolidayCalendar,
)
from payroll_store.file_store import FileRecordStore
from payroll_store.repository import RecordRepository
from payroll_store.sql_store import SqlDocumentStore

__all__ = [
    "EmployeeDirectory",
    "FileRecordStore",
    "HolidayCalendar",
    "InMemoryEmployeeDirectory",
    "InMemoryHolidayCalendar",
    "RecordKind",
    "RecordRepository",
    "RecordStore",
    "SqlDocumentStore",
    "StorageFormat",
    "document_key",
]
