"""
ORM model for the SQL document backend.

One row per partition document, keyed ``{kind}_{employeeId}_{year}_{month}``.
The body is the same JSON month document the file backend writes.
"""

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for payroll store models."""


class DocumentModel(Base):
    __tablename__ = "payroll_documents"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    kind: Mapped[str] = mapped_column(String(40), index=True)
    employee_id: Mapped[str] = mapped_column(String(100), index=True)
    year: Mapped[int] = mapped_column(Integer)
    month: Mapped[int] = mapped_column(Integer)
    body: Mapped[str] = mapped_column(Text)
    last_modified: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<DocumentModel {self.key}>"
