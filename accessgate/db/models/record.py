"""Stored record model.

One table holds every record kind; the payload is the record itself and
``status`` is copied out of it so compare-and-swap can run in SQL.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, JSON, String

from accessgate.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredRecord(Base):
    __tablename__ = "stored_records"

    kind = Column(String(50), primary_key=True)
    key = Column(String(255), primary_key=True)

    status = Column(String(50), nullable=True, index=True)
    payload = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<StoredRecord {self.kind}/{self.key} [{self.status}]>"
