"""SQLAlchemy-backed record store."""

import copy
import logging
from typing import List, Optional

from sqlalchemy import and_
from sqlalchemy.orm import sessionmaker

from accessgate.db.models import StoredRecord
from .base import Record, RecordStore

logger = logging.getLogger(__name__)


class SqlStore(RecordStore):
    """
    Durable record store over a single ``stored_records`` table.

    Compare-and-swap is a conditional UPDATE on the status column, so it
    holds across processes sharing the database, not just across threads.
    """

    def __init__(self, session_factory: sessionmaker):
        super().__init__()
        self.session_factory = session_factory

    def get(self, kind: str, key: str) -> Optional[Record]:
        with self.session_factory() as db:
            row = db.get(StoredRecord, (kind, key))
            return copy.deepcopy(row.payload) if row is not None else None

    def put(self, kind: str, key: str, record: Record) -> None:
        with self.session_factory() as db:
            row = db.get(StoredRecord, (kind, key))
            if row is None:
                row = StoredRecord(kind=kind, key=key)
                db.add(row)
            row.status = record.get("status")
            row.payload = copy.deepcopy(record)
            db.commit()

    def compare_and_swap(
        self,
        kind: str,
        key: str,
        expected_status: Optional[str],
        record: Record,
    ) -> bool:
        with self.session_factory() as db:
            if expected_status is None:
                status_clause = StoredRecord.status.is_(None)
            else:
                status_clause = StoredRecord.status == expected_status
            updated = db.query(StoredRecord).filter(
                and_(
                    StoredRecord.kind == kind,
                    StoredRecord.key == key,
                    status_clause,
                )
            ).update(
                {
                    StoredRecord.status: record.get("status"),
                    StoredRecord.payload: copy.deepcopy(record),
                },
                synchronize_session=False,
            )
            db.commit()

        if updated != 1:
            logger.debug("Compare-and-swap missed for %s/%s (expected %s)", kind, key, expected_status)
        return updated == 1

    def values(self, kind: str) -> List[Record]:
        with self.session_factory() as db:
            rows = db.query(StoredRecord).filter(
                StoredRecord.kind == kind
            ).order_by(StoredRecord.created_at.asc()).all()
            return [copy.deepcopy(row.payload) for row in rows]
