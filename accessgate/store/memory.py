"""In-process record store."""

import copy
import threading
from typing import Dict, List, Optional, Tuple

from .base import Record, RecordStore


class MemoryStore(RecordStore):
    """Synchronized dict of records. Valid for the life of the process."""

    def __init__(self):
        super().__init__()
        self._records: Dict[Tuple[str, str], Record] = {}
        self._guard = threading.RLock()

    def get(self, kind: str, key: str) -> Optional[Record]:
        with self._guard:
            record = self._records.get((kind, key))
            return copy.deepcopy(record) if record is not None else None

    def put(self, kind: str, key: str, record: Record) -> None:
        with self._guard:
            self._records[(kind, key)] = copy.deepcopy(record)

    def compare_and_swap(
        self,
        kind: str,
        key: str,
        expected_status: Optional[str],
        record: Record,
    ) -> bool:
        with self._guard:
            current = self._records.get((kind, key))
            if current is None or current.get("status") != expected_status:
                return False
            self._records[(kind, key)] = copy.deepcopy(record)
            return True

    def values(self, kind: str) -> List[Record]:
        with self._guard:
            return [
                copy.deepcopy(record)
                for (record_kind, _), record in self._records.items()
                if record_kind == kind
            ]
