"""Record store interface.

Every mutable record in AccessGate (request states, access requests,
escalations, chat logs) lives in a store keyed by ``(kind, key)``. Records
are plain JSON-compatible dicts; a record's ``status`` entry is what
``compare_and_swap`` checks.
"""

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple


Record = Dict[str, Any]


class RecordStore(ABC):
    """Keyed record storage with per-record locking."""

    def __init__(self):
        self._locks: Dict[Tuple[str, str], threading.RLock] = {}
        self._locks_guard = threading.Lock()

    @abstractmethod
    def get(self, kind: str, key: str) -> Optional[Record]:
        """Return a copy of the record, or None."""

    @abstractmethod
    def put(self, kind: str, key: str, record: Record) -> None:
        """Insert or replace a record."""

    @abstractmethod
    def compare_and_swap(
        self,
        kind: str,
        key: str,
        expected_status: Optional[str],
        record: Record,
    ) -> bool:
        """
        Replace a record only if its current status matches.

        Args:
            kind: Record kind
            key: Record key
            expected_status: Status the stored record must currently have
            record: Replacement record

        Returns:
            True if the record was replaced, False if it was missing or its
            status had changed
        """

    @abstractmethod
    def values(self, kind: str) -> List[Record]:
        """Return copies of all records of a kind."""

    @contextmanager
    def lock(self, kind: str, key: str) -> Iterator[None]:
        """Hold the per-record lock for a read-decide-write sequence.

        The lock is reentrant so a holder may call other locked operations
        on the same record.
        """
        with self._locks_guard:
            record_lock = self._locks.setdefault((kind, key), threading.RLock())
        with record_lock:
            yield
