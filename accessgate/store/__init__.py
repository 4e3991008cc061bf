"""Record stores for AccessGate state."""

from .base import Record, RecordStore
from .memory import MemoryStore
from .sql import SqlStore

__all__ = ["MemoryStore", "Record", "RecordStore", "SqlStore"]
