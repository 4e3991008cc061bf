"""Database models for AccessGate."""

from accessgate.db.models.record import StoredRecord

__all__ = ["StoredRecord"]
