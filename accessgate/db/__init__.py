"""Database layer for AccessGate."""
