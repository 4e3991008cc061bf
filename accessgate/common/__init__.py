"""Common utilities for AccessGate."""

from .logger import setup_logger, get_logger
from .config import load_config
from .clock import Clock, utcnow
from .text import truncate

__all__ = ["Clock", "get_logger", "load_config", "setup_logger", "truncate", "utcnow"]
