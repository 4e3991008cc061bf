"""API routers for AccessGate."""

from . import approvals
from . import chat
from . import escalations
from . import health
from . import request_state

__all__ = [
    "approvals",
    "chat",
    "escalations",
    "health",
    "request_state",
]
