"""Project escalations for requesters outside a project."""

from .models import EscalationRequest, new_escalation_id
from .scheduler import DisabledScheduler, EscalationScheduler, ThreadingScheduler
from .tracker import EscalationTracker

__all__ = [
    "DisabledScheduler",
    "EscalationRequest",
    "EscalationScheduler",
    "EscalationTracker",
    "ThreadingScheduler",
    "new_escalation_id",
]
