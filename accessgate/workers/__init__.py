"""Celery workers for AccessGate."""

from accessgate.workers.escalation_tasks import (
    CeleryScheduler,
    auto_resolve_escalation,
    celery_app,
)

__all__ = [
    "CeleryScheduler",
    "auto_resolve_escalation",
    "celery_app",
]
