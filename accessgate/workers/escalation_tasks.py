"""Celery tasks for escalation auto-resolution.

Used when escalations must auto-resolve outside the API process. Workers
build their own desk from settings, so they only see escalations opened by
the API when both share the SQL store.
"""

import logging
import threading
from typing import Any, Dict, Optional

from celery import Celery, shared_task
from celery.result import AsyncResult
from sqlalchemy.exc import OperationalError

from accessgate.core.config import get_settings
from accessgate.core.errors import RecordNotFoundError
from accessgate.core.escalation.scheduler import EscalationScheduler, ResolveCallback

logger = logging.getLogger(__name__)
settings = get_settings()

# Initialize Celery
celery_app = Celery(
    'accessgate',
    broker=settings.celery_broker,
    backend=settings.celery_backend,
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_routes={
        'accessgate.workers.escalation_tasks.auto_resolve_escalation': {'queue': 'escalations'},
    },
    task_default_queue='default',
)


@shared_task(bind=True, max_retries=3, default_retry_delay=5)
def auto_resolve_escalation(self, escalation_id: str) -> Dict[str, Any]:
    """
    Async task resolving an escalation on its owner's behalf.

    Args:
        escalation_id: ID of the escalation

    Returns:
        Dictionary with the escalation id and its resulting status
    """
    from accessgate.services.desk import get_desk

    try:
        escalation = get_desk().escalations.auto_resolve(escalation_id)
    except RecordNotFoundError as e:
        logger.warning("Auto-resolve skipped: %s", e)
        return {"escalation_id": escalation_id, "status": "missing"}
    except OperationalError as e:
        logger.warning("Store unavailable resolving %s, retrying: %s", escalation_id, e)
        raise self.retry(exc=e)

    if escalation is None:
        return {"escalation_id": escalation_id, "status": "already_resolved"}
    return {"escalation_id": escalation_id, "status": escalation.status.value}


class CeleryScheduler(EscalationScheduler):
    """Schedules auto-resolution as a countdown Celery task.

    Only results still outstanding are tracked; finished ones are dropped
    whenever a task is scheduled or cancelled.
    """

    def __init__(self, delay_seconds: float = 2.0, task: Optional[Any] = None):
        self.delay_seconds = delay_seconds
        self.task = task or auto_resolve_escalation
        self._results: Dict[str, AsyncResult] = {}
        self._lock = threading.Lock()

    def _prune(self) -> None:
        finished = [eid for eid, result in self._results.items() if result.ready()]
        for escalation_id in finished:
            del self._results[escalation_id]

    def schedule(self, escalation_id: str, callback: ResolveCallback) -> None:
        # The worker resolves through its own desk, not the callback
        result = self.task.apply_async(
            args=[escalation_id],
            countdown=self.delay_seconds,
        )
        with self._lock:
            self._prune()
            self._results[escalation_id] = result
        logger.debug("Queued auto-resolve for %s in %.1fs", escalation_id, self.delay_seconds)

    def cancel(self, escalation_id: str) -> bool:
        with self._lock:
            result = self._results.pop(escalation_id, None)
            self._prune()
        if result is None or result.ready():
            return False
        result.revoke()
        logger.debug("Revoked auto-resolve for %s", escalation_id)
        return True

    def pending(self) -> int:
        with self._lock:
            self._prune()
            return len(self._results)
