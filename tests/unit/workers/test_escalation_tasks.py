"""Tests for the Celery escalation tasks."""

import pytest
from sqlalchemy.exc import OperationalError

from accessgate.core.policy.rules import AccessLevel, ResourceSystem
from accessgate.workers import escalation_tasks
from accessgate.workers.escalation_tasks import CeleryScheduler, auto_resolve_escalation


class FakeResult:
    def __init__(self):
        self.revoked = False
        self.done = False

    def ready(self):
        return self.done

    def revoke(self):
        self.revoked = True


class FakeTask:
    """Stands in for the Celery task's apply_async."""

    def __init__(self):
        self.calls = []
        self.results = []

    def apply_async(self, args=None, countdown=None):
        self.calls.append({"args": args, "countdown": countdown})
        result = FakeResult()
        self.results.append(result)
        return result


class TestCeleryScheduler:
    """Countdown task scheduling."""

    def test_schedule_queues_countdown_task(self):
        task = FakeTask()
        scheduler = CeleryScheduler(delay_seconds=2.0, task=task)
        scheduler.schedule("esc-1", lambda escalation_id: None)
        assert task.calls == [{"args": ["esc-1"], "countdown": 2.0}]

    def test_cancel_revokes(self):
        task = FakeTask()
        scheduler = CeleryScheduler(task=task)
        scheduler.schedule("esc-1", lambda escalation_id: None)
        assert scheduler.cancel("esc-1") is True
        assert task.results[0].revoked is True
        assert scheduler.cancel("esc-1") is False

    def test_cancel_unknown(self):
        assert CeleryScheduler(task=FakeTask()).cancel("esc-missing") is False

    def test_finished_results_are_dropped(self):
        """Test completed tasks are not held once the next task is queued."""
        task = FakeTask()
        scheduler = CeleryScheduler(task=task)
        scheduler.schedule("esc-1", lambda escalation_id: None)
        scheduler.schedule("esc-2", lambda escalation_id: None)
        assert scheduler.pending() == 2

        task.results[0].done = True
        scheduler.schedule("esc-3", lambda escalation_id: None)
        assert scheduler.pending() == 2
        assert scheduler.cancel("esc-1") is False
        assert task.results[0].revoked is False

    def test_cancel_after_completion(self):
        task = FakeTask()
        scheduler = CeleryScheduler(task=task)
        scheduler.schedule("esc-1", lambda escalation_id: None)
        task.results[0].done = True
        assert scheduler.cancel("esc-1") is False
        assert scheduler.pending() == 0


class TestAutoResolveTask:
    """The worker-side task body."""

    def test_resolves_through_desk(self, desk, monkeypatch):
        monkeypatch.setattr("accessgate.services.desk.get_desk", lambda: desk)
        escalation = desk.escalations.open(
            "dev-001", "project-2", ResourceSystem.GITHUB, AccessLevel.READ_ONLY, "manager-002",
        )

        result = auto_resolve_escalation.run(escalation.id)
        assert result == {"escalation_id": escalation.id, "status": "approved"}

        again = auto_resolve_escalation.run(escalation.id)
        assert again["status"] == "already_resolved"

    def test_missing_escalation(self, desk, monkeypatch):
        monkeypatch.setattr("accessgate.services.desk.get_desk", lambda: desk)
        result = auto_resolve_escalation.run("esc-missing")
        assert result["status"] == "missing"

    def test_store_outage_is_retried(self, desk, monkeypatch):
        """Test a transient store error goes through the task retry."""
        def unavailable(escalation_id):
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        retries = []
        original_retry = auto_resolve_escalation.retry

        def recording_retry(*args, **kwargs):
            retries.append(kwargs.get("exc"))
            return original_retry(*args, **kwargs)

        monkeypatch.setattr("accessgate.services.desk.get_desk", lambda: desk)
        monkeypatch.setattr(desk.escalations, "auto_resolve", unavailable)
        monkeypatch.setattr(auto_resolve_escalation, "retry", recording_retry)

        # Called directly, retry re-raises the original error
        with pytest.raises(OperationalError):
            auto_resolve_escalation.run("esc-1")
        assert len(retries) == 1
        assert isinstance(retries[0], OperationalError)

    def test_celery_app_routes_escalations(self):
        routes = escalation_tasks.celery_app.conf.task_routes
        assert routes["accessgate.workers.escalation_tasks.auto_resolve_escalation"] == {"queue": "escalations"}
