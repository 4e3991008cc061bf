"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List

import pytest
from fastapi.testclient import TestClient

from accessgate.core.approval.ledger import ApprovalLedger
from accessgate.core.config import DEFAULT_DIRECTORY_PATH, Settings
from accessgate.core.directory import Directory, load_directory
from accessgate.core.escalation.scheduler import EscalationScheduler
from accessgate.core.escalation.tracker import EscalationTracker
from accessgate.core.policy.engine import PolicyEvaluator
from accessgate.core.requests.machine import RequestStateMachine
from accessgate.services.desk import AccessDesk, build_desk
from accessgate.services.notifications import NotificationComposer
from accessgate.store.memory import MemoryStore


class FakeClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


class RecordingScheduler(EscalationScheduler):
    """Scheduler that records tasks and fires them on demand."""

    def __init__(self):
        self.callbacks: Dict[str, Callable] = {}
        self.cancelled: List[str] = []

    def schedule(self, escalation_id, callback):
        self.callbacks[escalation_id] = callback

    def cancel(self, escalation_id):
        self.cancelled.append(escalation_id)
        return self.callbacks.pop(escalation_id, None) is not None

    def fire(self, escalation_id):
        return self.callbacks.pop(escalation_id)(escalation_id)


@pytest.fixture
def directory() -> Directory:
    """The bundled demo directory."""
    return load_directory(DEFAULT_DIRECTORY_PATH)


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> RecordingScheduler:
    return RecordingScheduler()


@pytest.fixture
def composer(directory) -> NotificationComposer:
    return NotificationComposer(directory)


@pytest.fixture
def ledger(store, composer, clock) -> ApprovalLedger:
    return ApprovalLedger(store, composer, fallback_approver_id="admin-001", clock=clock)


@pytest.fixture
def evaluator(directory) -> PolicyEvaluator:
    return PolicyEvaluator(directory)


@pytest.fixture
def machine(store, evaluator, ledger, directory, clock) -> RequestStateMachine:
    return RequestStateMachine(store, evaluator, ledger, directory, clock=clock)


@pytest.fixture
def tracker(store, scheduler, clock) -> EscalationTracker:
    return EscalationTracker(store, scheduler, clock=clock)


@pytest.fixture
def settings() -> Settings:
    return Settings(escalation_scheduler="disabled", store_backend="memory")


@pytest.fixture
def desk(settings, directory, store, scheduler, clock) -> AccessDesk:
    return build_desk(settings, directory=directory, store=store, scheduler=scheduler, clock=clock)


@pytest.fixture
def client(desk) -> TestClient:
    """API client wired to the test desk."""
    from accessgate.api.deps import get_desk
    from accessgate.api.main import app

    app.dependency_overrides[get_desk] = lambda: desk
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
