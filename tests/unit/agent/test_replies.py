"""Tests for assistant replies."""

from accessgate.agent.replies import (
    NEXT_REQUEST,
    WELCOME,
    escalation_opened_reply,
    escalation_request_message,
    escalation_resolved_message,
    question_for,
    status_reply,
)
from accessgate.core.policy.rules import AccessLevel, ResourceSystem
from accessgate.core.rbac.roles import Role
from accessgate.core.requests.machine import StepResult
from accessgate.core.requests.models import (
    FIELD_ACCESS_LEVEL,
    FIELD_SYSTEM,
    FieldUpdates,
    RequestState,
)
from accessgate.core.requests.states import TaskStatus


class TestQuestions:
    """Questions for missing fields."""

    def test_system_question(self):
        state = RequestState(requester_id="dev-001", role=Role.DEVELOPER)
        assert question_for(FIELD_SYSTEM, state) == WELCOME

    def test_level_question_per_system(self):
        jira = RequestState(requester_id="dev-001", role=Role.DEVELOPER, system=ResourceSystem.JIRA)
        email = RequestState(requester_id="dev-001", role=Role.DEVELOPER, system=ResourceSystem.EMAIL)
        assert "viewer" in question_for(FIELD_ACCESS_LEVEL, jira)
        assert "read-only" in question_for(FIELD_ACCESS_LEVEL, email)

    def test_questions_bounded(self):
        state = RequestState(requester_id="dev-001", role=Role.DEVELOPER, system=ResourceSystem.EMAIL)
        assert len(question_for(FIELD_ACCESS_LEVEL, state, limit=20)) == 20


class TestStatusReply:
    """Status lines after a step."""

    def test_next_question(self, machine, directory):
        step = machine.apply("dev-001", Role.DEVELOPER, FieldUpdates(system=ResourceSystem.GITHUB))
        assert "Which project" in status_reply(step, directory)

    def test_low_confidence_correction(self, machine, directory):
        step = machine.apply(
            "intern-001", Role.INTERN,
            FieldUpdates(system=ResourceSystem.JIRA, target_owner_id="intern-001", access_level=AccessLevel.ADMIN),
        )
        assert status_reply(step, directory).startswith("Admin is not available")

    def test_escalation_prompt(self, machine, directory):
        step = machine.apply(
            "dev-001", Role.DEVELOPER,
            FieldUpdates(system=ResourceSystem.GITHUB, project="project-2", access_level=AccessLevel.READ_ONLY),
        )
        assert status_reply(step, directory) == "Not assigned to Project Beta. Escalate to Manager Beta?"

    def test_policy_denial(self, machine, directory):
        step = machine.apply(
            "manager-001", Role.MANAGER,
            FieldUpdates(system=ResourceSystem.EMAIL, access_level=AccessLevel.ADMIN),
        )
        assert status_reply(step, directory).startswith("Cannot approve:")

    def test_submitted(self, machine, directory):
        step = machine.apply(
            "dev-001", Role.DEVELOPER,
            FieldUpdates(system=ResourceSystem.GITHUB, project="project-1", access_level=AccessLevel.READ_WRITE),
        )
        reply = status_reply(step, directory)
        assert reply.startswith("Request submitted: read-write access to GitHub.")
        assert "Manager Alpha (Project Owner)" in reply

    def test_account_owner_label(self, machine, directory):
        step = machine.apply(
            "intern-001", Role.INTERN,
            FieldUpdates(system=ResourceSystem.EMAIL, target_owner_id="dev-001", access_level=AccessLevel.READ_ONLY),
        )
        assert "Dana Developer (Account Owner)" in status_reply(step, directory)

    def test_still_awaiting(self, machine, directory):
        machine.apply(
            "dev-001", Role.DEVELOPER,
            FieldUpdates(system=ResourceSystem.GITHUB, project="project-1", access_level=AccessLevel.READ_WRITE),
        )
        step = machine.apply("dev-001", Role.DEVELOPER)
        assert status_reply(step, directory).startswith("Still awaiting approval")

    def test_auto_approved_with_link(self, machine, directory):
        step = machine.apply(
            "intern-001", Role.INTERN,
            FieldUpdates(system=ResourceSystem.EMAIL, target_owner_id="intern-001",
                         access_level=AccessLevel.READ_ONLY),
        )
        assert status_reply(step, directory) == "Request approved. Link: mailto:intern-001@company.com"

    def test_downgraded(self, machine, directory):
        step = machine.apply(
            "intern-001", Role.INTERN,
            FieldUpdates(system=ResourceSystem.EMAIL, target_owner_id="intern-001",
                         access_level=AccessLevel.READ_WRITE),
        )
        assert status_reply(step, directory).startswith("Adjusted to read-only and approved.")

    def test_rejected_prompts_next_request(self, directory):
        state = RequestState(requester_id="dev-001", role=Role.DEVELOPER, status=TaskStatus.REJECTED)
        assert status_reply(StepResult(state=state), directory) == NEXT_REQUEST

    def test_replies_bounded(self, machine, directory):
        step = machine.apply(
            "dev-001", Role.DEVELOPER,
            FieldUpdates(system=ResourceSystem.GITHUB, project="project-1", access_level=AccessLevel.READ_WRITE),
        )
        assert len(status_reply(step, directory, limit=40)) == 40


class TestEscalationMessages:
    """Escalation lines for requester and owner."""

    def test_messages(self, tracker, directory):
        escalation = tracker.open(
            "dev-001", "project-2", ResourceSystem.GITHUB, AccessLevel.READ_ONLY, "manager-002",
        )
        assert escalation_opened_reply(escalation, directory).startswith("Escalated to Manager Beta.")
        request_line = escalation_request_message(escalation, directory)
        assert request_line.startswith("Dana Developer asks to join Project Beta")
        assert escalation.id in request_line

        resolved = tracker.resolve(escalation.id, "manager-002", Role.MANAGER, approved=True, justification="Welcome")
        assert escalation_resolved_message(resolved, directory) == "Escalation for Project Beta approved: Welcome"
