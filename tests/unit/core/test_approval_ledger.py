"""Tests for the approval ledger."""

import threading

import pytest

from accessgate.core.approval.ledger import ApprovalLedger
from accessgate.core.approval.states import DecisionOutcome, RequestStatus, can_transition
from accessgate.core.errors import (
    AuthorizationDeniedError,
    InvalidTransitionError,
    ReasonTooLongError,
    RecordNotFoundError,
)
from accessgate.core.policy.rules import AccessLevel, ResourceSystem
from accessgate.core.rbac.roles import Role
from accessgate.core.scopes import AccountScope, OpenScope, ProjectScope
from accessgate.services.notifications import Audience


def submit_project_request(ledger, requester_id="dev-001", project_id="project-1", owner_id="manager-001"):
    return ledger.submit(
        requester_id=requester_id,
        requester_name="Dana Developer",
        requester_role=Role.DEVELOPER,
        system=ResourceSystem.GITHUB,
        requested_level=AccessLevel.READ_WRITE,
        scope=ProjectScope(project_id=project_id, project_name="Project Alpha", owner_id=owner_id),
    )


def submit_account_request(ledger, owner_id="dev-001"):
    return ledger.submit(
        requester_id="intern-001",
        requester_name="Ian Intern",
        requester_role=Role.INTERN,
        system=ResourceSystem.EMAIL,
        requested_level=AccessLevel.READ_ONLY,
        scope=AccountScope(owner_id=owner_id),
    )


class TestSubmission:
    """Creating ledger entries."""

    def test_submit_creates_pending(self, ledger):
        request = submit_project_request(ledger)
        assert request.status == RequestStatus.PENDING
        assert request.requires_approval is True
        assert request.assigned_approver_id == "manager-001"
        assert request.fallback_approver_id == "admin-001"
        assert ledger.get(request.id) == request

    def test_open_scope_has_no_primary_approver(self, ledger):
        request = ledger.submit(
            requester_id="dev-001",
            requester_name="Dana Developer",
            requester_role=Role.DEVELOPER,
            system=ResourceSystem.EMAIL,
            requested_level=AccessLevel.ADMIN,
            scope=OpenScope(),
        )
        assert request.assigned_approver_id is None

    def test_record_auto_approval(self, ledger):
        """Test auto-approvals are recorded with the requester as decider."""
        request = ledger.record_auto_approval(
            requester_id="dev-001",
            requester_name="Dana Developer",
            requester_role=Role.DEVELOPER,
            system=ResourceSystem.JIRA,
            requested_level=AccessLevel.VIEW,
            scope=OpenScope(),
        )
        assert request.status == RequestStatus.APPROVED
        assert request.requires_approval is False
        assert request.decided_by == "dev-001"
        assert request.decided_at == request.created_at
        assert request.access_link.startswith("https://")

    def test_identity_fields_are_immutable(self, ledger):
        request = submit_project_request(ledger)
        with pytest.raises(ValueError):
            request.with_decision(requester_id="someone-else")

    def test_custom_id_factory(self, store, clock):
        ids = iter(["req-a", "req-b"])
        ledger = ApprovalLedger(store, clock=clock, id_factory=lambda: next(ids))
        assert submit_project_request(ledger).id == "req-a"
        assert submit_project_request(ledger).id == "req-b"


class TestDecideOnce:
    """A request is decided exactly once."""

    def test_approve(self, ledger):
        request = submit_project_request(ledger)
        decision = ledger.approve(request.id, "manager-001", Role.MANAGER)
        assert decision.outcome == DecisionOutcome.APPROVE
        assert decision.request.status == RequestStatus.APPROVED
        assert decision.request.decided_by == "manager-001"
        assert decision.request.decided_by_role == Role.MANAGER
        assert decision.request.access_link == "https://github.com/company/project-1"
        assert ledger.get(request.id).status == RequestStatus.APPROVED

    def test_second_decision_raises(self, ledger):
        """Test a decided request cannot be decided again."""
        request = submit_project_request(ledger)
        ledger.approve(request.id, "manager-001", Role.MANAGER)

        with pytest.raises(InvalidTransitionError, match="already approved"):
            ledger.reject(request.id, "admin-001", Role.IT_ADMINISTRATOR, "Too late")

        stored = ledger.get(request.id)
        assert stored.status == RequestStatus.APPROVED
        assert stored.rejection_reason is None

    def test_auto_approved_cannot_be_decided(self, ledger):
        request = ledger.record_auto_approval(
            requester_id="dev-001",
            requester_name="Dana Developer",
            requester_role=Role.DEVELOPER,
            system=ResourceSystem.JIRA,
            requested_level=AccessLevel.VIEW,
            scope=OpenScope(),
        )
        with pytest.raises(InvalidTransitionError):
            ledger.approve(request.id, "admin-001", Role.IT_ADMINISTRATOR)

    def test_unknown_request(self, ledger):
        with pytest.raises(RecordNotFoundError):
            ledger.approve("req-missing", "admin-001", Role.IT_ADMINISTRATOR)

    def test_concurrent_decisions(self, ledger):
        """Test racing approvers produce exactly one decision."""
        request = submit_project_request(ledger)
        barrier = threading.Barrier(2)
        results = []

        def decide(actor_id, actor_role, outcome, reason):
            barrier.wait()
            try:
                ledger.decide(request.id, actor_id, actor_role, outcome, reason)
                results.append("ok")
            except InvalidTransitionError:
                results.append("conflict")

        threads = [
            threading.Thread(target=decide, args=("manager-001", Role.MANAGER, DecisionOutcome.APPROVE, None)),
            threading.Thread(target=decide, args=("admin-001", Role.IT_ADMINISTRATOR, DecisionOutcome.REJECT, "No")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(results) == ["conflict", "ok"]
        assert ledger.get(request.id).status in (RequestStatus.APPROVED, RequestStatus.REJECTED)

    def test_transition_table(self):
        assert can_transition(RequestStatus.PENDING, DecisionOutcome.APPROVE)
        assert not can_transition(RequestStatus.REJECTED, DecisionOutcome.APPROVE)


class TestAuthorization:
    """Who may decide."""

    def test_intern_cannot_decide(self, ledger):
        request = submit_project_request(ledger)
        with pytest.raises(AuthorizationDeniedError):
            ledger.approve(request.id, "intern-002", Role.INTERN)
        assert ledger.get(request.id).is_pending

    def test_developer_cannot_decide_project_request(self, ledger):
        request = submit_project_request(ledger)
        with pytest.raises(AuthorizationDeniedError):
            ledger.approve(request.id, "dev-002", Role.DEVELOPER)

    def test_account_owner_may_decide(self, ledger):
        """Test the account owner decides whatever their role."""
        request = submit_account_request(ledger, owner_id="dev-001")
        decision = ledger.approve(request.id, "dev-001", Role.DEVELOPER)
        assert decision.request.status == RequestStatus.APPROVED
        assert decision.request.access_link == "mailto:dev-001@company.com"

    def test_other_developer_cannot_decide_account_request(self, ledger):
        request = submit_account_request(ledger, owner_id="dev-001")
        with pytest.raises(AuthorizationDeniedError):
            ledger.approve(request.id, "dev-002", Role.DEVELOPER)

    def test_override_decides_anything(self, ledger):
        request = submit_account_request(ledger)
        decision = ledger.approve(request.id, "admin-001", Role.IT_ADMINISTRATOR)
        assert decision.request.decided_by == "admin-001"


class TestRejectionReason:
    """Rejection reasons are required and bounded."""

    def test_reason_required(self, ledger):
        request = submit_project_request(ledger)
        with pytest.raises(ValueError):
            ledger.reject(request.id, "manager-001", Role.MANAGER, "   ")
        assert ledger.get(request.id).is_pending

    def test_reason_too_long(self, ledger):
        request = submit_project_request(ledger)
        with pytest.raises(ReasonTooLongError):
            ledger.reject(request.id, "manager-001", Role.MANAGER, "x" * 121)

    def test_reason_at_limit(self, ledger):
        request = submit_project_request(ledger)
        decision = ledger.reject(request.id, "manager-001", Role.MANAGER, "x" * 120)
        assert decision.request.rejection_reason == "x" * 120
        assert decision.request.access_link is None

    def test_reason_ignored_on_approval(self, ledger):
        request = submit_project_request(ledger)
        decision = ledger.decide(request.id, "manager-001", Role.MANAGER, DecisionOutcome.APPROVE, "fine")
        assert decision.request.rejection_reason is None


class TestVisibility:
    """Pending queues are filtered exactly by primary approver."""

    def test_primary_approver_sees_own_queue(self, ledger):
        alpha = submit_project_request(ledger)
        submit_project_request(ledger, project_id="project-2", owner_id="manager-002")

        visible = ledger.pending_for("manager-001", Role.MANAGER)
        assert [r.id for r in visible] == [alpha.id]
        assert ledger.pending_count("manager-001", Role.MANAGER) == 1

    def test_override_sees_everything(self, ledger):
        submit_project_request(ledger)
        submit_account_request(ledger)
        assert ledger.pending_count("admin-001", Role.IT_ADMINISTRATOR) == 2

    def test_account_owner_sees_account_requests(self, ledger):
        request = submit_account_request(ledger, owner_id="dev-001")
        submit_project_request(ledger)
        assert [r.id for r in ledger.pending_for("dev-001", Role.DEVELOPER)] == [request.id]

    def test_decided_requests_leave_queue(self, ledger):
        request = submit_project_request(ledger)
        ledger.approve(request.id, "manager-001", Role.MANAGER)
        assert ledger.pending_for("manager-001", Role.MANAGER) == []
        assert ledger.pending_count("admin-001", Role.IT_ADMINISTRATOR) == 0

    def test_listings_ordered_by_creation(self, ledger):
        first = submit_project_request(ledger)
        second = submit_account_request(ledger)
        assert [r.id for r in ledger.list_all()] == [first.id, second.id]
        assert [r.id for r in ledger.list_for_requester("intern-001")] == [second.id]


class TestDecisionNotifications:
    """Decisions carry composed notifications."""

    def test_primary_approval_notifies_actor_and_requester(self, ledger):
        request = submit_project_request(ledger)
        decision = ledger.approve(request.id, "manager-001", Role.MANAGER)
        assert decision.notifications.recipients() == ["manager-001", "dev-001"]

    def test_override_notifies_primary_approver(self, ledger):
        """Test the bypassed primary approver hears about an override."""
        request = submit_project_request(ledger)
        decision = ledger.approve(request.id, "admin-001", Role.IT_ADMINISTRATOR)
        primary = decision.notifications.for_audience(Audience.PRIMARY_APPROVER)
        assert primary is not None
        assert primary.recipient_id == "manager-001"
        assert "approved" in primary.message

    def test_messages_are_bounded(self, ledger):
        request = submit_project_request(ledger)
        decision = ledger.reject(request.id, "admin-001", Role.IT_ADMINISTRATOR, "r" * 120)
        assert all(len(n.message) <= 120 for n in decision.notifications)

    def test_no_composer_no_notifications(self, store, clock):
        ledger = ApprovalLedger(store, clock=clock)
        request = submit_project_request(ledger)
        assert ledger.approve(request.id, "manager-001", Role.MANAGER).notifications == ()


class TestBatchDecide:
    """Batch decisions collect per-id failures."""

    def test_batch_approve(self, ledger):
        first = submit_project_request(ledger)
        second = submit_project_request(ledger)
        result = ledger.batch_decide(
            [first.id, second.id, "req-missing"],
            "admin-001", Role.IT_ADMINISTRATOR, DecisionOutcome.APPROVE,
        )
        data = result.to_dict()
        assert data["approved"] == [first.id, second.id]
        assert [f["id"] for f in data["failed"]] == ["req-missing"]

    def test_batch_reject_without_reason_fails_each(self, ledger):
        request = submit_project_request(ledger)
        result = ledger.batch_decide([request.id], "manager-001", Role.MANAGER, DecisionOutcome.REJECT)
        assert result.to_dict()["rejected"] == []
        assert len(result.failed) == 1
        assert ledger.get(request.id).is_pending

    def test_batch_skips_unauthorized(self, ledger):
        alpha = submit_project_request(ledger)
        account = submit_account_request(ledger, owner_id="dev-001")
        result = ledger.batch_decide(
            [alpha.id, account.id], "dev-001", Role.DEVELOPER, DecisionOutcome.REJECT, "No",
        )
        assert [d.request.id for d in result.decisions] == [account.id]
        assert [f["id"] for f in result.failed] == [alpha.id]
        assert ledger.get(alpha.id).is_pending
