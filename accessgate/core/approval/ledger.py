"""Approval ledger for access requests.

Owns every submitted AccessRequest and its pending/approved/rejected
lifecycle. A request is decided exactly once: the decision is a
read-decide-write under the record lock, committed with a
compare-and-swap on the pending status.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from accessgate.common.clock import Clock, utcnow
from accessgate.core.errors import (
    AccessGateError,
    InvalidTransitionError,
    ReasonTooLongError,
    RecordNotFoundError,
)
from accessgate.core.policy.rules import AccessLevel, ResourceSystem
from accessgate.core.rbac.checker import DecisionChecker
from accessgate.core.rbac.roles import Role
from accessgate.core.scopes import Scope
from accessgate.store.base import RecordStore
from .links import link_for_request
from .models import AccessRequest, new_request_id
from .states import DecisionOutcome, RequestStatus, get_transition_rule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decision:
    """A committed decision and the messages it produced."""
    request: AccessRequest
    notifications: Sequence[Any] = ()

    @property
    def outcome(self) -> DecisionOutcome:
        if self.request.status == RequestStatus.APPROVED:
            return DecisionOutcome.APPROVE
        return DecisionOutcome.REJECT


@dataclass
class BatchResult:
    """Per-id outcome of a batch decision."""
    outcome: DecisionOutcome
    decisions: List[Decision] = field(default_factory=list)
    failed: List[Dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        key = "approved" if self.outcome == DecisionOutcome.APPROVE else "rejected"
        return {
            key: [d.request.id for d in self.decisions],
            "failed": list(self.failed),
        }


class ApprovalLedger:
    """
    Ledger of access requests.

    Handles:
    - Submitting pending requests and recording auto-approvals
    - Deciding requests exactly once, with authority checks
    - Pending queues filtered by viewer
    - Audit listings and batch decisions
    """

    KIND = "access_request"

    def __init__(
        self,
        store: RecordStore,
        composer: Optional[Any] = None,
        *,
        fallback_approver_id: str = "admin-001",
        max_reason_length: int = 120,
        link_factory: Optional[Callable[[AccessRequest], str]] = None,
        clock: Optional[Clock] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        """
        Initialize the ledger.

        Args:
            store: Record store holding the requests
            composer: Notification composer; decisions carry no messages
                without one
            fallback_approver_id: Override approver recorded on every request
            max_reason_length: Maximum rejection reason length
            link_factory: Builds the access link for an approved request
            clock: Source of timestamps
            id_factory: Source of request ids
        """
        self.store = store
        self.composer = composer
        self.fallback_approver_id = fallback_approver_id
        self.max_reason_length = max_reason_length
        self.link_factory = link_factory or link_for_request
        self.clock = clock or utcnow
        self.id_factory = id_factory or new_request_id

    # Creation

    def _build(
        self,
        *,
        requester_id: str,
        requester_name: str,
        requester_role: Role,
        system: ResourceSystem,
        requested_level: AccessLevel,
        granted_level: Optional[AccessLevel],
        scope: Scope,
        requires_approval: bool,
        downgrade_reason: Optional[str],
        extra_data: Optional[Dict[str, Any]],
    ) -> AccessRequest:
        now = self.clock()
        return AccessRequest(
            id=self.id_factory(),
            requester_id=requester_id,
            requester_name=requester_name,
            requester_role=Role(requester_role),
            system=ResourceSystem(system),
            requested_level=AccessLevel(requested_level),
            granted_level=AccessLevel(granted_level or requested_level),
            scope=scope,
            fallback_approver_id=self.fallback_approver_id,
            requires_approval=requires_approval,
            status=RequestStatus.PENDING,
            created_at=now,
            updated_at=now,
            downgrade_reason=downgrade_reason,
            extra_data=dict(extra_data or {}),
        )

    def submit(
        self,
        *,
        requester_id: str,
        requester_name: str,
        requester_role: Role,
        system: ResourceSystem,
        requested_level: AccessLevel,
        scope: Scope,
        granted_level: Optional[AccessLevel] = None,
        downgrade_reason: Optional[str] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> AccessRequest:
        """
        Submit a request for approval.

        Returns:
            The pending AccessRequest
        """
        request = self._build(
            requester_id=requester_id,
            requester_name=requester_name,
            requester_role=requester_role,
            system=system,
            requested_level=requested_level,
            granted_level=granted_level,
            scope=scope,
            requires_approval=True,
            downgrade_reason=downgrade_reason,
            extra_data=extra_data,
        )
        self.store.put(self.KIND, request.id, request.to_dict())
        logger.info(
            "Submitted %s: %s requests %s %s, approver %s",
            request.id, requester_id, request.granted_level.value, request.system.value,
            request.assigned_approver_id or self.fallback_approver_id,
        )
        return request

    def record_auto_approval(
        self,
        *,
        requester_id: str,
        requester_name: str,
        requester_role: Role,
        system: ResourceSystem,
        requested_level: AccessLevel,
        scope: Scope,
        granted_level: Optional[AccessLevel] = None,
        downgrade_reason: Optional[str] = None,
        extra_data: Optional[Dict[str, Any]] = None,
    ) -> AccessRequest:
        """
        Record a request that policy granted without approval.

        The requester is recorded as the decider and an access link is
        generated.

        Returns:
            The approved AccessRequest
        """
        pending = self._build(
            requester_id=requester_id,
            requester_name=requester_name,
            requester_role=requester_role,
            system=system,
            requested_level=requested_level,
            granted_level=granted_level,
            scope=scope,
            requires_approval=False,
            downgrade_reason=downgrade_reason,
            extra_data=extra_data,
        )
        request = pending.with_decision(
            status=RequestStatus.APPROVED,
            decided_by=requester_id,
            decided_by_role=Role(requester_role),
            decided_at=pending.created_at,
            access_link=self.link_factory(pending),
        )
        self.store.put(self.KIND, request.id, request.to_dict())
        logger.info("Auto-approved %s for %s", request.id, requester_id)
        return request

    # Queries

    def get(self, request_id: str) -> AccessRequest:
        """
        Get a request by ID.

        Raises:
            RecordNotFoundError: If the id is unknown
        """
        record = self.store.get(self.KIND, request_id)
        if record is None:
            raise RecordNotFoundError("Access request", request_id)
        return AccessRequest.from_dict(record)

    def _all(self) -> List[AccessRequest]:
        requests = [AccessRequest.from_dict(r) for r in self.store.values(self.KIND)]
        return sorted(requests, key=lambda r: r.created_at)

    def list_all(self) -> List[AccessRequest]:
        return self._all()

    def list_for_requester(self, requester_id: str) -> List[AccessRequest]:
        return [r for r in self._all() if r.requester_id == requester_id]

    def pending_for(self, viewer_id: str, viewer_role: Role) -> List[AccessRequest]:
        """
        Pending requests visible to a viewer.

        Override authority sees every pending request; anyone else sees
        exactly the pending requests routed to them.
        """
        checker = DecisionChecker(viewer_id, viewer_role)
        return [r for r in self._all() if r.is_pending and checker.can_view_pending(r)]

    def pending_count(self, viewer_id: str, viewer_role: Role) -> int:
        return len(self.pending_for(viewer_id, viewer_role))

    # Decisions

    def _check_reason(self, reason: Optional[str]) -> str:
        reason = (reason or "").strip()
        if not reason:
            raise ValueError("A rejection reason is required")
        if len(reason) > self.max_reason_length:
            raise ReasonTooLongError("Rejection reason", self.max_reason_length)
        return reason

    def decide(
        self,
        request_id: str,
        actor_id: str,
        actor_role: Role,
        outcome: DecisionOutcome,
        reason: Optional[str] = None,
    ) -> Decision:
        """
        Approve or reject a pending request.

        Args:
            request_id: ID of the request
            actor_id: ID of the deciding user
            actor_role: Role of the deciding user
            outcome: Approve or reject
            reason: Rejection reason, required when rejecting

        Returns:
            Decision with the updated request and its notifications

        Raises:
            RecordNotFoundError: If the request is unknown
            InvalidTransitionError: If the request was already decided
            AuthorizationDeniedError: If the actor may not decide it
            ReasonTooLongError: If the rejection reason is too long
            ValueError: If a rejection has no reason
        """
        outcome = DecisionOutcome(outcome)
        actor_role = Role(actor_role)

        with self.store.lock(self.KIND, request_id):
            request = self.get(request_id)

            rule = get_transition_rule(request.status, outcome)
            if rule is None:
                raise InvalidTransitionError(
                    f"Access request {request_id} is already {request.status.value}",
                    from_state=request.status.value,
                    action=outcome.value,
                )

            DecisionChecker(actor_id, actor_role).require_decide(request)

            if rule.requires_reason:
                reason = self._check_reason(reason)
            else:
                reason = None

            now = self.clock()
            changes: Dict[str, Any] = {
                "status": rule.to_state,
                "decided_by": actor_id,
                "decided_by_role": actor_role,
                "decided_at": now,
                "updated_at": now,
            }
            if rule.to_state == RequestStatus.APPROVED:
                changes["access_link"] = self.link_factory(request)
            else:
                changes["rejection_reason"] = reason
            updated = request.with_decision(**changes)

            if not self.store.compare_and_swap(
                self.KIND, request_id, request.status.value, updated.to_dict()
            ):
                raise InvalidTransitionError(
                    f"Access request {request_id} was decided concurrently",
                    from_state=request.status.value,
                    action=outcome.value,
                )

        logger.info(
            "%s %s by %s (%s)",
            request_id, updated.status.value, actor_id, actor_role.value,
        )
        if (
            DecisionChecker(actor_id, actor_role).is_override
            and updated.assigned_approver_id
            and updated.assigned_approver_id != actor_id
        ):
            logger.info(
                "%s decided by override authority %s instead of %s",
                request_id, actor_id, updated.assigned_approver_id,
            )

        notifications = ()
        if self.composer is not None:
            notifications = self.composer.compose(
                updated, outcome, actor_id, actor_role,
                reason=reason, access_link=updated.access_link,
            )
        return Decision(request=updated, notifications=notifications)

    def approve(self, request_id: str, actor_id: str, actor_role: Role) -> Decision:
        return self.decide(request_id, actor_id, actor_role, DecisionOutcome.APPROVE)

    def reject(self, request_id: str, actor_id: str, actor_role: Role, reason: str) -> Decision:
        return self.decide(request_id, actor_id, actor_role, DecisionOutcome.REJECT, reason)

    def batch_decide(
        self,
        request_ids: List[str],
        actor_id: str,
        actor_role: Role,
        outcome: DecisionOutcome,
        reason: Optional[str] = None,
    ) -> BatchResult:
        """
        Decide multiple requests.

        Each id is decided independently; failures are collected rather
        than aborting the batch.

        Returns:
            BatchResult with the committed decisions and per-id failures
        """
        result = BatchResult(outcome=DecisionOutcome(outcome))

        for request_id in request_ids:
            try:
                result.decisions.append(
                    self.decide(request_id, actor_id, actor_role, outcome, reason)
                )
            except (AccessGateError, ValueError) as e:
                result.failed.append({
                    "id": request_id,
                    "error": str(e),
                })

        return result
