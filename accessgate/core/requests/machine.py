"""Request state machine.

Owns every requester's RequestState. Inbound field updates are merged,
and once nothing is missing the machine asks the policy evaluator whether
the request can be granted, submits it to the approval ledger, or reports
why it cannot proceed. Policy denials are returned as values and leave the
state IN_PROGRESS; only an approver's decision moves a state to REJECTED.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from accessgate.common.clock import Clock, utcnow
from accessgate.core.approval.ledger import ApprovalLedger
from accessgate.core.approval.models import AccessRequest
from accessgate.core.approval.states import DecisionOutcome
from accessgate.core.directory import Directory
from accessgate.core.errors import AccessGateError, InvalidTransitionError, RecordNotFoundError
from accessgate.core.policy.engine import Confidence, PolicyDecision, PolicyEvaluator
from accessgate.core.policy.rules import is_account_owned, is_project_scoped
from accessgate.core.rbac.roles import Role
from accessgate.core.scopes import AccountScope
from accessgate.store.base import RecordStore
from .models import FieldUpdates, RequestState
from .states import LOCKED_STATES, StateTransition, TaskStatus, next_status

logger = logging.getLogger(__name__)


class BlockReason(str, Enum):
    """Why a complete request did not move forward."""

    LOW_CONFIDENCE = "low_confidence"            # Intern asking for admin
    POLICY_DENIED = "policy_denied"              # Evaluator said no
    ESCALATION_REQUIRED = "escalation_required"  # Not a project member
    AWAITING = "awaiting"                        # Waiting on an approver
    CLOSED = "closed"                            # Terminal, needs a reset


@dataclass(frozen=True)
class StepResult:
    """Outcome of applying updates to a request state."""
    state: RequestState
    finalized: bool = False
    blocked: Optional[BlockReason] = None
    decision: Optional[PolicyDecision] = None
    request: Optional[AccessRequest] = None
    error: Optional[str] = None

    @property
    def next_field(self) -> Optional[str]:
        return self.state.next_field


class RequestStateMachine:
    """
    State machine over per-requester request states.

    Handles:
    - Merging untrusted field updates
    - Finalizing complete requests through the policy evaluator
    - Writing approver decisions back
    - Resetting to a fresh draft
    """

    KIND = "request_state"

    def __init__(
        self,
        store: RecordStore,
        evaluator: PolicyEvaluator,
        ledger: ApprovalLedger,
        directory: Directory,
        *,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize the machine.

        Args:
            store: Record store holding request states
            evaluator: Policy evaluator consulted on finalization
            ledger: Approval ledger receiving finalized requests
            directory: Directory for names, projects and owners
            clock: Source of decision timestamps
        """
        self.store = store
        self.evaluator = evaluator
        self.ledger = ledger
        self.directory = directory
        self.clock = clock or utcnow

    # Persistence

    def get(self, requester_id: str) -> Optional[RequestState]:
        record = self.store.get(self.KIND, requester_id)
        return RequestState.from_dict(record) if record else None

    def _save(self, state: RequestState) -> None:
        self.store.put(self.KIND, state.requester_id, state.to_dict())

    def _require(self, requester_id: str) -> RequestState:
        state = self.get(requester_id)
        if state is None:
            raise RecordNotFoundError("Request state", requester_id)
        return state

    def _move(self, state: RequestState, transition: StateTransition) -> None:
        target = next_status(state.status, transition)
        if target is None:
            raise InvalidTransitionError(
                f"Cannot {transition.value} a request that is {state.status.value}",
                from_state=state.status.value,
                action=transition.value,
            )
        state.status = target

    def get_or_create(self, requester_id: str, role: Role) -> RequestState:
        """Get the requester's state, creating a DRAFT on first interaction."""
        with self.store.lock(self.KIND, requester_id):
            state = self.get(requester_id)
            if state is None:
                state = RequestState(requester_id=requester_id, role=Role(role))
                self._save(state)
                logger.debug("Created request state for %s", requester_id)
            return state

    def reset(self, requester_id: str, role: Role) -> RequestState:
        """Replace any existing state with a fresh DRAFT."""
        with self.store.lock(self.KIND, requester_id):
            state = RequestState(requester_id=requester_id, role=Role(role))
            self._save(state)
        logger.info("Reset request state for %s", requester_id)
        return state

    # Updates

    def _merge(self, state: RequestState, updates: FieldUpdates) -> None:
        if updates.system is not None and updates.system != state.system:
            # A first selection keeps a level given before it
            if state.system is not None:
                logger.debug(
                    "%s switched from %s to %s",
                    state.requester_id, state.system.value, updates.system.value,
                )
                state.access_level = None
            state.system = updates.system
            if not is_project_scoped(updates.system):
                state.project = None
            if not is_account_owned(updates.system):
                state.target_owner_id = None

        if updates.access_level is not None:
            state.access_level = updates.access_level

        if updates.project is not None and (state.system is None or is_project_scoped(state.system)):
            state.project = updates.project

        if updates.target_owner_id is not None and (state.system is None or is_account_owned(state.system)):
            state.target_owner_id = updates.target_owner_id

        state.escalation_target = None

    def apply(self, requester_id: str, role: Role, updates: Optional[FieldUpdates] = None) -> StepResult:
        """
        Merge field updates and finalize once the request is complete.

        Args:
            requester_id: Requester whose state is updated
            role: Role of the requester, used on first interaction
            updates: Field guesses; any value present is a correction

        Returns:
            StepResult describing the new state and anything blocking it
        """
        updates = updates or FieldUpdates()

        with self.store.lock(self.KIND, requester_id):
            state = self.get_or_create(requester_id, role)

            if state.status in LOCKED_STATES:
                blocked = BlockReason.AWAITING if state.status == TaskStatus.AWAITING_APPROVAL else BlockReason.CLOSED
                return StepResult(state=state, blocked=blocked)

            self._merge(state, updates)
            if state.status == TaskStatus.DRAFT and state.system is not None:
                self._move(state, StateTransition.START)
            self._save(state)

            if state.status != TaskStatus.IN_PROGRESS or state.missing_fields:
                return StepResult(state=state)

            try:
                return self._finalize(state)
            except AccessGateError as e:
                logger.warning("Auto-finalize failed for %s: %s", requester_id, e)
                return StepResult(state=self._require(requester_id), blocked=BlockReason.POLICY_DENIED, error=str(e))

    # Finalization

    def finalize(self, requester_id: str) -> StepResult:
        """
        Finalize a complete, in-progress request.

        Raises:
            RecordNotFoundError: If the requester has no state
            InvalidTransitionError: If the state is not IN_PROGRESS or is
                missing fields
        """
        with self.store.lock(self.KIND, requester_id):
            return self._finalize(self._require(requester_id))

    def _finalize(self, state: RequestState) -> StepResult:
        if state.status != TaskStatus.IN_PROGRESS:
            raise InvalidTransitionError(
                f"Cannot finalize a request that is {state.status.value}",
                from_state=state.status.value,
                action="finalize",
            )
        if state.missing_fields:
            raise InvalidTransitionError(
                f"Cannot finalize with missing fields: {', '.join(state.missing_fields)}",
                from_state=state.status.value,
                action="finalize",
            )

        if state.confidence == Confidence.LOW:
            logger.info("Low-confidence request held for %s", state.requester_id)
            return StepResult(state=state, blocked=BlockReason.LOW_CONFIDENCE)

        decision = self.evaluator.evaluate(
            state.role,
            state.system,
            state.access_level,
            requester_id=state.requester_id,
            project_id=state.project if state.needs_project else None,
        )

        if decision.requires_escalation:
            state.escalation_target = decision.escalation_target
            self._save(state)
            logger.info(
                "%s needs escalation to %s for %s",
                state.requester_id, decision.escalation_target, state.project,
            )
            return StepResult(state=state, blocked=BlockReason.ESCALATION_REQUIRED, decision=decision)

        if not decision.valid:
            logger.info("Policy denied %s: %s", state.requester_id, decision.rejection_reason)
            return StepResult(state=state, blocked=BlockReason.POLICY_DENIED, decision=decision)

        scope = state.scope(self.directory)
        requires_approval = isinstance(scope, AccountScope) or decision.requires_approval
        snapshot = dict(
            requester_id=state.requester_id,
            requester_name=self.directory.display_name(state.requester_id),
            requester_role=state.role,
            system=state.system,
            requested_level=state.access_level,
            granted_level=decision.allowed_level,
            scope=scope,
            downgrade_reason=decision.downgrade_reason,
        )

        if requires_approval:
            request = self.ledger.submit(**snapshot)
            self._move(state, StateTransition.SUBMIT)
            state.request_id = request.id
            state.approver_id = request.assigned_approver_id or request.fallback_approver_id
        else:
            request = self.ledger.record_auto_approval(**snapshot)
            self._move(state, StateTransition.AUTO_APPROVE)
            state.request_id = request.id
            state.access_link = request.access_link
            state.approver_id = state.requester_id
            state.approver_role = state.role
            state.decided_at = request.decided_at

        self._save(state)
        logger.info("Finalized %s as %s (%s)", state.requester_id, state.status.value, request.id)
        return StepResult(state=state, finalized=True, decision=decision, request=request)

    # Decisions

    def record_decision(
        self,
        requester_id: str,
        request_id: str,
        outcome: DecisionOutcome,
        actor_id: str,
        actor_role: Role,
        *,
        access_link: Optional[str] = None,
        reason: Optional[str] = None,
        decided_at=None,
    ) -> RequestState:
        """
        Write an approver's decision back into the requester's state.

        Raises:
            RecordNotFoundError: If the requester has no state
            InvalidTransitionError: If the state is not awaiting this request
        """
        outcome = DecisionOutcome(outcome)

        with self.store.lock(self.KIND, requester_id):
            state = self._require(requester_id)
            if state.request_id != request_id:
                raise InvalidTransitionError(
                    f"Request state for {requester_id} is not tracking {request_id}",
                    from_state=state.status.value,
                    action=outcome.value,
                )

            transition = StateTransition.APPROVE if outcome == DecisionOutcome.APPROVE else StateTransition.REJECT
            self._move(state, transition)

            state.clear_outcome()
            if outcome == DecisionOutcome.APPROVE:
                state.access_link = access_link
            else:
                state.rejection_reason = reason
            state.approver_id = actor_id
            state.approver_role = Role(actor_role)
            state.decided_at = decided_at or self.clock()
            self._save(state)

        logger.info("%s is now %s (%s by %s)", requester_id, state.status.value, request_id, actor_id)
        return state
