"""Access request statuses and decision transitions.

State Machine Diagram:

    ┌──────────┐
    │ PENDING  │ ← Submitted, awaiting the primary or fallback approver
    └────┬─────┘
         │
         ├─────────────────────┐
         │                     │
    ┌────▼─────┐         ┌─────▼────┐
    │ APPROVED │         │ REJECTED │
    └──────────┘         └──────────┘

Requests that need no approval are recorded directly as APPROVED.
APPROVED and REJECTED are final; a request is decided at most once.
"""

from enum import Enum
from typing import Dict, NamedTuple, Optional, Set, Tuple


class RequestStatus(str, Enum):
    """Statuses of access requests and escalation requests."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DecisionOutcome(str, Enum):
    """Decisions an approver can make."""

    APPROVE = "approve"
    REJECT = "reject"


class TransitionRule(NamedTuple):
    """Defines a valid decision transition."""
    from_state: RequestStatus
    to_state: RequestStatus
    outcome: DecisionOutcome
    requires_reason: bool = False


TRANSITION_RULES: list[TransitionRule] = [
    TransitionRule(RequestStatus.PENDING, RequestStatus.APPROVED, DecisionOutcome.APPROVE),
    TransitionRule(RequestStatus.PENDING, RequestStatus.REJECTED, DecisionOutcome.REJECT,
                   requires_reason=True),
]

TRANSITION_TARGETS: Dict[Tuple[RequestStatus, DecisionOutcome], TransitionRule] = {
    (rule.from_state, rule.outcome): rule for rule in TRANSITION_RULES
}

FINAL_STATES: Set[RequestStatus] = {
    RequestStatus.APPROVED,
    RequestStatus.REJECTED,
}


def can_transition(from_state: RequestStatus, outcome: DecisionOutcome) -> bool:
    """Check if a decision is valid from the given status."""
    return (RequestStatus(from_state), DecisionOutcome(outcome)) in TRANSITION_TARGETS


def get_transition_rule(from_state: RequestStatus, outcome: DecisionOutcome) -> Optional[TransitionRule]:
    """Get the transition rule for a status/decision combination."""
    return TRANSITION_TARGETS.get((RequestStatus(from_state), DecisionOutcome(outcome)))
