"""Request state lifecycle.

State Machine Diagram:

    ┌─────────┐
    │  DRAFT  │ ← First interaction, nothing selected
    └────┬────┘
         │ system selected
    ┌────▼────────┐
    │ IN_PROGRESS │ ← Collecting fields; policy denials stay here
    └────┬────────┘
         │ complete + policy valid
         ├──────────────────────────┐
         │ approval required        │ no approval required
    ┌────▼──────────────┐      ┌────▼─────┐
    │ AWAITING_APPROVAL │─────▶│ APPROVED │
    └────┬──────────────┘      └──────────┘
         │ rejected by an approver
    ┌────▼─────┐
    │ REJECTED │
    └──────────┘

APPROVED and REJECTED are terminal. Leaving them means a reset to a fresh
DRAFT, never an in-place transition.
"""

from enum import Enum
from typing import Dict, FrozenSet, NamedTuple, Optional, Set, Tuple


class TaskStatus(str, Enum):
    """Lifecycle status of a requester's in-flight request."""

    DRAFT = "DRAFT"
    IN_PROGRESS = "IN_PROGRESS"
    AWAITING_APPROVAL = "AWAITING_APPROVAL"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class StateTransition(str, Enum):
    """Events that move a request state."""

    START = "start"                  # First system selection
    SUBMIT = "submit"                # Finalized, approval required
    AUTO_APPROVE = "auto_approve"    # Finalized, no approval required
    APPROVE = "approve"              # Approver granted it
    REJECT = "reject"                # Approver refused it


class TransitionRule(NamedTuple):
    """Defines a valid state transition."""
    from_state: TaskStatus
    to_state: TaskStatus
    transition: StateTransition


TRANSITION_RULES: list[TransitionRule] = [
    TransitionRule(TaskStatus.DRAFT, TaskStatus.IN_PROGRESS, StateTransition.START),
    TransitionRule(TaskStatus.IN_PROGRESS, TaskStatus.AWAITING_APPROVAL, StateTransition.SUBMIT),
    TransitionRule(TaskStatus.IN_PROGRESS, TaskStatus.APPROVED, StateTransition.AUTO_APPROVE),
    TransitionRule(TaskStatus.AWAITING_APPROVAL, TaskStatus.APPROVED, StateTransition.APPROVE),
    TransitionRule(TaskStatus.AWAITING_APPROVAL, TaskStatus.REJECTED, StateTransition.REJECT),
]

TRANSITIONS: Dict[Tuple[TaskStatus, StateTransition], TaskStatus] = {
    (rule.from_state, rule.transition): rule.to_state for rule in TRANSITION_RULES
}

TERMINAL_STATES: FrozenSet[TaskStatus] = frozenset({
    TaskStatus.APPROVED,
    TaskStatus.REJECTED,
})

# Chat messages never change these
LOCKED_STATES: Set[TaskStatus] = {
    TaskStatus.AWAITING_APPROVAL,
    TaskStatus.APPROVED,
    TaskStatus.REJECTED,
}


def next_status(current: TaskStatus, transition: StateTransition) -> Optional[TaskStatus]:
    """Target status of a transition, or None if it is not allowed."""
    return TRANSITIONS.get((TaskStatus(current), StateTransition(transition)))
