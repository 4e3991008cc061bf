"""Per-requester request state and its state machine."""

from .states import TaskStatus, StateTransition, TERMINAL_STATES, next_status
from .models import (
    FIELD_ACCESS_LEVEL,
    FIELD_PROJECT,
    FIELD_SYSTEM,
    FIELD_TARGET_OWNER,
    FieldUpdates,
    RequestState,
    coerce_level,
    coerce_system,
)
from .machine import BlockReason, RequestStateMachine, StepResult

__all__ = [
    "BlockReason",
    "FIELD_ACCESS_LEVEL",
    "FIELD_PROJECT",
    "FIELD_SYSTEM",
    "FIELD_TARGET_OWNER",
    "FieldUpdates",
    "RequestState",
    "RequestStateMachine",
    "StateTransition",
    "StepResult",
    "TERMINAL_STATES",
    "TaskStatus",
    "coerce_level",
    "coerce_system",
    "next_status",
]
