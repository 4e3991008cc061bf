"""Approval workflow for AccessGate.

Access requests are submitted pending, routed to their primary approver,
and decided exactly once by that approver or by override authority.
"""

from .states import (
    DecisionOutcome,
    FINAL_STATES,
    RequestStatus,
    TransitionRule,
    TRANSITION_RULES,
    can_transition,
    get_transition_rule,
)
from .models import AccessRequest, new_request_id
from .links import generate_access_link, link_for_request
from .ledger import ApprovalLedger, BatchResult, Decision

__all__ = [
    "AccessRequest",
    "ApprovalLedger",
    "BatchResult",
    "Decision",
    "DecisionOutcome",
    "FINAL_STATES",
    "RequestStatus",
    "TRANSITION_RULES",
    "TransitionRule",
    "can_transition",
    "generate_access_link",
    "get_transition_rule",
    "link_for_request",
    "new_request_id",
]
