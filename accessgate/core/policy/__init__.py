"""Policy evaluation for AccessGate.

Decides grant, downgrade, approval, escalation or denial for access requests.
"""

from .engine import (
    Confidence,
    Membership,
    PolicyDecision,
    PolicyEvaluator,
    PolicyVerdict,
    confidence_for,
    evaluate_access,
)
from .rules import AccessLevel, ResourceSystem, SystemRule, CAPABILITY_TABLE

__all__ = [
    "AccessLevel",
    "CAPABILITY_TABLE",
    "Confidence",
    "Membership",
    "PolicyDecision",
    "PolicyEvaluator",
    "PolicyVerdict",
    "ResourceSystem",
    "SystemRule",
    "confidence_for",
    "evaluate_access",
]
