"""Policy evaluation engine for AccessGate.

The engine is the only component that decides whether access may be
granted, downgraded, routed for approval, escalated or denied. Evaluation
runs three gates in a fixed order:

1. Membership gate: project-scoped requests from non-members escalate to
   the project owner before anything else is looked at.
2. Level gate: admin access is granted by role, never downgraded.
3. Capability gate: the capability table, with a downgrade cascade.

Evaluation is a pure function of its inputs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from accessgate.core.directory import Directory
from accessgate.core.rbac.roles import Role, has_override_authority
from .rules import (
    AccessLevel,
    ResourceSystem,
    MANAGER_ADMIN_SYSTEMS,
    find_downgrade,
    get_system_rule,
)


class PolicyVerdict(str, Enum):
    """Summary of a policy decision."""

    GRANT = "grant"                  # Permitted as requested, no approval
    DOWNGRADE = "downgrade"          # Permitted at a lower level
    APPROVAL = "approval"            # Permitted, approval required
    ESCALATE = "escalate"            # Not a project member
    DENY = "deny"                    # Not permitted at all


class Confidence(str, Enum):
    """UI-facing confidence tier. Never an input to the policy decision."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


@dataclass(frozen=True)
class Membership:
    """Project membership facts for the membership gate."""
    project_id: str
    is_member: bool
    owner_id: Optional[str] = None
    project_name: Optional[str] = None


@dataclass(frozen=True)
class PolicyDecision:
    """
    Result of evaluating one access request.
    """
    valid: bool
    requires_approval: bool = False
    allowed_level: Optional[AccessLevel] = None
    requires_escalation: bool = False
    escalation_target: Optional[str] = None
    rejection_reason: Optional[str] = None
    downgrade_reason: Optional[str] = None

    @property
    def verdict(self) -> PolicyVerdict:
        if self.requires_escalation:
            return PolicyVerdict.ESCALATE
        if not self.valid:
            return PolicyVerdict.DENY
        if self.requires_approval:
            return PolicyVerdict.APPROVAL
        if self.downgrade_reason:
            return PolicyVerdict.DOWNGRADE
        return PolicyVerdict.GRANT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "requires_approval": self.requires_approval,
            "allowed_level": self.allowed_level.value if self.allowed_level else None,
            "requires_escalation": self.requires_escalation,
            "escalation_target": self.escalation_target,
            "rejection_reason": self.rejection_reason,
            "downgrade_reason": self.downgrade_reason,
            "verdict": self.verdict.value,
        }


def evaluate_access(
    role: Role,
    system: ResourceSystem,
    level: AccessLevel,
    membership: Optional[Membership] = None,
    *,
    admin_requires_approval: bool = True,
) -> PolicyDecision:
    """
    Evaluate an access request against the access rules.

    Args:
        role: Role of the requester
        system: Resource-system requested
        level: Access level requested
        membership: Project membership facts, for project-scoped requests
        admin_requires_approval: Whether developers may request admin
            access subject to approval

    Returns:
        PolicyDecision
    """
    role = Role(role)
    system = ResourceSystem(system)
    level = AccessLevel(level)

    # Step 1: membership gate
    if membership is not None and not membership.is_member and not has_override_authority(role):
        project_label = membership.project_name or membership.project_id
        if membership.owner_id is None:
            return PolicyDecision(
                valid=False,
                rejection_reason=f"Unknown project: {project_label}",
            )
        return PolicyDecision(
            valid=False,
            requires_escalation=True,
            escalation_target=membership.owner_id,
            rejection_reason=(
                f"You are not assigned to {project_label}. "
                f"Access requires escalation to the project owner."
            ),
        )

    # Step 2: level gate
    if level == AccessLevel.ADMIN:
        return _evaluate_admin(role, system, admin_requires_approval)

    # Step 3: capability gate
    rule = get_system_rule(role, system)
    if rule is None:
        return PolicyDecision(
            valid=False,
            rejection_reason=f"Access to {system.value} is not defined for role {role.value}",
        )

    if rule.permits(level):
        return PolicyDecision(
            valid=True,
            requires_approval=rule.requires_approval,
            allowed_level=level,
        )

    downgraded = find_downgrade(rule, level)
    if downgraded is not None:
        return PolicyDecision(
            valid=True,
            requires_approval=rule.requires_approval,
            allowed_level=downgraded,
            downgrade_reason=(
                f"Requested {level.value} but role {role.value} is limited to "
                f"{downgraded.value} for {system.value}"
            ),
        )

    return PolicyDecision(
        valid=False,
        rejection_reason=f"Role {role.value} cannot be granted {level.value} access to {system.value}",
    )


def _evaluate_admin(role: Role, system: ResourceSystem, admin_requires_approval: bool) -> PolicyDecision:
    if role == Role.IT_ADMINISTRATOR:
        return PolicyDecision(valid=True, allowed_level=AccessLevel.ADMIN)

    if role == Role.MANAGER and system in MANAGER_ADMIN_SYSTEMS:
        return PolicyDecision(valid=True, allowed_level=AccessLevel.ADMIN)

    if role == Role.DEVELOPER and admin_requires_approval:
        return PolicyDecision(valid=True, requires_approval=True, allowed_level=AccessLevel.ADMIN)

    return PolicyDecision(
        valid=False,
        rejection_reason=f"Role {role.value} cannot be granted admin access to {system.value}",
    )


def confidence_for(role: Role, level: Optional[AccessLevel]) -> Confidence:
    """
    Derive the confidence tier shown to the requester.

    - read-only -> HIGH
    - Intern requesting admin -> LOW
    - otherwise (including no level yet) -> MEDIUM
    """
    if level is None:
        return Confidence.MEDIUM
    level = AccessLevel(level)
    if level == AccessLevel.READ_ONLY:
        return Confidence.HIGH
    if level == AccessLevel.ADMIN and Role(role) == Role.INTERN:
        return Confidence.LOW
    return Confidence.MEDIUM


class PolicyEvaluator:
    """
    Evaluates access requests, resolving project membership from the directory.
    """

    def __init__(self, directory: Directory, *, admin_requires_approval: bool = True):
        """
        Initialize the evaluator.

        Args:
            directory: Directory used for project membership and ownership
            admin_requires_approval: Developer admin-access flag
        """
        self.directory = directory
        self.admin_requires_approval = admin_requires_approval

    def membership(self, requester_id: Optional[str], project_id: str) -> Membership:
        project = self.directory.project(project_id)
        return Membership(
            project_id=project_id,
            is_member=self.directory.is_member(requester_id, project_id),
            owner_id=project.owner_id if project else None,
            project_name=project.name if project else None,
        )

    def evaluate(
        self,
        role: Role,
        system: ResourceSystem,
        level: AccessLevel,
        *,
        requester_id: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> PolicyDecision:
        """
        Evaluate a request.

        Args:
            role: Role of the requester
            system: Resource-system requested
            level: Access level requested
            requester_id: Requester, for the membership gate
            project_id: Project the request is scoped to, if any

        Returns:
            PolicyDecision
        """
        membership = self.membership(requester_id, project_id) if project_id else None
        return evaluate_access(
            role,
            system,
            level,
            membership,
            admin_requires_approval=self.admin_requires_approval,
        )
