"""Request state record and inbound field updates.

A RequestState holds one requester's in-flight selections. Missing fields
and confidence are derived from the selections every time they are read,
so they can never go stale.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from accessgate.core.directory import Directory
from accessgate.core.policy.engine import Confidence, confidence_for
from accessgate.core.policy.rules import (
    AccessLevel,
    ResourceSystem,
    is_account_owned,
    is_project_scoped,
)
from accessgate.core.rbac.roles import Role, is_lowest_privilege
from accessgate.core.scopes import AccountScope, OpenScope, ProjectScope, Scope
from .states import TaskStatus

logger = logging.getLogger(__name__)


# Field names, in the order they are asked for
FIELD_SYSTEM = "system"
FIELD_TARGET_OWNER = "target_owner_id"
FIELD_PROJECT = "project"
FIELD_ACCESS_LEVEL = "access_level"


def coerce_system(value: Any) -> Optional[ResourceSystem]:
    """Match an untrusted value to a resource-system, or None."""
    if value is None or isinstance(value, ResourceSystem):
        return value
    wanted = str(value).strip().lower()
    for system in ResourceSystem:
        if wanted in (system.value.lower(), system.name.lower()):
            return system
    logger.debug("Ignoring unknown system %r", value)
    return None


def coerce_level(value: Any) -> Optional[AccessLevel]:
    """Match an untrusted value to an access level, or None."""
    if value is None or isinstance(value, AccessLevel):
        return value
    wanted = str(value).strip().lower().replace("_", "-").replace(" ", "-")
    for level in AccessLevel:
        if wanted == level.value:
            return level
    logger.debug("Ignoring unknown access level %r", value)
    return None


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class FieldUpdates:
    """
    Best-effort field guesses for a request state.

    Every field is optional; any value present is treated as a correction
    of the current selection.
    """
    system: Optional[ResourceSystem] = None
    access_level: Optional[AccessLevel] = None
    project: Optional[str] = None
    target_owner_id: Optional[str] = None

    @classmethod
    def from_raw(cls, data: Optional[Mapping[str, Any]]) -> "FieldUpdates":
        """Build updates from untrusted input, dropping unrecognised values."""
        data = data or {}
        return cls(
            system=coerce_system(data.get("system")),
            access_level=coerce_level(data.get("access_level")),
            project=_clean(data.get("project")),
            target_owner_id=_clean(data.get("target_owner_id")),
        )

    def merged(self, override: Optional["FieldUpdates"]) -> "FieldUpdates":
        """Combine with another set of updates; its values win."""
        if override is None:
            return self
        return FieldUpdates(
            system=override.system or self.system,
            access_level=override.access_level or self.access_level,
            project=override.project or self.project,
            target_owner_id=override.target_owner_id or self.target_owner_id,
        )

    def is_empty(self) -> bool:
        return not any((self.system, self.access_level, self.project, self.target_owner_id))


@dataclass
class RequestState:
    """One requester's in-flight access request."""
    requester_id: str
    role: Role

    # Selections
    system: Optional[ResourceSystem] = None
    access_level: Optional[AccessLevel] = None
    project: Optional[str] = None
    target_owner_id: Optional[str] = None

    status: TaskStatus = TaskStatus.DRAFT

    # Outcome: access_link for approvals, rejection_reason for rejections
    access_link: Optional[str] = None
    rejection_reason: Optional[str] = None
    approver_id: Optional[str] = None
    approver_role: Optional[Role] = None
    decided_at: Optional[datetime] = None

    request_id: Optional[str] = None
    escalation_target: Optional[str] = None

    @property
    def needs_target_owner(self) -> bool:
        return is_account_owned(self.system) and is_lowest_privilege(self.role)

    @property
    def needs_project(self) -> bool:
        return is_project_scoped(self.system)

    @property
    def missing_fields(self) -> List[str]:
        """Required fields not yet selected, in the order they are asked."""
        missing = []
        if self.system is None:
            missing.append(FIELD_SYSTEM)
        if self.needs_target_owner and not self.target_owner_id:
            missing.append(FIELD_TARGET_OWNER)
        if self.needs_project and not self.project:
            missing.append(FIELD_PROJECT)
        if self.access_level is None:
            missing.append(FIELD_ACCESS_LEVEL)
        return missing

    @property
    def next_field(self) -> Optional[str]:
        missing = self.missing_fields
        return missing[0] if missing else None

    @property
    def confidence(self) -> Confidence:
        return confidence_for(self.role, self.access_level)

    @property
    def is_account_owned(self) -> bool:
        """Targets someone else's account, so that person must consent."""
        return bool(
            is_account_owned(self.system)
            and self.target_owner_id
            and self.target_owner_id != self.requester_id
        )

    def scope(self, directory: Directory) -> Scope:
        """Resolve the scope that decides the primary approver."""
        if self.needs_project and self.project:
            project = directory.project(self.project)
            return ProjectScope(
                project_id=self.project,
                project_name=project.name if project else self.project,
                owner_id=project.owner_id if project else None,
            )
        if self.is_account_owned:
            return AccountScope(owner_id=self.target_owner_id)
        return OpenScope()

    def clear_outcome(self) -> None:
        self.access_link = None
        self.rejection_reason = None
        self.approver_id = None
        self.approver_role = None
        self.decided_at = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requester_id": self.requester_id,
            "role": self.role.value,
            "system": self.system.value if self.system else None,
            "access_level": self.access_level.value if self.access_level else None,
            "project": self.project,
            "target_owner_id": self.target_owner_id,
            "status": self.status.value,
            "missing_fields": self.missing_fields,
            "next_field": self.next_field,
            "confidence": self.confidence.value,
            "access_link": self.access_link,
            "rejection_reason": self.rejection_reason,
            "approver_id": self.approver_id,
            "approver_role": self.approver_role.value if self.approver_role else None,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
            "request_id": self.request_id,
            "escalation_target": self.escalation_target,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RequestState":
        """Rebuild a state; derived entries in the data are ignored."""
        decided_at = data.get("decided_at")
        return cls(
            requester_id=data["requester_id"],
            role=Role(data["role"]),
            system=coerce_system(data.get("system")),
            access_level=coerce_level(data.get("access_level")),
            project=data.get("project"),
            target_owner_id=data.get("target_owner_id"),
            status=TaskStatus(data.get("status", TaskStatus.DRAFT.value)),
            access_link=data.get("access_link"),
            rejection_reason=data.get("rejection_reason"),
            approver_id=data.get("approver_id"),
            approver_role=Role(data["approver_role"]) if data.get("approver_role") else None,
            decided_at=datetime.fromisoformat(decided_at) if decided_at else None,
            request_id=data.get("request_id"),
            escalation_target=data.get("escalation_target"),
        )
