"""Escalation request record."""

import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Optional

from accessgate.core.approval.states import RequestStatus
from accessgate.core.policy.rules import AccessLevel, ResourceSystem


def new_escalation_id() -> str:
    return f"esc-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class EscalationRequest:
    """A request to be added to a project, addressed to its owner."""
    id: str
    requester_id: str
    project_id: str
    system: ResourceSystem
    level: AccessLevel
    target_id: str
    status: RequestStatus
    created_at: datetime
    justification: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    auto_resolved: bool = False

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    def matches(self, requester_id: str, project_id: str, system: ResourceSystem,
                level: AccessLevel, target_id: str) -> bool:
        return (
            self.requester_id == requester_id
            and self.project_id == project_id
            and self.system == system
            and self.level == level
            and self.target_id == target_id
        )

    def resolved(self, **changes: Any) -> "EscalationRequest":
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "requester_id": self.requester_id,
            "project_id": self.project_id,
            "system": self.system.value,
            "level": self.level.value,
            "target_id": self.target_id,
            "status": self.status.value,
            "justification": self.justification,
            "resolved_by": self.resolved_by,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "auto_resolved": self.auto_resolved,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EscalationRequest":
        resolved_at = data.get("resolved_at")
        return cls(
            id=data["id"],
            requester_id=data["requester_id"],
            project_id=data["project_id"],
            system=ResourceSystem(data["system"]),
            level=AccessLevel(data["level"]),
            target_id=data["target_id"],
            status=RequestStatus(data["status"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            justification=data.get("justification"),
            resolved_by=data.get("resolved_by"),
            resolved_at=datetime.fromisoformat(resolved_at) if resolved_at else None,
            auto_resolved=data.get("auto_resolved", False),
        )
