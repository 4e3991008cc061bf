"""Access request record.

Identity fields (requester, system, levels, scope) are fixed at creation;
only the status and decision metadata change, and only once.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Optional

from accessgate.core.policy.rules import AccessLevel, ResourceSystem
from accessgate.core.rbac.roles import Role
from accessgate.core.scopes import (
    AccountScope,
    OpenScope,
    ProjectScope,
    Scope,
    primary_approver,
    scope_from_dict,
    scope_to_dict,
)
from .states import RequestStatus


def new_request_id() -> str:
    return f"req-{uuid.uuid4().hex[:12]}"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True)
class AccessRequest:
    id: str
    requester_id: str
    requester_name: str
    requester_role: Role
    system: ResourceSystem
    requested_level: AccessLevel
    granted_level: AccessLevel
    scope: Scope
    fallback_approver_id: str
    requires_approval: bool
    status: RequestStatus
    created_at: datetime
    updated_at: datetime

    # Decision metadata
    decided_by: Optional[str] = None
    decided_by_role: Optional[Role] = None
    decided_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    access_link: Optional[str] = None
    downgrade_reason: Optional[str] = None
    extra_data: Dict[str, Any] = field(default_factory=dict)

    @property
    def assigned_approver_id(self) -> Optional[str]:
        """Primary approver: project owner or account owner, never both."""
        return primary_approver(self.scope)

    @property
    def project_id(self) -> Optional[str]:
        return self.scope.project_id if isinstance(self.scope, ProjectScope) else None

    @property
    def project_name(self) -> Optional[str]:
        return self.scope.project_name if isinstance(self.scope, ProjectScope) else None

    @property
    def account_owner_id(self) -> Optional[str]:
        return self.scope.owner_id if isinstance(self.scope, AccountScope) else None

    @property
    def is_account_owned(self) -> bool:
        return isinstance(self.scope, AccountScope)

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING

    def with_decision(self, **changes: Any) -> "AccessRequest":
        """Copy with new status/decision metadata.

        Raises:
            ValueError: If an identity field is included
        """
        frozen = {"id", "requester_id", "requester_name", "requester_role", "system",
                  "requested_level", "granted_level", "scope", "fallback_approver_id",
                  "requires_approval", "created_at"}
        touched = frozen.intersection(changes)
        if touched:
            raise ValueError(f"Access request fields are immutable: {', '.join(sorted(touched))}")
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "requester_id": self.requester_id,
            "requester_name": self.requester_name,
            "requester_role": self.requester_role.value,
            "system": self.system.value,
            "requested_level": self.requested_level.value,
            "granted_level": self.granted_level.value,
            "scope": scope_to_dict(self.scope),
            "assigned_approver_id": self.assigned_approver_id,
            "fallback_approver_id": self.fallback_approver_id,
            "requires_approval": self.requires_approval,
            "status": self.status.value,
            "decided_by": self.decided_by,
            "decided_by_role": self.decided_by_role.value if self.decided_by_role else None,
            "decided_at": _iso(self.decided_at),
            "rejection_reason": self.rejection_reason,
            "access_link": self.access_link,
            "downgrade_reason": self.downgrade_reason,
            "extra_data": dict(self.extra_data),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccessRequest":
        return cls(
            id=data["id"],
            requester_id=data["requester_id"],
            requester_name=data.get("requester_name", data["requester_id"]),
            requester_role=Role(data["requester_role"]),
            system=ResourceSystem(data["system"]),
            requested_level=AccessLevel(data["requested_level"]),
            granted_level=AccessLevel(data.get("granted_level") or data["requested_level"]),
            scope=scope_from_dict(data.get("scope")),
            fallback_approver_id=data["fallback_approver_id"],
            requires_approval=data["requires_approval"],
            status=RequestStatus(data["status"]),
            decided_by=data.get("decided_by"),
            decided_by_role=Role(data["decided_by_role"]) if data.get("decided_by_role") else None,
            decided_at=_parse(data.get("decided_at")),
            rejection_reason=data.get("rejection_reason"),
            access_link=data.get("access_link"),
            downgrade_reason=data.get("downgrade_reason"),
            extra_data=dict(data.get("extra_data") or {}),
            created_at=_parse(data["created_at"]),
            updated_at=_parse(data["updated_at"]),
        )


__all__ = ["AccessRequest", "AccountScope", "OpenScope", "ProjectScope", "new_request_id"]
