"""Request scopes.

A request targets exactly one kind of resource, which decides who the
primary approver is:

- ``ProjectScope``: a project's resources; the project owner approves.
- ``AccountScope``: another person's account; that person approves.
- ``OpenScope``: neither; approval (if any) falls to the fallback approver.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class ProjectScope:
    project_id: str
    project_name: str
    owner_id: Optional[str]
    kind: str = "project"


@dataclass(frozen=True)
class AccountScope:
    owner_id: str
    kind: str = "account"


@dataclass(frozen=True)
class OpenScope:
    kind: str = "open"


Scope = Union[ProjectScope, AccountScope, OpenScope]


def primary_approver(scope: Scope) -> Optional[str]:
    """Resolve the primary approver for a scope."""
    if isinstance(scope, (ProjectScope, AccountScope)):
        return scope.owner_id
    return None


def scope_to_dict(scope: Scope) -> Dict[str, Any]:
    if isinstance(scope, ProjectScope):
        return {
            "kind": scope.kind,
            "project_id": scope.project_id,
            "project_name": scope.project_name,
            "owner_id": scope.owner_id,
        }
    if isinstance(scope, AccountScope):
        return {"kind": scope.kind, "owner_id": scope.owner_id}
    return {"kind": scope.kind}


def scope_from_dict(data: Optional[Dict[str, Any]]) -> Scope:
    """Rebuild a scope from its stored form.

    Raises:
        ValueError: If the stored kind is unknown
    """
    kind = (data or {}).get("kind", "open")
    if kind == "project":
        return ProjectScope(
            project_id=data["project_id"],
            project_name=data.get("project_name", data["project_id"]),
            owner_id=data.get("owner_id"),
        )
    if kind == "account":
        return AccountScope(owner_id=data["owner_id"])
    if kind == "open":
        return OpenScope()
    raise ValueError(f"Unknown scope kind: {kind}")
