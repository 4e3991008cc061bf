"""Role definitions for AccessGate.

Defines the 4 standard roles, lowest privilege first:
1. Intern - Lowest-privilege tier, needs account-owner consent for shared accounts
2. Developer - Mid tier, may request admin access subject to approval
3. Manager - Approves requests for the projects they own
4. IT Administrator - Override authority over every pending request
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class Role(str, Enum):
    """Requester and approver roles."""

    INTERN = "Intern"
    DEVELOPER = "Developer"
    MANAGER = "Manager"
    IT_ADMINISTRATOR = "IT Administrator"


@dataclass(frozen=True)
class RoleDefinition:
    name: str
    description: str
    tier: int
    can_approve: bool = False
    final_approval_authority: bool = False


DEFAULT_ROLES: Dict[Role, RoleDefinition] = {
    Role.INTERN: RoleDefinition(
        name="Intern",
        description="Read-mostly access; account-owned access needs the owner's consent",
        tier=0,
    ),
    Role.DEVELOPER: RoleDefinition(
        name="Developer",
        description="Read-write access to assigned projects; admin only with approval",
        tier=1,
    ),
    Role.MANAGER: RoleDefinition(
        name="Manager",
        description="Owns projects and approves requests routed to them",
        tier=2,
        can_approve=True,
    ),
    Role.IT_ADMINISTRATOR: RoleDefinition(
        name="IT Administrator",
        description="Full access and override authority over any pending request",
        tier=3,
        can_approve=True,
        final_approval_authority=True,
    ),
}

LOWEST_PRIVILEGE_ROLE = Role.INTERN
OVERRIDE_ROLE = Role.IT_ADMINISTRATOR


def can_approve(role: Role) -> bool:
    """Check if a role has general approval authority."""
    definition = DEFAULT_ROLES.get(Role(role))
    return bool(definition and (definition.can_approve or definition.final_approval_authority))


def has_override_authority(role: Role) -> bool:
    """Check if a role may decide any pending request."""
    definition = DEFAULT_ROLES.get(Role(role))
    return bool(definition and definition.final_approval_authority)


def is_lowest_privilege(role: Role) -> bool:
    return Role(role) == LOWEST_PRIVILEGE_ROLE
