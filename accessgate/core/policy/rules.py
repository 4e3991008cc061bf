"""Access rules for AccessGate.

The capability table lists, per role and resource-system, which access
levels may be granted and whether a grant needs approval. Admin access is
not listed here; it is handled by the level gate in the engine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from accessgate.core.rbac.roles import Role


class ResourceSystem(str, Enum):
    """Resource-systems access can be requested for."""

    EMAIL = "Email"
    GITHUB = "GitHub"
    JIRA = "Jira"


class AccessLevel(str, Enum):
    """Access levels across all resource-systems."""

    # Email / GitHub
    READ_ONLY = "read-only"
    READ_WRITE = "read-write"
    DEFAULT = "default"           # Basic mailbox access

    # Jira
    VIEW = "view"
    COMMENT = "comment"
    CREATE_EDIT = "create-edit"

    # Everywhere, gated separately
    ADMIN = "admin"


# GitHub access is granted per project repository
PROJECT_SCOPED_SYSTEMS: FrozenSet[ResourceSystem] = frozenset({ResourceSystem.GITHUB})

# Mailboxes and Jira accounts belong to a person
ACCOUNT_OWNED_SYSTEMS: FrozenSet[ResourceSystem] = frozenset({
    ResourceSystem.EMAIL,
    ResourceSystem.JIRA,
})

# Lower levels to try, in order, when the requested level is not permitted
DOWNGRADE_CASCADE: Dict[AccessLevel, Tuple[AccessLevel, ...]] = {
    AccessLevel.READ_WRITE: (AccessLevel.READ_ONLY, AccessLevel.DEFAULT),
    AccessLevel.READ_ONLY: (AccessLevel.DEFAULT,),
    AccessLevel.CREATE_EDIT: (AccessLevel.COMMENT, AccessLevel.VIEW),
    AccessLevel.COMMENT: (AccessLevel.VIEW,),
}

# Levels treated as low risk by the escalation auto-resolver
LOW_RISK_LEVELS: FrozenSet[AccessLevel] = frozenset({
    AccessLevel.READ_ONLY,
    AccessLevel.VIEW,
    AccessLevel.DEFAULT,
})


@dataclass(frozen=True)
class SystemRule:
    """Permitted levels for one (role, resource-system) pair."""
    levels: FrozenSet[AccessLevel]
    requires_approval: bool = False
    note: Optional[str] = None

    def permits(self, level: AccessLevel) -> bool:
        return level in self.levels


def _rule(*levels: AccessLevel, requires_approval: bool = False, note: Optional[str] = None) -> SystemRule:
    return SystemRule(levels=frozenset(levels), requires_approval=requires_approval, note=note)


_ALL_EMAIL = (AccessLevel.READ_ONLY, AccessLevel.READ_WRITE, AccessLevel.DEFAULT)
_ALL_GITHUB = (AccessLevel.READ_ONLY, AccessLevel.READ_WRITE)
_ALL_JIRA = (AccessLevel.VIEW, AccessLevel.COMMENT, AccessLevel.CREATE_EDIT)


CAPABILITY_TABLE: Dict[Role, Dict[ResourceSystem, SystemRule]] = {
    Role.INTERN: {
        ResourceSystem.EMAIL: _rule(AccessLevel.READ_ONLY, AccessLevel.DEFAULT),
        ResourceSystem.GITHUB: _rule(
            AccessLevel.READ_ONLY,
            requires_approval=True,
            note="Interns need the project owner's sign-off for repositories",
        ),
        ResourceSystem.JIRA: _rule(AccessLevel.VIEW, AccessLevel.COMMENT),
    },
    Role.DEVELOPER: {
        ResourceSystem.EMAIL: _rule(*_ALL_EMAIL),
        ResourceSystem.GITHUB: _rule(*_ALL_GITHUB, requires_approval=True),
        ResourceSystem.JIRA: _rule(*_ALL_JIRA),
    },
    Role.MANAGER: {
        ResourceSystem.EMAIL: _rule(*_ALL_EMAIL),
        ResourceSystem.GITHUB: _rule(*_ALL_GITHUB),
        ResourceSystem.JIRA: _rule(*_ALL_JIRA),
    },
    Role.IT_ADMINISTRATOR: {
        ResourceSystem.EMAIL: _rule(*_ALL_EMAIL),
        ResourceSystem.GITHUB: _rule(*_ALL_GITHUB),
        ResourceSystem.JIRA: _rule(*_ALL_JIRA),
    },
}

# Manager-administered issue tracking
MANAGER_ADMIN_SYSTEMS: FrozenSet[ResourceSystem] = frozenset({ResourceSystem.JIRA})


def get_system_rule(role: Role, system: ResourceSystem) -> Optional[SystemRule]:
    """Look up the capability rule for a role and resource-system."""
    return CAPABILITY_TABLE.get(Role(role), {}).get(ResourceSystem(system))


def find_downgrade(rule: SystemRule, requested: AccessLevel) -> Optional[AccessLevel]:
    """Return the first permitted level below the requested one, if any."""
    for candidate in DOWNGRADE_CASCADE.get(requested, ()):
        if rule.permits(candidate):
            return candidate
    return None


def is_project_scoped(system: Optional[ResourceSystem]) -> bool:
    return system is not None and ResourceSystem(system) in PROJECT_SCOPED_SYSTEMS


def is_account_owned(system: Optional[ResourceSystem]) -> bool:
    return system is not None and ResourceSystem(system) in ACCOUNT_OWNED_SYSTEMS
