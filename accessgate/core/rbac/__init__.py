"""RBAC (Role-Based Access Control) module for AccessGate.

Defines the roles, their approval authority, and decision checks.
"""

from .roles import (
    DEFAULT_ROLES,
    LOWEST_PRIVILEGE_ROLE,
    OVERRIDE_ROLE,
    Role,
    RoleDefinition,
    can_approve,
    has_override_authority,
    is_lowest_privilege,
)
from .checker import DecisionChecker

__all__ = [
    "DEFAULT_ROLES",
    "DecisionChecker",
    "LOWEST_PRIVILEGE_ROLE",
    "OVERRIDE_ROLE",
    "Role",
    "RoleDefinition",
    "can_approve",
    "has_override_authority",
    "is_lowest_privilege",
]
