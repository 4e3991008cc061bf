"""User and project directory.

Read-only view of who exists, which role they hold, who owns each project
and who is assigned to it. Loaded from a YAML file shaped like::

    users:
      - {id: intern-001, name: Ian Intern, email: ian@company.com, role: Intern}
    projects:
      - {id: project-1, name: Project Alpha, owner_id: manager-001}
    assignments:
      intern-001: [project-1]
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from accessgate.common.config import load_config
from accessgate.core.rbac.roles import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
    role: Role


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    owner_id: str
    slug: str = ""
    tracker_key: str = ""


class Directory:
    """Lookup of users, projects and project assignments."""

    def __init__(
        self,
        users: Iterable[User],
        projects: Iterable[Project],
        assignments: Optional[Dict[str, Iterable[str]]] = None,
    ):
        self._users: Dict[str, User] = {u.id: u for u in users}
        self._projects: Dict[str, Project] = {p.id: p for p in projects}
        self._assignments: Dict[str, frozenset] = {
            user_id: frozenset(project_ids)
            for user_id, project_ids in (assignments or {}).items()
        }

    def user(self, user_id: Optional[str]) -> Optional[User]:
        if not user_id:
            return None
        return self._users.get(user_id)

    def users(self) -> List[User]:
        return list(self._users.values())

    def display_name(self, user_id: Optional[str], default: str = "employee") -> str:
        user = self.user(user_id)
        return user.name if user else (user_id or default)

    def project(self, project_id: Optional[str]) -> Optional[Project]:
        if not project_id:
            return None
        return self._projects.get(project_id)

    def project_by_name(self, name: str) -> Optional[Project]:
        wanted = name.strip().lower()
        for project in self._projects.values():
            if project.name.lower() == wanted or project.id.lower() == wanted:
                return project
        return None

    def projects(self) -> List[Project]:
        return list(self._projects.values())

    def projects_owned_by(self, user_id: str) -> List[Project]:
        return [p for p in self._projects.values() if p.owner_id == user_id]

    def is_member(self, user_id: Optional[str], project_id: str) -> bool:
        """Check project assignment.

        Owners count as members of their own projects.
        """
        if not user_id:
            return False
        project = self._projects.get(project_id)
        if project and project.owner_id == user_id:
            return True
        return project_id in self._assignments.get(user_id, frozenset())


def parse_directory(data: Dict[str, Any]) -> Directory:
    """Build a Directory from a parsed mapping.

    Raises:
        ValueError: If a user has an unknown role
    """
    users = []
    for entry in data.get("users", []):
        users.append(User(
            id=entry["id"],
            name=entry.get("name", entry["id"]),
            email=entry.get("email", f"{entry['id']}@company.com"),
            role=Role(entry["role"]),
        ))

    projects = []
    for entry in data.get("projects", []):
        projects.append(Project(
            id=entry["id"],
            name=entry.get("name", entry["id"]),
            owner_id=entry["owner_id"],
            slug=entry.get("slug", entry["id"]),
            tracker_key=entry.get("tracker_key", entry["id"].upper()),
        ))

    assignments = {
        user_id: list(project_ids or [])
        for user_id, project_ids in (data.get("assignments") or {}).items()
    }
    return Directory(users, projects, assignments)


def load_directory(path: str) -> Directory:
    """Load the directory YAML file."""
    directory = parse_directory(load_config(path))
    logger.info(
        "Loaded directory from %s: %d users, %d projects",
        path, len(directory.users()), len(directory.projects()),
    )
    return directory
