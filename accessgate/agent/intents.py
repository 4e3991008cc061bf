"""Keyword intent extraction.

Turns a chat message into best-effort field guesses. This is keyword
matching, not language understanding: it never decides anything, it only
proposes field values for the request state machine to validate.
"""

import re
from dataclasses import dataclass
from typing import Optional

from accessgate.core.directory import Directory
from accessgate.core.policy.rules import AccessLevel, ResourceSystem
from accessgate.core.requests.models import FieldUpdates

SYSTEM_KEYWORDS = [
    (ResourceSystem.EMAIL, ("email", "mail", "inbox", "mailbox")),
    (ResourceSystem.GITHUB, ("github", "git", "repo", "repository")),
    (ResourceSystem.JIRA, ("jira", "ticket")),
]

# Jira has its own role vocabulary
JIRA_LEVEL_KEYWORDS = [
    (AccessLevel.ADMIN, ("admin", "administrator")),
    (AccessLevel.CREATE_EDIT, ("contributor", "create", "edit")),
    (AccessLevel.COMMENT, ("comment", "commenter")),
    (AccessLevel.VIEW, ("viewer", "view", "see")),
]

SELF_PHRASES = ("my own", "myself", "my account", "my email", "my mailbox", "my inbox")

AFFIRMATIVE = re.compile(r"^\s*(yes|yep|yeah|sure|ok|okay|please|escalate)\b", re.IGNORECASE)


@dataclass(frozen=True)
class IntentGuess:
    system: Optional[ResourceSystem] = None
    access_level: Optional[AccessLevel] = None
    project: Optional[str] = None
    target_owner_id: Optional[str] = None
    confidence: str = "low"

    @property
    def updates(self) -> FieldUpdates:
        return FieldUpdates(
            system=self.system,
            access_level=self.access_level,
            project=self.project,
            target_owner_id=self.target_owner_id,
        )


def _contains(text: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word)}\b", text) is not None


def _match_system(text: str) -> Optional[ResourceSystem]:
    for system, keywords in SYSTEM_KEYWORDS:
        if any(_contains(text, k) for k in keywords):
            return system
    return None


def _match_level(text: str, system: Optional[ResourceSystem]) -> Optional[AccessLevel]:
    if system == ResourceSystem.JIRA:
        for level, keywords in JIRA_LEVEL_KEYWORDS:
            if any(_contains(text, k) for k in keywords):
                return level
        return None

    if _contains(text, "admin") or _contains(text, "administrator"):
        return AccessLevel.ADMIN
    if "read-write" in text or (_contains(text, "read") and _contains(text, "write")):
        return AccessLevel.READ_WRITE
    if "read-only" in text or "read only" in text or _contains(text, "read"):
        return AccessLevel.READ_ONLY
    if any(_contains(text, k) for k in ("write", "edit", "create")):
        return AccessLevel.READ_WRITE
    if _contains(text, "default") or _contains(text, "basic"):
        return AccessLevel.DEFAULT
    if _contains(text, "comment"):
        return AccessLevel.COMMENT
    if _contains(text, "view") or _contains(text, "see"):
        return AccessLevel.VIEW
    return None


def _match_project(text: str, directory: Directory) -> Optional[str]:
    for project in directory.projects():
        names = {project.name.lower(), project.id.lower(), project.slug.lower()}
        # "alpha" for "Project Alpha"
        names.add(project.name.lower().split()[-1])
        if any(name and _contains(text, name) for name in names):
            return project.id
    return None


def _match_owner(text: str, directory: Directory, requester_id: Optional[str]) -> Optional[str]:
    if requester_id and any(phrase in text for phrase in SELF_PHRASES):
        return requester_id
    for user in directory.users():
        if user.id == requester_id:
            continue
        if _contains(text, user.name.lower()) or _contains(text, user.id.lower()):
            return user.id
    return None


def parse_intent(
    message: str,
    directory: Directory,
    *,
    requester_id: Optional[str] = None,
    current_system: Optional[ResourceSystem] = None,
) -> IntentGuess:
    """
    Guess request fields from a chat message.

    Args:
        message: Free-text chat message
        directory: Directory used to recognise projects and people
        requester_id: Who is asking, so "my own" can name them
        current_system: System already selected, used to pick the level
            vocabulary when the message does not name one

    Returns:
        IntentGuess; every field may be None
    """
    text = (message or "").lower()

    system = _match_system(text)
    level = _match_level(text, system or current_system)
    project = _match_project(text, directory)
    owner = _match_owner(text, directory, requester_id)

    if system and level:
        confidence = "high" if project else "medium"
    elif system or level:
        confidence = "medium"
    else:
        confidence = "low"

    return IntentGuess(
        system=system,
        access_level=level,
        project=project,
        target_owner_id=owner,
        confidence=confidence,
    )


def is_affirmative(message: str) -> bool:
    return bool(AFFIRMATIVE.match(message or ""))
