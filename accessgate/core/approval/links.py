"""Access reference generation.

Deterministic: the same request always yields the same link.
"""

from typing import Optional

from accessgate.core.directory import Project
from accessgate.core.policy.rules import AccessLevel, ResourceSystem

GITHUB_ORG_URL = "https://github.com/company"
JIRA_URL = "https://company.atlassian.net"
MAIL_DOMAIN = "company.com"


def generate_access_link(
    system: ResourceSystem,
    level: AccessLevel,
    *,
    project: Optional[Project] = None,
    requester_id: Optional[str] = None,
    owner_id: Optional[str] = None,
) -> str:
    """
    Build the access reference handed to the requester on approval.

    Args:
        system: Resource-system granted
        level: Access level granted
        project: Project for project-scoped grants
        requester_id: Requester, for their own mailbox
        owner_id: Account owner, for account-owned grants

    Returns:
        URL string
    """
    system = ResourceSystem(system)

    if system == ResourceSystem.GITHUB:
        if project:
            return f"{GITHUB_ORG_URL}/{project.slug or project.id}"
        return GITHUB_ORG_URL

    if system == ResourceSystem.JIRA:
        if project:
            return f"{JIRA_URL}/projects/{project.tracker_key or project.id.upper()}"
        if owner_id:
            return f"{JIRA_URL}/people/{owner_id}"
        return JIRA_URL

    # Email: the mailbox being opened up
    mailbox = owner_id or requester_id
    return f"mailto:{mailbox}@{MAIL_DOMAIN}" if mailbox else f"mailto:access@{MAIL_DOMAIN}"


def link_for_request(request, directory=None) -> str:
    """
    Build the access link for an access request.

    Args:
        request: AccessRequest being granted
        directory: Directory used to resolve the project's repository slug
            and tracker key

    Returns:
        URL string
    """
    project = None
    if request.project_id:
        project = directory.project(request.project_id) if directory else None
        if project is None:
            project = Project(
                id=request.project_id,
                name=request.project_name or request.project_id,
                owner_id=request.assigned_approver_id or "",
            )
    return generate_access_link(
        request.system,
        request.granted_level,
        project=project,
        requester_id=request.requester_id,
        owner_id=request.account_owner_id,
    )
