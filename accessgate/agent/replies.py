"""Assistant replies.

One short line per turn: the next question to ask, or the status of the
request. Every reply is bounded to the configured message length.
"""

from typing import Optional

from accessgate.common.text import truncate
from accessgate.core.directory import Directory
from accessgate.core.escalation.models import EscalationRequest
from accessgate.core.policy.rules import ResourceSystem
from accessgate.core.requests.machine import BlockReason, StepResult
from accessgate.core.requests.models import (
    FIELD_ACCESS_LEVEL,
    FIELD_PROJECT,
    FIELD_SYSTEM,
    FIELD_TARGET_OWNER,
    RequestState,
)
from accessgate.core.requests.states import TaskStatus

WELCOME = "Which system? (Email, GitHub, or Jira)"
NEXT_REQUEST = "What would you like to access next? (Email, GitHub, or Jira)"

QUESTIONS = {
    (FIELD_SYSTEM, None): WELCOME,
    (FIELD_TARGET_OWNER, ResourceSystem.EMAIL): "Whose email access do you need? (or say 'my own')",
    (FIELD_TARGET_OWNER, ResourceSystem.JIRA): "Whose Jira account do you need access to? (or say 'my own')",
    (FIELD_PROJECT, ResourceSystem.GITHUB): "Which project or repository? (Alpha or Beta)",
    (FIELD_ACCESS_LEVEL, ResourceSystem.EMAIL): "What access level? (read-only, read-write, default, or admin)",
    (FIELD_ACCESS_LEVEL, ResourceSystem.GITHUB): "What access level? (read-only, read-write, or admin)",
    (FIELD_ACCESS_LEVEL, ResourceSystem.JIRA): "What role? (viewer, commenter, contributor, or admin)",
}

CORRECTIONS = {
    ResourceSystem.JIRA: "Admin is not available for your role. Choose viewer or commenter?",
}
DEFAULT_CORRECTION = "Admin is not available for your role. Choose read-only instead?"


def question_for(field: Optional[str], state: RequestState, limit: int = 120) -> str:
    """Question asking for one missing field."""
    if field is None:
        return truncate("Please provide more details.", limit)
    question = QUESTIONS.get((field, state.system)) or QUESTIONS.get((field, None))
    return truncate(question or "Please provide more information.", limit)


def _approver_label(state: RequestState, directory: Directory) -> str:
    if not state.approver_id:
        return "Manager or IT Admin"
    name = directory.display_name(state.approver_id)
    if state.is_account_owned:
        return f"{name} (Account Owner)"
    if state.project:
        return f"{name} (Project Owner)"
    return name


def status_reply(step: StepResult, directory: Directory, limit: int = 120) -> str:
    """
    Reply describing where a request stands after a step.

    Args:
        step: Result of applying the latest updates
        directory: Directory for approver and project names
        limit: Maximum reply length

    Returns:
        Reply text
    """
    state = step.state

    if step.blocked == BlockReason.LOW_CONFIDENCE:
        return truncate(CORRECTIONS.get(state.system, DEFAULT_CORRECTION), limit)

    if step.blocked == BlockReason.ESCALATION_REQUIRED:
        project = directory.project(state.project)
        project_name = project.name if project else (state.project or "the project")
        owner = directory.display_name(step.decision.escalation_target, "project manager")
        return truncate(f"Not assigned to {project_name}. Escalate to {owner}?", limit)

    if step.blocked == BlockReason.POLICY_DENIED:
        reason = step.decision.rejection_reason if step.decision else step.error
        return truncate(f"Cannot approve: {reason or 'request not permitted'}. Choose another level?", limit)

    if state.status == TaskStatus.AWAITING_APPROVAL:
        if step.finalized:
            level = step.request.granted_level.value if step.request else state.access_level.value
            return truncate(
                f"Request submitted: {level} access to {state.system.value}. "
                f"Awaiting approval from {_approver_label(state, directory)}.",
                limit,
            )
        return truncate(f"Still awaiting approval from {_approver_label(state, directory)}.", limit)

    if state.status == TaskStatus.APPROVED:
        prefix = "Request approved."
        if step.request is not None and step.request.downgrade_reason:
            prefix = f"Adjusted to {step.request.granted_level.value} and approved."
        if state.access_link:
            return truncate(f"{prefix} Link: {state.access_link}", limit)
        return truncate(f"{prefix} Access granted immediately.", limit)

    if state.status == TaskStatus.REJECTED:
        return truncate(NEXT_REQUEST, limit)

    return question_for(state.next_field, state, limit)


def escalation_opened_reply(escalation: EscalationRequest, directory: Directory, limit: int = 120) -> str:
    owner = directory.display_name(escalation.target_id)
    return truncate(f"Escalated to {owner}. You'll hear back here.", limit)


def escalation_request_message(escalation: EscalationRequest, directory: Directory, limit: int = 120) -> str:
    requester = directory.display_name(escalation.requester_id)
    project = directory.project(escalation.project_id)
    project_name = project.name if project else escalation.project_id
    return truncate(
        f"{requester} asks to join {project_name} for {escalation.system.value} "
        f"{escalation.level.value} access ({escalation.id})",
        limit,
    )


def escalation_resolved_message(escalation: EscalationRequest, directory: Directory, limit: int = 120) -> str:
    project = directory.project(escalation.project_id)
    project_name = project.name if project else escalation.project_id
    return truncate(
        f"Escalation for {project_name} {escalation.status.value}: {escalation.justification}",
        limit,
    )
