"""Decision notifications.

Composes the messages every stakeholder receives when an access request
is approved or rejected:

- the deciding approver
- the requester, with the access link on approval
- the original primary approver, when override authority decided a
  request routed to someone else

Messages are plain text bounded to the configured length. The composer
also writes the decision back into the requester's request state.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from accessgate.common.text import truncate
from accessgate.core.approval.ledger import Decision
from accessgate.core.approval.models import AccessRequest
from accessgate.core.approval.states import DecisionOutcome
from accessgate.core.directory import Directory
from accessgate.core.errors import InvalidTransitionError, RecordNotFoundError
from accessgate.core.rbac.roles import Role, has_override_authority

logger = logging.getLogger(__name__)


class Audience(str, Enum):
    """Who a notification is for."""

    ACTOR = "actor"
    REQUESTER = "requester"
    PRIMARY_APPROVER = "primary_approver"


@dataclass(frozen=True)
class Notification:
    recipient_id: str
    audience: Audience
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recipient_id": self.recipient_id,
            "audience": self.audience.value,
            "message": self.message,
        }


@dataclass(frozen=True)
class NotificationSet:
    """Messages produced by one decision."""
    request_id: str
    outcome: DecisionOutcome
    notifications: Tuple[Notification, ...] = ()

    def __iter__(self) -> Iterator[Notification]:
        return iter(self.notifications)

    def __len__(self) -> int:
        return len(self.notifications)

    def for_audience(self, audience: Audience) -> Optional[Notification]:
        for notification in self.notifications:
            if notification.audience == audience:
                return notification
        return None

    def recipients(self) -> List[str]:
        return [n.recipient_id for n in self.notifications]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "outcome": self.outcome.value,
            "notifications": [n.to_dict() for n in self.notifications],
        }


# (scope kind, outcome, audience) -> template
MESSAGE_TEMPLATES: Dict[Tuple[str, DecisionOutcome, Audience], str] = {
    ("project", DecisionOutcome.APPROVE, Audience.ACTOR):
        "Approved {requester_name} ({requester_role}) for {system} {level} access{where}",
    ("project", DecisionOutcome.APPROVE, Audience.REQUESTER):
        "Your {system} {level} access{where} was approved by {actor_name}.",
    ("project", DecisionOutcome.REJECT, Audience.ACTOR):
        "Rejected {requester_name} ({requester_role}) for {system} {level} access{where}. Reason: {reason}",
    ("project", DecisionOutcome.REJECT, Audience.REQUESTER):
        "Your {system} {level} access{where} was rejected. Reason: {reason}",
    ("account", DecisionOutcome.APPROVE, Audience.ACTOR):
        "Approved {requester_name} ({requester_role}) for {system} {level} access to {owner_label} account",
    ("account", DecisionOutcome.APPROVE, Audience.REQUESTER):
        "Your {system} {level} access to {owner_name}'s account was approved.",
    ("account", DecisionOutcome.REJECT, Audience.ACTOR):
        "Rejected {requester_name} ({requester_role}) for {system} {level} access to {owner_label} account. "
        "Reason: {reason}",
    ("account", DecisionOutcome.REJECT, Audience.REQUESTER):
        "Your {system} {level} access to {owner_name}'s account was rejected. Reason: {reason}",
}

OVERRIDE_TEMPLATES: Dict[str, str] = {
    "project": "IT Admin {actor_name} {verb} {requester_name}'s {system} access to {project_name}",
    "account": "IT Admin {actor_name} {verb} {requester_name}'s {system} access to your account",
}


class NotificationComposer:
    """Builds decision notifications and reflects decisions into request state."""

    def __init__(self, directory: Optional[Directory] = None, *, max_length: int = 120):
        """
        Initialize the composer.

        Args:
            directory: Directory used for display names
            max_length: Maximum message length
        """
        self.directory = directory
        self.max_length = max_length

    def _name(self, user_id: Optional[str]) -> str:
        if self.directory is None:
            return user_id or "employee"
        return self.directory.display_name(user_id)

    def _bounded(self, body: str, suffix: Optional[str] = None) -> str:
        """Bound a message, keeping the suffix (an access link) intact."""
        if not suffix:
            return truncate(body, self.max_length)
        room = self.max_length - len(suffix) - 1
        if room <= 0:
            return truncate(suffix, self.max_length)
        return f"{truncate(body, room)} {suffix}"

    def compose(
        self,
        request: AccessRequest,
        outcome: DecisionOutcome,
        actor_id: str,
        actor_role: Role,
        reason: Optional[str] = None,
        access_link: Optional[str] = None,
    ) -> NotificationSet:
        """
        Compose the notifications for a decision.

        Args:
            request: The decided request
            outcome: Approve or reject
            actor_id: Deciding user
            actor_role: Role of the deciding user
            reason: Rejection reason
            access_link: Access link, on approval

        Returns:
            NotificationSet
        """
        outcome = DecisionOutcome(outcome)
        kind = "account" if request.is_account_owned else "project"
        owner_id = request.account_owner_id
        fields = {
            "requester_name": request.requester_name,
            "requester_role": request.requester_role.value,
            "system": request.system.value,
            "level": request.granted_level.value,
            "where": f" to {request.project_name}" if request.project_name else "",
            "project_name": request.project_name or request.system.value,
            "owner_name": self._name(owner_id),
            "owner_label": "your" if owner_id == actor_id else f"{self._name(owner_id)}'s",
            "actor_name": self._name(actor_id),
            "reason": reason or "",
            "verb": "approved" if outcome == DecisionOutcome.APPROVE else "rejected",
        }

        link = access_link if outcome == DecisionOutcome.APPROVE else None
        notifications = [
            Notification(
                recipient_id=actor_id,
                audience=Audience.ACTOR,
                message=self._bounded(MESSAGE_TEMPLATES[(kind, outcome, Audience.ACTOR)].format(**fields)),
            ),
            Notification(
                recipient_id=request.requester_id,
                audience=Audience.REQUESTER,
                message=self._bounded(
                    MESSAGE_TEMPLATES[(kind, outcome, Audience.REQUESTER)].format(**fields),
                    suffix=link,
                ),
            ),
        ]

        primary = request.assigned_approver_id
        if has_override_authority(actor_role) and primary and primary != actor_id:
            notifications.append(Notification(
                recipient_id=primary,
                audience=Audience.PRIMARY_APPROVER,
                message=self._bounded(OVERRIDE_TEMPLATES[kind].format(**fields)),
            ))

        return NotificationSet(
            request_id=request.id,
            outcome=outcome,
            notifications=tuple(notifications),
        )

    def reflect(self, decision: Decision, machine: Any) -> Optional[Any]:
        """
        Write a decision back into the requester's request state.

        Returns:
            The updated RequestState, or None if the requester has moved on
            (reset or started another request) since submitting
        """
        request = decision.request
        try:
            return machine.record_decision(
                request.requester_id,
                request.id,
                decision.outcome,
                request.decided_by,
                request.decided_by_role,
                access_link=request.access_link,
                reason=request.rejection_reason,
                decided_at=request.decided_at,
            )
        except (InvalidTransitionError, RecordNotFoundError) as e:
            logger.warning("Decision on %s not reflected into request state: %s", request.id, e)
            return None
