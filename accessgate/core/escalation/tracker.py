"""Escalation tracker.

Stores project escalations opened when a requester fails the membership
gate, and their one-time resolution by the project owner, by override
authority, or by the scheduled auto-resolver. Escalations are advisory:
resolving one grants nothing by itself.
"""

import logging
import threading
from typing import Callable, List, Optional

from accessgate.common.clock import Clock, utcnow
from accessgate.core.approval.states import RequestStatus
from accessgate.core.errors import (
    AuthorizationDeniedError,
    InvalidTransitionError,
    ReasonTooLongError,
    RecordNotFoundError,
)
from accessgate.core.policy.rules import LOW_RISK_LEVELS, AccessLevel, ResourceSystem
from accessgate.core.rbac.roles import Role, has_override_authority
from accessgate.store.base import RecordStore
from .models import EscalationRequest, new_escalation_id
from .scheduler import DisabledScheduler, EscalationScheduler

logger = logging.getLogger(__name__)

AUTO_APPROVE_JUSTIFICATION = "Auto-approved: {level} is low-risk access"
AUTO_REJECT_JUSTIFICATION = "Auto-rejected: {level} access needs the owner's manual review"


class EscalationTracker:
    """
    Tracks escalation requests.

    Handles:
    - Opening escalations, reusing an identical pending one
    - One-time resolution with a bounded justification
    - Scheduling and cancelling auto-resolution
    """

    KIND = "escalation"

    def __init__(
        self,
        store: RecordStore,
        scheduler: Optional[EscalationScheduler] = None,
        *,
        max_justification_length: int = 120,
        clock: Optional[Clock] = None,
        id_factory: Optional[Callable[[], str]] = None,
        on_resolved: Optional[Callable[[EscalationRequest], None]] = None,
    ):
        self.store = store
        self.scheduler = scheduler or DisabledScheduler()
        self.max_justification_length = max_justification_length
        self.clock = clock or utcnow
        self.id_factory = id_factory or new_escalation_id
        self.on_resolved = on_resolved
        self._open_lock = threading.Lock()

    def _all(self) -> List[EscalationRequest]:
        escalations = [EscalationRequest.from_dict(r) for r in self.store.values(self.KIND)]
        return sorted(escalations, key=lambda e: e.created_at)

    def get(self, escalation_id: str) -> EscalationRequest:
        """
        Get an escalation by ID.

        Raises:
            RecordNotFoundError: If the id is unknown
        """
        record = self.store.get(self.KIND, escalation_id)
        if record is None:
            raise RecordNotFoundError("Escalation", escalation_id)
        return EscalationRequest.from_dict(record)

    def pending_for(self, target_id: str) -> List[EscalationRequest]:
        return [e for e in self._all() if e.is_pending and e.target_id == target_id]

    def list_for_requester(self, requester_id: str) -> List[EscalationRequest]:
        return [e for e in self._all() if e.requester_id == requester_id]

    def open(
        self,
        requester_id: str,
        project_id: str,
        system: ResourceSystem,
        level: AccessLevel,
        target_id: str,
    ) -> EscalationRequest:
        """
        Open an escalation to a project owner.

        An identical escalation that is still pending is returned instead
        of opening a second one.

        Returns:
            The pending EscalationRequest
        """
        system = ResourceSystem(system)
        level = AccessLevel(level)

        with self._open_lock:
            for existing in self._all():
                if existing.is_pending and existing.matches(requester_id, project_id, system, level, target_id):
                    logger.debug("Reusing pending escalation %s", existing.id)
                    return existing

            escalation = EscalationRequest(
                id=self.id_factory(),
                requester_id=requester_id,
                project_id=project_id,
                system=system,
                level=level,
                target_id=target_id,
                status=RequestStatus.PENDING,
                created_at=self.clock(),
            )
            self.store.put(self.KIND, escalation.id, escalation.to_dict())

        logger.info(
            "Opened escalation %s: %s asks %s for %s on %s",
            escalation.id, requester_id, target_id, level.value, project_id,
        )
        self.scheduler.schedule(escalation.id, self.auto_resolve)
        return escalation

    def _announce(self, escalation: EscalationRequest) -> None:
        if self.on_resolved is not None:
            self.on_resolved(escalation)

    def _commit(self, escalation: EscalationRequest, resolved: EscalationRequest) -> EscalationRequest:
        if not self.store.compare_and_swap(
            self.KIND, escalation.id, RequestStatus.PENDING.value, resolved.to_dict()
        ):
            raise InvalidTransitionError(
                f"Escalation {escalation.id} was resolved concurrently",
                from_state=escalation.status.value,
                action="resolve",
            )
        return resolved

    def resolve(
        self,
        escalation_id: str,
        actor_id: str,
        actor_role: Role,
        approved: bool,
        justification: Optional[str] = None,
    ) -> EscalationRequest:
        """
        Resolve an escalation by hand.

        Args:
            escalation_id: ID of the escalation
            actor_id: Resolving user; must be the target or override authority
            actor_role: Role of the resolving user
            approved: Whether the escalation is approved
            justification: Reason given, at most the configured length

        Returns:
            The resolved EscalationRequest

        Raises:
            RecordNotFoundError: If the escalation is unknown
            InvalidTransitionError: If it was already resolved
            AuthorizationDeniedError: If the actor may not resolve it
            ReasonTooLongError: If the justification is too long
        """
        with self.store.lock(self.KIND, escalation_id):
            escalation = self.get(escalation_id)
            if not escalation.is_pending:
                raise InvalidTransitionError(
                    f"Escalation {escalation_id} is already {escalation.status.value}",
                    from_state=escalation.status.value,
                    action="resolve",
                )
            if actor_id != escalation.target_id and not has_override_authority(actor_role):
                raise AuthorizationDeniedError(actor_id, Role(actor_role).value, escalation_id)

            justification = (justification or "").strip()
            if len(justification) > self.max_justification_length:
                raise ReasonTooLongError("Justification", self.max_justification_length)
            if not justification:
                justification = f"{'Approved' if approved else 'Rejected'} by {actor_id}"

            resolved = self._commit(escalation, escalation.resolved(
                status=RequestStatus.APPROVED if approved else RequestStatus.REJECTED,
                justification=justification,
                resolved_by=actor_id,
                resolved_at=self.clock(),
            ))

        self.scheduler.cancel(escalation_id)
        logger.info("Escalation %s %s by %s", escalation_id, resolved.status.value, actor_id)
        self._announce(resolved)
        return resolved

    def auto_resolve(self, escalation_id: str) -> Optional[EscalationRequest]:
        """
        Simulated owner decision.

        Low-risk levels are approved and everything else rejected. Does
        nothing if the escalation was already resolved.

        Returns:
            The resolved EscalationRequest, or None if it was already resolved

        Raises:
            RecordNotFoundError: If the escalation is unknown
        """
        with self.store.lock(self.KIND, escalation_id):
            escalation = self.get(escalation_id)
            if not escalation.is_pending:
                logger.debug("Escalation %s already %s", escalation_id, escalation.status.value)
                return None

            approved = escalation.level in LOW_RISK_LEVELS
            template = AUTO_APPROVE_JUSTIFICATION if approved else AUTO_REJECT_JUSTIFICATION
            resolved = self._commit(escalation, escalation.resolved(
                status=RequestStatus.APPROVED if approved else RequestStatus.REJECTED,
                justification=template.format(level=escalation.level.value)[:self.max_justification_length],
                resolved_by=escalation.target_id,
                resolved_at=self.clock(),
                auto_resolved=True,
            ))

        logger.info("Escalation %s auto-%s", escalation_id, resolved.status.value)
        self._announce(resolved)
        return resolved
