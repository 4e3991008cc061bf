"""Access desk.

Entry point for everything the chat front end and the HTTP API do: it
routes inbound messages through the request state machine, decisions
through the approval ledger, and delivers the resulting messages to the
chat log.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache, partial
from typing import Any, Dict, List, Optional

from accessgate.agent.intents import is_affirmative, parse_intent
from accessgate.agent.replies import (
    NEXT_REQUEST,
    escalation_opened_reply,
    escalation_request_message,
    escalation_resolved_message,
    status_reply,
)
from accessgate.core.approval.ledger import ApprovalLedger, BatchResult, Decision
from accessgate.core.approval.links import link_for_request
from accessgate.core.approval.models import AccessRequest
from accessgate.core.approval.states import DecisionOutcome
from accessgate.core.config import Settings, get_settings
from accessgate.core.directory import Directory, User, load_directory
from accessgate.core.errors import InvalidTransitionError, RecordNotFoundError
from accessgate.core.escalation.models import EscalationRequest
from accessgate.core.escalation.scheduler import (
    DisabledScheduler,
    EscalationScheduler,
    ThreadingScheduler,
)
from accessgate.core.escalation.tracker import EscalationTracker
from accessgate.core.policy.engine import PolicyEvaluator
from accessgate.core.requests.machine import RequestStateMachine
from accessgate.core.requests.models import FieldUpdates, RequestState
from accessgate.core.requests.states import TERMINAL_STATES
from accessgate.store.base import RecordStore
from accessgate.store.memory import MemoryStore
from .chat_log import SENDER_ASSISTANT, SENDER_USER, ChatLog, ChatMessage
from .notifications import NotificationComposer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeskReply:
    """What the chat front end renders after a message."""
    state: RequestState
    next_field: Optional[str]
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.to_dict(),
            "next_field": self.next_field,
            "message": self.message,
        }


class AccessDesk:
    """
    Facade over the authorization core.

    Handles:
    - Chat messages and field updates for requesters
    - Approvals and rejections, with write-back and delivery
    - Escalations and their resolution
    """

    def __init__(
        self,
        directory: Directory,
        machine: RequestStateMachine,
        ledger: ApprovalLedger,
        composer: NotificationComposer,
        escalations: EscalationTracker,
        chat: ChatLog,
        *,
        max_message_length: int = 120,
    ):
        self.directory = directory
        self.machine = machine
        self.ledger = ledger
        self.composer = composer
        self.escalations = escalations
        self.chat = chat
        self.max_message_length = max_message_length
        if escalations.on_resolved is None:
            escalations.on_resolved = self._announce_resolution

    def _user(self, user_id: str) -> User:
        user = self.directory.user(user_id)
        if user is None:
            raise RecordNotFoundError("User", user_id)
        return user

    def _reply(self, user_id: str, state: RequestState, message: str) -> DeskReply:
        self.chat.append(user_id, message, SENDER_ASSISTANT)
        return DeskReply(state=state, next_field=state.next_field, message=message)

    # Requesters

    def state(self, user_id: str) -> RequestState:
        user = self._user(user_id)
        return self.machine.get_or_create(user.id, user.role)

    def reset(self, user_id: str) -> RequestState:
        user = self._user(user_id)
        return self.machine.reset(user.id, user.role)

    def handle_message(
        self,
        user_id: str,
        message: str = "",
        guess: Optional[FieldUpdates] = None,
    ) -> DeskReply:
        """
        Handle one inbound chat message.

        Args:
            user_id: Requester sending the message
            message: Free text
            guess: Structured field guesses; these win over anything
                parsed from the message

        Returns:
            DeskReply with the state, next field and reply text

        Raises:
            RecordNotFoundError: If the user is unknown
        """
        user = self._user(user_id)
        if message:
            self.chat.append(user.id, message, SENDER_USER)

        state = self.machine.get_or_create(user.id, user.role)
        parsed = parse_intent(
            message, self.directory, requester_id=user.id, current_system=state.system,
        )
        updates = parsed.updates.merged(guess)

        if state.status in TERMINAL_STATES:
            if updates.system is None:
                return self._reply(user.id, state, NEXT_REQUEST)
            logger.debug("Starting a new request for %s", user.id)
            state = self.machine.reset(user.id, user.role)

        if state.escalation_target and updates.is_empty() and is_affirmative(message):
            escalation = self.escalate(user.id)
            return self._reply(
                user.id,
                self.machine.get(user.id),
                escalation_opened_reply(escalation, self.directory, self.max_message_length),
            )

        step = self.machine.apply(user.id, user.role, updates)
        return self._reply(
            user.id,
            step.state,
            status_reply(step, self.directory, self.max_message_length),
        )

    # Approvers

    def _deliver(self, decision: Decision) -> None:
        self.composer.reflect(decision, self.machine)
        self.chat.deliver(decision.notifications)

    def approve(self, request_id: str, actor_id: str) -> Decision:
        """
        Approve a pending request.

        Raises:
            RecordNotFoundError: If the actor or request is unknown
            InvalidTransitionError: If the request was already decided
            AuthorizationDeniedError: If the actor may not decide it
        """
        actor = self._user(actor_id)
        decision = self.ledger.approve(request_id, actor.id, actor.role)
        self._deliver(decision)
        return decision

    def reject(self, request_id: str, actor_id: str, reason: str) -> Decision:
        """
        Reject a pending request.

        Raises:
            RecordNotFoundError: If the actor or request is unknown
            InvalidTransitionError: If the request was already decided
            AuthorizationDeniedError: If the actor may not decide it
            ValueError: If the reason is missing or too long
        """
        actor = self._user(actor_id)
        decision = self.ledger.reject(request_id, actor.id, actor.role, reason)
        self._deliver(decision)
        return decision

    def batch_decide(
        self,
        request_ids: List[str],
        actor_id: str,
        outcome: DecisionOutcome,
        reason: Optional[str] = None,
    ) -> BatchResult:
        actor = self._user(actor_id)
        result = self.ledger.batch_decide(request_ids, actor.id, actor.role, outcome, reason)
        for decision in result.decisions:
            self._deliver(decision)
        return result

    def request(self, request_id: str) -> AccessRequest:
        return self.ledger.get(request_id)

    def pending_for(self, viewer_id: str) -> List[AccessRequest]:
        viewer = self._user(viewer_id)
        return self.ledger.pending_for(viewer.id, viewer.role)

    def pending_count(self, viewer_id: str) -> int:
        viewer = self._user(viewer_id)
        return self.ledger.pending_count(viewer.id, viewer.role)

    # Escalations

    def escalate(self, user_id: str) -> EscalationRequest:
        """
        Escalate the requester's blocked request to the project owner.

        Raises:
            RecordNotFoundError: If the user is unknown
            InvalidTransitionError: If the request does not need escalation
        """
        user = self._user(user_id)
        state = self.machine.get(user.id)
        if state is None or not state.escalation_target or not state.project:
            raise InvalidTransitionError(
                f"No escalation is pending for {user.id}",
                from_state=state.status.value if state else None,
                action="escalate",
            )

        escalation = self.escalations.open(
            user.id, state.project, state.system, state.access_level, state.escalation_target,
        )
        self.chat.append(
            escalation.target_id,
            escalation_request_message(escalation, self.directory, self.max_message_length),
        )
        return escalation

    def resolve_escalation(
        self,
        escalation_id: str,
        actor_id: str,
        approved: bool,
        justification: Optional[str] = None,
    ) -> EscalationRequest:
        actor = self._user(actor_id)
        return self.escalations.resolve(escalation_id, actor.id, actor.role, approved, justification)

    def escalation(self, escalation_id: str) -> EscalationRequest:
        return self.escalations.get(escalation_id)

    def escalations_for(self, target_id: str) -> List[EscalationRequest]:
        return self.escalations.pending_for(target_id)

    def _announce_resolution(self, escalation: EscalationRequest) -> None:
        self.chat.append(
            escalation.requester_id,
            escalation_resolved_message(escalation, self.directory, self.max_message_length),
        )

    # Chat

    def chat_history(self, user_id: str) -> List[ChatMessage]:
        self._user(user_id)
        return self.chat.history(user_id)


def build_store(settings: Settings) -> RecordStore:
    """Create the configured record store."""
    if settings.store_backend == "memory":
        return MemoryStore()
    if settings.store_backend == "sql":
        from accessgate.db.session import create_db_engine, create_session_factory, init_db
        from accessgate.store.sql import SqlStore

        engine = create_db_engine(settings.database_url, echo=settings.debug)
        init_db(engine)
        return SqlStore(create_session_factory(engine))
    raise ValueError(f"Unknown store backend: {settings.store_backend}")


def build_scheduler(settings: Settings) -> EscalationScheduler:
    """Create the configured escalation auto-resolve scheduler."""
    delay = settings.escalation_auto_resolve_seconds
    if settings.escalation_scheduler == "thread":
        return ThreadingScheduler(delay)
    if settings.escalation_scheduler == "celery":
        from accessgate.workers.escalation_tasks import CeleryScheduler

        return CeleryScheduler(delay)
    if settings.escalation_scheduler == "disabled":
        return DisabledScheduler()
    raise ValueError(f"Unknown escalation scheduler: {settings.escalation_scheduler}")


def build_desk(
    settings: Optional[Settings] = None,
    *,
    directory: Optional[Directory] = None,
    store: Optional[RecordStore] = None,
    scheduler: Optional[EscalationScheduler] = None,
    clock=None,
) -> AccessDesk:
    """
    Wire up an AccessDesk.

    Args:
        settings: Settings to build from; defaults to get_settings()
        directory: Directory to use instead of loading the configured file
        store: Record store to use instead of the configured backend
        scheduler: Escalation scheduler to use instead of the configured one
        clock: Source of timestamps

    Returns:
        AccessDesk
    """
    settings = settings or get_settings()
    directory = directory or load_directory(settings.directory_path)
    store = store if store is not None else build_store(settings)
    scheduler = scheduler or build_scheduler(settings)

    composer = NotificationComposer(directory, max_length=settings.max_message_length)
    ledger = ApprovalLedger(
        store,
        composer,
        fallback_approver_id=settings.fallback_approver_id,
        max_reason_length=settings.max_message_length,
        link_factory=partial(link_for_request, directory=directory),
        clock=clock,
    )
    evaluator = PolicyEvaluator(
        directory,
        admin_requires_approval=settings.developer_admin_requires_approval,
    )
    machine = RequestStateMachine(store, evaluator, ledger, directory, clock=clock)
    escalations = EscalationTracker(
        store,
        scheduler,
        max_justification_length=settings.max_message_length,
        clock=clock,
    )
    chat = ChatLog(store, clock=clock)

    logger.info(
        "AccessDesk ready: store=%s scheduler=%s fallback approver=%s",
        type(store).__name__, type(scheduler).__name__, settings.fallback_approver_id,
    )
    return AccessDesk(
        directory,
        machine,
        ledger,
        composer,
        escalations,
        chat,
        max_message_length=settings.max_message_length,
    )


@lru_cache
def get_desk() -> AccessDesk:
    return build_desk(get_settings())
