"""Exceptions raised by the AccessGate authorization core.

Incomplete input and policy denials are not exceptions: they come back as
values from the request state machine so the conversation can continue.
Everything here is scoped to a single record and never fatal to the process.
"""

from typing import Optional


class AccessGateError(Exception):
    """Base class for all AccessGate errors."""


class InvalidTransitionError(AccessGateError):
    """Raised when a record is asked to make a transition it cannot make.

    Examples are deciding an already-decided request or finalizing a
    request state that is not in progress. The record is left untouched.
    """

    def __init__(self, message: str, from_state: Optional[str] = None, action: Optional[str] = None):
        super().__init__(message)
        self.from_state = from_state
        self.action = action


class AuthorizationDeniedError(AccessGateError):
    """Raised when the acting identity may not decide a request."""

    def __init__(self, actor_id: str, actor_role: str, request_id: Optional[str] = None):
        target = f" request {request_id}" if request_id else " this request"
        super().__init__(f"{actor_id} ({actor_role}) is not permitted to decide{target}")
        self.actor_id = actor_id
        self.actor_role = actor_role
        self.request_id = request_id


class RecordNotFoundError(AccessGateError, LookupError):
    """Raised when a user, request or escalation id is unknown."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class ReasonTooLongError(AccessGateError, ValueError):
    """Raised when a rejection reason or justification exceeds the limit."""

    def __init__(self, field: str, limit: int):
        super().__init__(f"{field} must be {limit} characters or less")
        self.field = field
        self.limit = limit
