"""Decision authority checks for AccessGate.

Who may decide a pending access request, and who may see it.
"""

from typing import Any

from accessgate.core.errors import AuthorizationDeniedError
from .roles import Role, can_approve, has_override_authority


class DecisionChecker:
    """Checks what an acting identity may do with access requests."""

    def __init__(self, actor_id: str, actor_role: Role):
        """
        Initialize with the acting identity.

        Args:
            actor_id: ID of the user acting on the request
            actor_role: Role of that user
        """
        self.actor_id = actor_id
        self.actor_role = Role(actor_role)

    @property
    def is_override(self) -> bool:
        """Override authority may decide and see every pending request."""
        return has_override_authority(self.actor_role)

    def owns_account(self, request: Any) -> bool:
        """Check if the actor is the account owner of an account-owned request."""
        return bool(request.is_account_owned and request.account_owner_id == self.actor_id)

    def can_decide(self, request: Any) -> bool:
        """
        Check if the actor may approve or reject a request.

        An approval-authority role may decide; so may the owner of the
        account an account-owned request targets, whatever their role.
        """
        if can_approve(self.actor_role):
            return True
        return self.owns_account(request)

    def require_decide(self, request: Any) -> None:
        """
        Raise if the actor may not decide the request.

        Raises:
            AuthorizationDeniedError: If the actor lacks authority
        """
        if not self.can_decide(request):
            raise AuthorizationDeniedError(self.actor_id, self.actor_role.value, request.id)

    def can_view_pending(self, request: Any) -> bool:
        """Exact visibility filter for pending queues."""
        if self.is_override:
            return True
        return request.assigned_approver_id == self.actor_id
