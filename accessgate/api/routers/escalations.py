"""Escalation API endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from accessgate.api.deps import get_desk, http_error
from accessgate.core.errors import AccessGateError
from accessgate.services.desk import AccessDesk

router = APIRouter(prefix="/escalations", tags=["escalations"])


# Schemas
class EscalationResponse(BaseModel):
    id: str
    requester_id: str
    project_id: str
    system: str
    level: str
    target_id: str
    status: str
    justification: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[str] = None
    auto_resolved: bool = False
    created_at: str


class EscalateRequest(BaseModel):
    user_id: str


class ResolveRequest(BaseModel):
    actor_id: str
    approved: bool
    justification: Optional[str] = None


# Endpoints
@router.post("", response_model=EscalationResponse, status_code=201)
async def create_escalation(
    body: EscalateRequest,
    desk: AccessDesk = Depends(get_desk),
):
    """Escalate the user's blocked request to the project owner."""
    try:
        escalation = desk.escalate(body.user_id)
    except AccessGateError as e:
        raise http_error(e)
    return EscalationResponse.model_validate(escalation.to_dict())


@router.get("/pending/{target_id}", response_model=List[EscalationResponse])
async def list_pending_escalations(
    target_id: str,
    desk: AccessDesk = Depends(get_desk),
):
    """List escalations awaiting the target."""
    return [EscalationResponse.model_validate(e.to_dict()) for e in desk.escalations_for(target_id)]


@router.get("/{escalation_id}", response_model=EscalationResponse)
async def get_escalation(
    escalation_id: str,
    desk: AccessDesk = Depends(get_desk),
):
    """Get an escalation by ID."""
    try:
        escalation = desk.escalation(escalation_id)
    except AccessGateError as e:
        raise http_error(e)
    return EscalationResponse.model_validate(escalation.to_dict())


@router.post("/{escalation_id}/resolve", response_model=EscalationResponse)
async def resolve_escalation(
    escalation_id: str,
    body: ResolveRequest,
    desk: AccessDesk = Depends(get_desk),
):
    """Approve or reject an escalation."""
    try:
        escalation = desk.resolve_escalation(
            escalation_id, body.actor_id, body.approved, body.justification,
        )
    except (AccessGateError, ValueError) as e:
        raise http_error(e)
    return EscalationResponse.model_validate(escalation.to_dict())
