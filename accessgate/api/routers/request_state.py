"""Request state API endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from accessgate.api.deps import get_desk, http_error
from accessgate.core.errors import AccessGateError
from accessgate.core.requests.models import FieldUpdates
from accessgate.services.desk import AccessDesk

router = APIRouter(prefix="/request-state", tags=["request-state"])


# Schemas
class RequestStateResponse(BaseModel):
    requester_id: str
    role: str
    system: Optional[str] = None
    access_level: Optional[str] = None
    project: Optional[str] = None
    target_owner_id: Optional[str] = None
    status: str
    missing_fields: List[str]
    next_field: Optional[str] = None
    confidence: str
    access_link: Optional[str] = None
    rejection_reason: Optional[str] = None
    approver_id: Optional[str] = None
    approver_role: Optional[str] = None
    decided_at: Optional[str] = None
    request_id: Optional[str] = None
    escalation_target: Optional[str] = None


class StateUpdateRequest(BaseModel):
    user_id: str
    message: str = ""
    system: Optional[str] = None
    access_level: Optional[str] = None
    project: Optional[str] = None
    target_owner_id: Optional[str] = None


class StateUpdateResponse(BaseModel):
    state: RequestStateResponse
    next_field: Optional[str] = None
    message: str


# Endpoints
@router.post("/update", response_model=StateUpdateResponse)
async def update_request_state(
    body: StateUpdateRequest,
    desk: AccessDesk = Depends(get_desk),
):
    """Apply a chat message and/or explicit field selections."""
    guess = FieldUpdates.from_raw(body.model_dump(exclude={"user_id", "message"}))
    try:
        reply = desk.handle_message(body.user_id, body.message, guess=guess)
    except (AccessGateError, ValueError) as e:
        raise http_error(e)
    return StateUpdateResponse.model_validate(reply.to_dict())


@router.get("/{user_id}", response_model=RequestStateResponse)
async def get_request_state(
    user_id: str,
    desk: AccessDesk = Depends(get_desk),
):
    """Get the user's current request state."""
    try:
        state = desk.state(user_id)
    except AccessGateError as e:
        raise http_error(e)
    return RequestStateResponse.model_validate(state.to_dict())


@router.post("/{user_id}/reset", response_model=RequestStateResponse)
async def reset_request_state(
    user_id: str,
    desk: AccessDesk = Depends(get_desk),
):
    """Discard the user's request and start a fresh draft."""
    try:
        state = desk.reset(user_id)
    except AccessGateError as e:
        raise http_error(e)
    return RequestStateResponse.model_validate(state.to_dict())
