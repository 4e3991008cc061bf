"""Approval workflow API endpoints."""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from accessgate.api.deps import get_desk, http_error
from accessgate.api.schemas.common import CountResponse
from accessgate.core.approval.ledger import Decision
from accessgate.core.approval.states import DecisionOutcome
from accessgate.core.errors import AccessGateError
from accessgate.services.desk import AccessDesk

router = APIRouter(prefix="/approvals", tags=["approvals"])


# Schemas
class AccessRequestResponse(BaseModel):
    id: str
    requester_id: str
    requester_name: str
    requester_role: str
    system: str
    requested_level: str
    granted_level: str
    scope: Dict[str, Any]
    assigned_approver_id: Optional[str] = None
    fallback_approver_id: str
    requires_approval: bool
    status: str
    decided_by: Optional[str] = None
    decided_by_role: Optional[str] = None
    decided_at: Optional[str] = None
    rejection_reason: Optional[str] = None
    access_link: Optional[str] = None
    downgrade_reason: Optional[str] = None
    created_at: str
    updated_at: str


class NotificationResponse(BaseModel):
    recipient_id: str
    audience: str
    message: str


class DecisionResponse(BaseModel):
    request: AccessRequestResponse
    notifications: List[NotificationResponse] = []


class ApproveRequest(BaseModel):
    request_id: str
    approver_id: str


class RejectRequest(BaseModel):
    request_id: str
    approver_id: str
    reason: Optional[str] = None


class BatchDecisionRequest(BaseModel):
    request_ids: List[str]
    approver_id: str
    outcome: DecisionOutcome = DecisionOutcome.APPROVE
    reason: Optional[str] = None


class BatchDecisionResponse(BaseModel):
    approved: List[str] = []
    rejected: List[str] = []
    failed: List[dict] = []


def _decision_response(decision: Decision) -> DecisionResponse:
    return DecisionResponse(
        request=AccessRequestResponse.model_validate(decision.request.to_dict()),
        notifications=[NotificationResponse.model_validate(n.to_dict()) for n in decision.notifications],
    )


# Endpoints
@router.get("/pending/{viewer_id}", response_model=List[AccessRequestResponse])
async def list_pending_approvals(
    viewer_id: str,
    desk: AccessDesk = Depends(get_desk),
):
    """List pending requests the viewer may decide."""
    try:
        requests = desk.pending_for(viewer_id)
    except AccessGateError as e:
        raise http_error(e)
    return [AccessRequestResponse.model_validate(r.to_dict()) for r in requests]


@router.get("/count/{viewer_id}", response_model=CountResponse)
async def count_pending_approvals(
    viewer_id: str,
    desk: AccessDesk = Depends(get_desk),
):
    """Count pending requests the viewer may decide."""
    try:
        return CountResponse(count=desk.pending_count(viewer_id))
    except AccessGateError as e:
        raise http_error(e)


@router.post("/approve", response_model=DecisionResponse)
async def approve_request(
    body: ApproveRequest,
    desk: AccessDesk = Depends(get_desk),
):
    """Approve a pending request."""
    try:
        decision = desk.approve(body.request_id, body.approver_id)
    except (AccessGateError, ValueError) as e:
        raise http_error(e)
    return _decision_response(decision)


@router.post("/reject", response_model=DecisionResponse)
async def reject_request(
    body: RejectRequest,
    desk: AccessDesk = Depends(get_desk),
):
    """Reject a pending request."""
    try:
        decision = desk.reject(body.request_id, body.approver_id, body.reason)
    except (AccessGateError, ValueError) as e:
        raise http_error(e)
    return _decision_response(decision)


@router.post("/batch", response_model=BatchDecisionResponse)
async def batch_decide(
    body: BatchDecisionRequest,
    desk: AccessDesk = Depends(get_desk),
):
    """Approve or reject multiple requests."""
    if body.outcome == DecisionOutcome.REJECT and not body.reason:
        raise HTTPException(status_code=400, detail="Reason is required for batch rejections")

    try:
        result = desk.batch_decide(body.request_ids, body.approver_id, body.outcome, body.reason)
    except AccessGateError as e:
        raise http_error(e)
    return BatchDecisionResponse(**result.to_dict())


@router.get("/{request_id}", response_model=AccessRequestResponse)
async def get_approval_request(
    request_id: str,
    desk: AccessDesk = Depends(get_desk),
):
    """Get an access request by ID."""
    try:
        request = desk.request(request_id)
    except AccessGateError as e:
        raise http_error(e)
    return AccessRequestResponse.model_validate(request.to_dict())
