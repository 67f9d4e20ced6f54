from fastapi import APIRouter, Depends, Query, Response
from typing import List, Optional, Union

from app.api.deps import get_approval_gate
from app.core.auth import ActorContext, get_actor
from app.schemas.approval import ApprovalCreate, ApprovalDecision, ApprovalOut, MessageOut
from app.services.approvals import ApprovalGate
from app.services.errors import ValidationError

router = APIRouter(prefix="/approvals", tags=["approvals"])


@router.get("", response_model=List[ApprovalOut])
def list_approvals(
    gate: ApprovalGate = Depends(get_approval_gate),
    actor: ActorContext = Depends(get_actor),
    turn_id: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
):
    return gate.list(turn_id=turn_id, status=status, type=type)


@router.get("/{approval_id}", response_model=ApprovalOut)
def get_approval(
    approval_id: str,
    gate: ApprovalGate = Depends(get_approval_gate),
    actor: ActorContext = Depends(get_actor),
):
    return gate.get(approval_id)


@router.post("", response_model=Union[List[ApprovalOut], MessageOut], status_code=201)
def create_approvals(
    payload: ApprovalCreate,
    response: Response,
    gate: ApprovalGate = Depends(get_approval_gate),
    actor: ActorContext = Depends(get_actor),
):
    """
    Request the approvals an amount needs for a turn.

    201 with the created approvals, or 200 with a message when every required
    approval is already pending or no threshold applies.
    """
    if not payload.turn_id or payload.amount is None:
        raise ValidationError("Turn ID and amount are required")

    result = gate.request_approvals(payload.turn_id, payload.amount, requested_by=actor, notes=payload.notes)
    if not result.approvals_needed:
        response.status_code = 200
        return MessageOut(message=result.message)
    return [ApprovalOut.model_validate(a) for a in result.created]


@router.put("/{approval_id}", response_model=ApprovalOut)
def decide_approval(
    approval_id: str,
    payload: Optional[ApprovalDecision] = None,
    gate: ApprovalGate = Depends(get_approval_gate),
    actor: ActorContext = Depends(get_actor),
):
    """Approve or reject. Body: {"action": "approve"|"reject", "rejectionReason": "..."}"""
    payload = payload or ApprovalDecision()
    return gate.decide(approval_id, payload.action, actor, rejection_reason=payload.rejection_reason)


@router.delete("/{approval_id}", response_model=MessageOut)
def cancel_approval(
    approval_id: str,
    gate: ApprovalGate = Depends(get_approval_gate),
    actor: ActorContext = Depends(get_actor),
):
    gate.cancel(approval_id, actor)
    return {"message": "Approval cancelled successfully"}
