from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from app.api.deps import get_audit, get_db
from app.core.audit import AuditRecorder
from app.core.auth import ActorContext, get_actor
from app.schemas.approval import MessageOut
from app.schemas.approval_threshold import (
    ApprovalThresholdCreate,
    ApprovalThresholdOut,
    ApprovalThresholdUpdate,
)
from app.services import thresholds

router = APIRouter(prefix="/approval-thresholds", tags=["approval-thresholds"])


@router.get("", response_model=List[ApprovalThresholdOut])
def list_thresholds(
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    include_inactive: bool = Query(True),
):
    """Thresholds ordered by min_amount, highest first."""
    return thresholds.list_thresholds(db, include_inactive=include_inactive)


@router.post("", response_model=ApprovalThresholdOut, status_code=201)
def create_threshold(
    payload: ApprovalThresholdCreate,
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
    actor: ActorContext = Depends(get_actor),
):
    # TODO: restrict to ADMIN/SUPER_ADMIN once roles are carried in the Supabase JWT
    return thresholds.create_threshold(db, audit, actor=actor, **payload.model_dump())


@router.patch("/{threshold_id}", response_model=ApprovalThresholdOut)
def update_threshold(
    threshold_id: int,
    payload: ApprovalThresholdUpdate,
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
    actor: ActorContext = Depends(get_actor),
):
    return thresholds.update_threshold(db, audit, threshold_id, payload.model_dump(exclude_unset=True), actor=actor)


@router.delete("/{threshold_id}", response_model=MessageOut)
def delete_threshold(
    threshold_id: int,
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
    actor: ActorContext = Depends(get_actor),
):
    """Soft delete: the threshold is deactivated, not removed."""
    thresholds.deactivate_threshold(db, audit, threshold_id, actor=actor)
    return {"message": "Threshold deleted successfully"}
