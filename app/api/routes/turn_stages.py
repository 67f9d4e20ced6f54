from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from app.api.deps import get_audit, get_db
from app.core.audit import AuditRecorder
from app.core.auth import ActorContext, get_actor
from app.schemas.turn_stage import TurnStageCreate, TurnStageOut
from app.services.stages import create_stage, list_stages

router = APIRouter(prefix="/turn-stages", tags=["turn-stages"])


@router.get("", response_model=List[TurnStageOut])
def list_turn_stages(
    db: Session = Depends(get_db),
    actor: ActorContext = Depends(get_actor),
    include_inactive: bool = Query(False),
):
    """Stages in workflow order (by sequence)."""
    return list_stages(db, include_inactive=include_inactive)


@router.post("", response_model=TurnStageOut, status_code=201)
def create_turn_stage(
    payload: TurnStageCreate,
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
    actor: ActorContext = Depends(get_actor),
):
    return create_stage(db, audit, payload.model_dump(), actor=actor)
