from fastapi import APIRouter, Depends
from typing import List, Optional

from app.api.deps import get_stage_engine
from app.core.auth import ActorContext, get_actor
from app.schemas.turn import (
    StageHistoryOut,
    StageTransitionOut,
    StageTransitionRequest,
    TurnCreate,
    TurnOut,
)
from app.services.stages import StageTransitionEngine

router = APIRouter(prefix="/turns", tags=["turns"])


@router.post("", response_model=TurnOut, status_code=201)
def create_turn(
    payload: TurnCreate,
    engine: StageTransitionEngine = Depends(get_stage_engine),
    actor: ActorContext = Depends(get_actor),
):
    """Create a turn. Without a stage_id it starts in the configured default stage."""
    return engine.create_turn(actor=actor, **payload.model_dump())


@router.get("/{turn_id}", response_model=TurnOut)
def get_turn(
    turn_id: str,
    engine: StageTransitionEngine = Depends(get_stage_engine),
    actor: ActorContext = Depends(get_actor),
):
    return engine.get_turn(turn_id)


@router.get("/{turn_id}/history", response_model=List[StageHistoryOut])
def get_turn_history(
    turn_id: str,
    engine: StageTransitionEngine = Depends(get_stage_engine),
    actor: ActorContext = Depends(get_actor),
):
    """Stage transitions of a turn, oldest first."""
    return engine.history(turn_id)


@router.post("/{turn_id}/transition", response_model=StageTransitionOut)
def transition_turn(
    turn_id: str,
    payload: Optional[StageTransitionRequest] = None,
    engine: StageTransitionEngine = Depends(get_stage_engine),
    actor: ActorContext = Depends(get_actor),
):
    """
    Move a turn to another stage.

    **Example:**
    ```
    POST /turns/{turn_id}/transition
    {
        "toStageId": "8c1f...",
        "reason": "Inspection done"
    }
    ```

    Returns 400 without toStageId and 404 if the turn or stage does not exist.
    Entering a stage that requires approval requests the approvals the
    turn's estimated cost needs.
    """
    payload = payload or StageTransitionRequest()
    result = engine.transition(turn_id, payload.to_stage_id, actor=actor, reason=payload.reason)
    return {
        "turn": result.turn,
        "stage": result.stage,
        "transition_history": {
            "from_stage_id": result.from_stage_id,
            "to_stage_id": result.to_stage_id,
            "duration_in_previous_stage": result.duration_in_previous_stage,
        },
    }
