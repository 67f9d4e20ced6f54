"""
Stage transition engine.

Turns move through stages configured as ``turn_stages`` rows. A transition
appends a ``turn_stage_history`` row with the time spent in the previous
stage, moves the turn, derives its coarse status from the stage's
``auto_status`` tag and, for stages that require approval, asks the approval
gate for the approvals the turn's estimated cost needs.
"""
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.core import clock
from app.core.audit import AuditRecorder, snapshot
from app.core.auth import ActorContext, system_actor
from app.models.enums import StageAutoStatus, TurnPriority, TurnStatus
from app.models.property import Property
from app.models.turn import Turn
from app.models.turn_stage import TurnStage
from app.models.turn_stage_history import TurnStageHistory
from app.models.vendor import Vendor
from app.services.approvals import ApprovalGate
from app.services.errors import NotFoundError, ValidationError
from app.services.thresholds import to_amount
from app.services.txn import run_with_conflict_retry

logger = logging.getLogger(__name__)

# Stage tag -> turn status. Tags without an entry leave the status alone.
AUTO_STATUS_MAP = {
    StageAutoStatus.DRAFT: TurnStatus.DRAFT,
    StageAutoStatus.PENDING: TurnStatus.SECURE_PROPERTY,
    StageAutoStatus.IN_PROGRESS: TurnStatus.IN_PROGRESS,
    StageAutoStatus.ON_HOLD: TurnStatus.CHANGE_ORDER,
    StageAutoStatus.COMPLETED: TurnStatus.COMPLETE,
    StageAutoStatus.CANCELLED: TurnStatus.CANCELLED,
}


def status_for_stage(stage: TurnStage) -> Optional[TurnStatus]:
    if not stage.auto_status:
        return None
    try:
        return AUTO_STATUS_MAP.get(StageAutoStatus(stage.auto_status))
    except ValueError:
        logger.warning("Stage %s has unknown auto_status %r", stage.key, stage.auto_status)
        return None


@dataclass
class TransitionResult:
    turn: Turn
    stage: TurnStage
    history: TurnStageHistory
    from_stage_id: Optional[str]
    to_stage_id: str
    duration_in_previous_stage: Optional[int]


class StageTransitionEngine:
    def __init__(
        self,
        db: Session,
        audit: AuditRecorder,
        approvals: Optional[ApprovalGate] = None,
        now_ms: Callable[[], int] = None,
    ):
        self.db = db
        self.audit = audit
        self.approvals = approvals
        self._now_ms = now_ms or clock.now_ms

    def transition(
        self,
        turn_id: str,
        to_stage_id: Optional[str],
        actor: Optional[ActorContext] = None,
        reason: Optional[str] = None,
    ) -> TransitionResult:
        """Move a turn to another stage.

        Raises NotFoundError for an unknown turn or stage before writing
        anything. The history row and the turn update commit together. The
        approval request that may follow is a separate best-effort step: if it
        fails the transition still stands.
        """
        if not to_stage_id:
            raise ValidationError("Target stage ID is required")
        actor = actor or system_actor()

        def _move() -> TransitionResult:
            turn = self.db.query(Turn).filter(Turn.id == turn_id).with_for_update().first()
            if not turn:
                raise NotFoundError("Turn", turn_id)
            stage = self.db.query(TurnStage).filter(TurnStage.id == to_stage_id).first()
            if not stage:
                raise NotFoundError("Stage", to_stage_id)

            now = self._now_ms()
            from_stage_id = turn.stage_id
            duration = now - turn.stage_entered_at if turn.stage_entered_at is not None else None

            with self.audit.tracking(
                turn,
                table_name="turns",
                record_id=turn.id,
                actor=actor,
                turn_id=turn.id,
                property_id=turn.property_id,
                vendor_id=turn.vendor_id,
            ) as entry:
                history = TurnStageHistory(
                    turn_id=turn.id,
                    from_stage_id=from_stage_id,
                    to_stage_id=stage.id,
                    transitioned_by=actor.email or actor.id,
                    transition_reason=reason,
                    duration_in_stage=duration,
                )
                self.db.add(history)

                turn.stage_id = stage.id
                turn.stage_entered_at = now
                turn.updated_at = now
                new_status = status_for_stage(stage)
                if new_status is not None:
                    turn.status = new_status.value

                self.db.commit()
                entry.context = (
                    f"Stage transition: {'from previous stage' if from_stage_id else 'initial'} to {stage.name}"
                )
                entry.metadata = {"from_stage_id": from_stage_id, "to_stage_id": stage.id,
                                  "duration_in_stage": duration, "reason": reason}

            return TransitionResult(
                turn=turn,
                stage=stage,
                history=history,
                from_stage_id=from_stage_id,
                to_stage_id=stage.id,
                duration_in_previous_stage=duration,
            )

        result = run_with_conflict_retry(self.db, _move)
        self._request_stage_approvals(result, actor)
        return result

    def _request_stage_approvals(self, result: TransitionResult, actor: ActorContext) -> None:
        stage, turn = result.stage, result.turn
        if not stage.requires_approval or turn.estimated_cost is None or self.approvals is None:
            return
        try:
            outcome = self.approvals.request_approvals(
                turn.id,
                turn.estimated_cost,
                requested_by=actor,
                notes=f"Approval required for stage: {stage.name}",
            )
            logger.info("Stage %s on turn %s: %s", stage.key, turn.turn_number, outcome.message)
            self.db.refresh(turn)
        except Exception:
            # The transition is already committed and stands
            self.db.rollback()
            logger.exception(
                "Failed to create approval request for turn %s entering stage %s", turn.id, stage.key
            )

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def create_turn(
        self,
        *,
        property_id: int,
        actor: Optional[ActorContext] = None,
        stage_id: Optional[str] = None,
        priority: str = TurnPriority.MEDIUM.value,
        estimated_cost=None,
        vendor_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Turn:
        """Create a turn in the given stage, or the default stage when none is given."""
        if not self.db.query(Property).filter(Property.id == property_id).first():
            raise NotFoundError("Property", property_id)
        if vendor_id and not self.db.query(Vendor).filter(Vendor.id == vendor_id).first():
            raise NotFoundError("Vendor", vendor_id)
        try:
            priority = TurnPriority(priority).value
        except ValueError:
            raise ValidationError(f"Unknown priority: {priority}")

        if stage_id:
            stage = get_stage(self.db, stage_id)
        else:
            stage = default_stage(self.db)

        now = self._now_ms()
        turn = Turn(
            turn_number=self._next_turn_number(now),
            property_id=property_id,
            vendor_id=vendor_id,
            priority=priority,
            estimated_cost=to_amount(estimated_cost) if estimated_cost is not None else None,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        if stage is not None:
            turn.stage_id = stage.id
            turn.stage_entered_at = now
            turn.status = (status_for_stage(stage) or TurnStatus.DRAFT).value
        self.db.add(turn)
        self.db.commit()
        self.db.refresh(turn)

        self.audit.log_create(
            "turns",
            turn.id,
            snapshot(turn),
            actor=actor,
            context=f"Created turn: {turn.turn_number}",
            turn_id=turn.id,
            property_id=turn.property_id,
            vendor_id=turn.vendor_id,
        )
        return turn

    def _next_turn_number(self, now: int) -> str:
        year = datetime.fromtimestamp(now / 1000, tz=timezone.utc).year
        for _ in range(5):
            number = f"TURN-{year}-{str(now)[-6:]}"
            if not self.db.query(Turn.id).filter(Turn.turn_number == number).first():
                return number
            now += random.randint(1, 999)
        raise ValidationError("Could not allocate a unique turn number, please retry")

    def get_turn(self, turn_id: str) -> Turn:
        turn = self.db.query(Turn).filter(Turn.id == turn_id).first()
        if not turn:
            raise NotFoundError("Turn", turn_id)
        return turn

    def history(self, turn_id: str) -> List[TurnStageHistory]:
        self.get_turn(turn_id)
        return (
            self.db.query(TurnStageHistory)
            .filter(TurnStageHistory.turn_id == turn_id)
            .order_by(TurnStageHistory.id.asc())
            .all()
        )


# ----------------------------------------------------------------------
# Stage configuration
# ----------------------------------------------------------------------

def list_stages(db: Session, include_inactive: bool = False) -> List[TurnStage]:
    q = db.query(TurnStage)
    if not include_inactive:
        q = q.filter(TurnStage.is_active.is_(True))
    return q.order_by(TurnStage.sequence.asc()).all()


def get_stage(db: Session, stage_id: str) -> TurnStage:
    stage = db.query(TurnStage).filter(TurnStage.id == stage_id).first()
    if not stage:
        raise NotFoundError("Stage", stage_id)
    return stage


def default_stage(db: Session) -> Optional[TurnStage]:
    return (
        db.query(TurnStage)
        .filter(TurnStage.is_default.is_(True), TurnStage.is_active.is_(True))
        .order_by(TurnStage.sequence.asc())
        .first()
    )


def create_stage(db: Session, audit: AuditRecorder, data: dict,
                 actor: Optional[ActorContext] = None) -> TurnStage:
    if db.query(TurnStage.id).filter(TurnStage.key == data["key"]).first():
        raise ValidationError(f"Stage key already exists: {data['key']}")
    auto_status = data.get("auto_status")
    if auto_status is not None:
        try:
            data["auto_status"] = StageAutoStatus(auto_status).value
        except ValueError:
            raise ValidationError(f"Unknown auto_status: {auto_status}")

    stage = TurnStage(**data)
    db.add(stage)
    db.commit()
    db.refresh(stage)
    audit.log_create("turn_stages", stage.id, snapshot(stage), actor=actor,
                     context=f"Created stage: {stage.name}")
    return stage
