from sqlalchemy import Column, String, Integer, BigInteger, DateTime, ForeignKey, Text
from sqlalchemy.sql import func
from app.core.database import Base


class TurnStageHistory(Base):
    """Append-only log of stage transitions, one row per transition."""
    __tablename__ = "turn_stage_history"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)

    turn_id = Column(String(36), ForeignKey("turns.id"), nullable=False, index=True)
    from_stage_id = Column(String(36), ForeignKey("turn_stages.id"), nullable=True)  # null on first transition
    to_stage_id = Column(String(36), ForeignKey("turn_stages.id"), nullable=False)

    transitioned_by = Column(String, nullable=False)
    transition_reason = Column(Text, nullable=True)

    # Milliseconds spent in from_stage; null when the turn had no stage_entered_at
    duration_in_stage = Column(BigInteger, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
