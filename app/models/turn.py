from uuid import uuid4

from sqlalchemy import Column, String, Integer, BigInteger, Boolean, ForeignKey, Numeric, Text
from sqlalchemy.orm import relationship
from app.core.clock import now_ms
from app.core.database import Base


class Turn(Base):
    __tablename__ = "turns"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid4()))
    turn_number = Column(String(50), nullable=False, unique=True, index=True)  # "TURN-2026-123456"

    property_id = Column(BigInteger, ForeignKey("properties.id"), nullable=False, index=True)
    property = relationship("Property", back_populates="turns")

    vendor_id = Column(String(36), ForeignKey("vendors.id"), nullable=True, index=True)
    vendor = relationship("Vendor")

    # Null only until the first transition
    stage_id = Column(String(36), ForeignKey("turn_stages.id"), nullable=True, index=True)
    stage = relationship("TurnStage")

    status = Column(String, nullable=False, default="draft", index=True)  # TurnStatus
    priority = Column(String, nullable=False, default="medium")  # TurnPriority

    estimated_cost = Column(Numeric(10, 2), nullable=True)
    actual_cost = Column(Numeric(10, 2), nullable=True)

    # Approval slots
    needs_dfo_approval = Column(Boolean, nullable=False, default=False)
    needs_ho_approval = Column(Boolean, nullable=False, default=False)
    dfo_approved_by = Column(String, nullable=True)
    dfo_approved_at = Column(BigInteger, nullable=True)
    ho_approved_by = Column(String, nullable=True)
    ho_approved_at = Column(BigInteger, nullable=True)
    rejection_reason = Column(Text, nullable=True)

    notes = Column(Text, nullable=True)

    # Epoch milliseconds; stage dwell time is computed from stage_entered_at
    stage_entered_at = Column(BigInteger, nullable=True)
    created_at = Column(BigInteger, nullable=False, default=now_ms)
    updated_at = Column(BigInteger, nullable=False, default=now_ms, onupdate=now_ms)

    # Optimistic lock: concurrent writers to the same row raise StaleDataError
    version = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
