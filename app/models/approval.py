from uuid import uuid4

from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Text, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base

class Approval(Base):
    __tablename__ = "approvals"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid4()))

    turn_id = Column(String(36), ForeignKey("turns.id"), nullable=False, index=True)
    turn = relationship("Turn")

    type = Column(String, nullable=False)          # dfo / ho
    status = Column(String, nullable=False, default="pending")  # pending/approved/rejected/cancelled

    requested_by = Column(String, nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)  # amount at time of request
    notes = Column(Text, nullable=True)

    approved_by = Column(String, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(String, nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        # At most one pending approval per (turn, type)
        Index(
            "uq_approvals_turn_type_pending",
            "turn_id",
            "type",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )
