from uuid import uuid4

from sqlalchemy import Column, String, Integer, Boolean, DateTime
from sqlalchemy.sql import func
from app.core.database import Base


class TurnStage(Base):
    """A node of the configurable turn workflow. Stages are data, not code."""
    __tablename__ = "turn_stages"

    id = Column(String(36), primary_key=True, index=True, default=lambda: str(uuid4()))

    name = Column(String(100), nullable=False)
    key = Column(String(50), nullable=False, unique=True, index=True)  # draft / secure_property / ...
    sequence = Column(Integer, nullable=False, default=0, index=True)  # display order, gaps allowed
    color = Column(String(20), nullable=True, default="#6B7280")
    description = Column(String(500), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    is_default = Column(Boolean, nullable=False, default=False)  # stage for new turns
    is_final = Column(Boolean, nullable=False, default=False)

    # Business rules
    requires_approval = Column(Boolean, nullable=False, default=False)
    requires_vendor = Column(Boolean, nullable=False, default=False)
    requires_amount = Column(Boolean, nullable=False, default=False)
    requires_lock_box = Column(Boolean, nullable=False, default=False)

    # StageAutoStatus tag, mapped to TurnStatus on transition
    auto_status = Column(String(20), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
