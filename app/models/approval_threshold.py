from sqlalchemy import Column, String, Integer, Boolean, DateTime, Numeric
from sqlalchemy.sql import func
from app.core.database import Base


class ApprovalThreshold(Base):
    """An amount band mapped to the approval type it requires. Bands may overlap."""
    __tablename__ = "approval_thresholds"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(100), nullable=False)
    min_amount = Column(Numeric(10, 2), nullable=False)  # inclusive
    max_amount = Column(Numeric(10, 2), nullable=True)   # inclusive, null = unbounded
    approval_type = Column(String, nullable=False, index=True)  # dfo / ho

    requires_sequential = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
