from sqlalchemy import Column, String, DateTime, Integer, BigInteger, JSON, Text
from sqlalchemy.sql import func
from app.core.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, index=True)

    table_name = Column(String(100), nullable=False, index=True)  # turns/approvals/...
    record_id = Column(String, nullable=False, index=True)
    action = Column(String(20), nullable=False, index=True)  # AuditAction

    user_id = Column(String, nullable=False, index=True)
    user_email = Column(String, nullable=True, index=True)
    user_role = Column(String, nullable=True)

    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    changed_fields = Column(JSON, nullable=True)  # list of field names

    # Optional linkage for per-entity trails
    property_id = Column(BigInteger, nullable=True, index=True)
    turn_id = Column(String(36), nullable=True, index=True)
    vendor_id = Column(String(36), nullable=True, index=True)

    context = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    metadata_ = Column("metadata", JSON, nullable=True)

    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
