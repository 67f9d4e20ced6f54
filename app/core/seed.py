"""Default workflow configuration: turn stages and approval thresholds."""
import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from app.models.approval_threshold import ApprovalThreshold
from app.models.turn_stage import TurnStage

logger = logging.getLogger(__name__)

DEFAULT_TURN_STAGES = [
    {"key": "draft", "name": "Draft", "sequence": 1, "color": "#6B7280",
     "description": "Initial turn creation", "is_default": True, "auto_status": "DRAFT"},
    {"key": "secure_property", "name": "Secure Property", "sequence": 2, "color": "#EAB308",
     "description": "Property needs to be secured", "requires_lock_box": True, "auto_status": "PENDING"},
    {"key": "inspection", "name": "Inspection", "sequence": 3, "color": "#3B82F6",
     "description": "Property inspection phase"},
    {"key": "scope_review", "name": "Scope Review", "sequence": 4, "color": "#8B5CF6",
     "description": "Review scope of work", "requires_approval": True, "requires_amount": True},
    {"key": "vendor_assigned", "name": "Vendor Assigned", "sequence": 5, "color": "#6366F1",
     "description": "Vendor has been assigned", "requires_vendor": True},
    {"key": "in_progress", "name": "In Progress", "sequence": 6, "color": "#F97316",
     "description": "Turn work in progress", "auto_status": "IN_PROGRESS"},
    {"key": "change_order", "name": "Change Order", "sequence": 7, "color": "#F59E0B",
     "description": "Change order required", "requires_approval": True, "auto_status": "ON_HOLD"},
    {"key": "turns_complete", "name": "Turns Complete", "sequence": 8, "color": "#10B981",
     "description": "Turn work completed", "is_final": True, "auto_status": "COMPLETED"},
    {"key": "scan_360", "name": "360 Scan", "sequence": 9, "color": "#14B8A6",
     "description": "360 degree scan completed"},
]

DEFAULT_THRESHOLDS = [
    {"name": "Standard DFO Approval", "min_amount": Decimal("3000"), "max_amount": Decimal("9999.99"),
     "approval_type": "dfo", "requires_sequential": False},
    # Sequential: DFO signs off first
    {"name": "Standard HO Approval", "min_amount": Decimal("10000"), "max_amount": None,
     "approval_type": "ho", "requires_sequential": True},
]


def seed_stages(db: Session) -> int:
    """Insert the default stages unless any stage exists. Returns the number created."""
    if db.query(TurnStage.id).first():
        logger.info("Turn stages already exist, skipping seed")
        return 0
    for data in DEFAULT_TURN_STAGES:
        db.add(TurnStage(**data))
    db.commit()
    logger.info("Seeded %d turn stages", len(DEFAULT_TURN_STAGES))
    return len(DEFAULT_TURN_STAGES)


def seed_thresholds(db: Session) -> int:
    if db.query(ApprovalThreshold.id).first():
        logger.info("Approval thresholds already exist, skipping seed")
        return 0
    for data in DEFAULT_THRESHOLDS:
        db.add(ApprovalThreshold(is_active=True, **data))
    db.commit()
    logger.info("Seeded %d approval thresholds", len(DEFAULT_THRESHOLDS))
    return len(DEFAULT_THRESHOLDS)


if __name__ == "__main__":
    from app.core.database import SessionLocal

    logging.basicConfig(level=logging.INFO)
    db = SessionLocal()
    try:
        seed_stages(db)
        seed_thresholds(db)
    finally:
        db.close()
