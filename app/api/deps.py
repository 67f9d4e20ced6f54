from fastapi import Depends
from sqlalchemy.orm import Session

from app.core.audit import AuditRecorder
from app.core.config import settings
from app.core.database import SessionLocal
from app.core.notifications import Notifier
from app.services.approvals import ApprovalGate
from app.services.stages import StageTransitionEngine

# Built once per process and shared by every request
audit_recorder = AuditRecorder(SessionLocal)
notifier = Notifier(api_key=settings.RESEND_API_KEY)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_audit() -> AuditRecorder:
    return audit_recorder


def get_notifier() -> Notifier:
    return notifier


def get_approval_gate(
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
    notifier: Notifier = Depends(get_notifier),
) -> ApprovalGate:
    return ApprovalGate(db, audit, notifier)


def get_stage_engine(
    db: Session = Depends(get_db),
    audit: AuditRecorder = Depends(get_audit),
    gate: ApprovalGate = Depends(get_approval_gate),
) -> StageTransitionEngine:
    return StageTransitionEngine(db, audit, gate)
