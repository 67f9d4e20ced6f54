"""Approval thresholds: resolving which approval types an amount needs, and threshold configuration."""
import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from app.core.audit import AuditRecorder, snapshot
from app.core.auth import ActorContext
from app.models.approval_threshold import ApprovalThreshold
from app.models.enums import ApprovalType, AuditAction
from app.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

TABLE = "approval_thresholds"


def to_amount(value) -> Decimal:
    """Coerce numeric input to an exact Decimal. Floats go through str() to avoid binary drift."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Invalid amount: {value!r}")


def resolve_required_approvals(amount, thresholds: Iterable[ApprovalThreshold]) -> Set[ApprovalType]:
    """Approval types required for ``amount``.

    A threshold fires when it is active and min_amount <= amount <= max_amount,
    both ends inclusive, with a null max_amount meaning unbounded. Bands may
    overlap, in which case several types are required at once.
    """
    amount = to_amount(amount)
    required = set()
    for t in thresholds:
        if not t.is_active:
            continue
        if to_amount(t.min_amount) > amount:
            continue
        if t.max_amount is not None and amount > to_amount(t.max_amount):
            continue
        required.add(ApprovalType(t.approval_type))
    return required


class ThresholdResolver:
    def __init__(self, db: Session):
        self.db = db

    def active_thresholds(self) -> List[ApprovalThreshold]:
        return (
            self.db.query(ApprovalThreshold)
            .filter(ApprovalThreshold.is_active.is_(True))
            .all()
        )

    def required_for(self, amount) -> Set[ApprovalType]:
        return resolve_required_approvals(amount, self.active_thresholds())


def _check_band(min_amount: Decimal, max_amount: Optional[Decimal]) -> None:
    if min_amount < 0:
        raise ValidationError("min_amount cannot be negative")
    if max_amount is not None and max_amount < min_amount:
        raise ValidationError("max_amount cannot be lower than min_amount")


def list_thresholds(db: Session, include_inactive: bool = True) -> List[ApprovalThreshold]:
    q = db.query(ApprovalThreshold)
    if not include_inactive:
        q = q.filter(ApprovalThreshold.is_active.is_(True))
    return q.order_by(ApprovalThreshold.min_amount.desc()).all()


def get_threshold(db: Session, threshold_id: int) -> ApprovalThreshold:
    row = db.query(ApprovalThreshold).filter(ApprovalThreshold.id == threshold_id).first()
    if not row:
        raise NotFoundError("Threshold", threshold_id)
    return row


def create_threshold(
    db: Session,
    audit: AuditRecorder,
    *,
    name: Optional[str],
    min_amount,
    approval_type: Optional[str],
    max_amount=None,
    requires_sequential: bool = False,
    actor: Optional[ActorContext] = None,
) -> ApprovalThreshold:
    if not name or min_amount is None or not approval_type:
        raise ValidationError("Name, minimum amount, and approval type are required")
    try:
        approval_type = ApprovalType(approval_type)
    except ValueError:
        raise ValidationError(f"Unknown approval type: {approval_type}")

    min_amount = to_amount(min_amount)
    max_amount = to_amount(max_amount) if max_amount is not None else None
    _check_band(min_amount, max_amount)

    row = ApprovalThreshold(
        name=name,
        min_amount=min_amount,
        max_amount=max_amount,
        approval_type=approval_type.value,
        requires_sequential=requires_sequential,
        is_active=True,
    )
    db.add(row)
    db.commit()
    db.refresh(row)

    audit.log_create(TABLE, str(row.id), snapshot(row), actor=actor,
                     context=f"Created approval threshold: {row.name}")
    return row


def update_threshold(
    db: Session,
    audit: AuditRecorder,
    threshold_id: Optional[int],
    changes: dict,
    actor: Optional[ActorContext] = None,
) -> ApprovalThreshold:
    if threshold_id is None:
        raise ValidationError("Threshold ID is required")
    row = get_threshold(db, threshold_id)

    if "approval_type" in changes and changes["approval_type"] is not None:
        try:
            changes["approval_type"] = ApprovalType(changes["approval_type"]).value
        except ValueError:
            raise ValidationError(f"Unknown approval type: {changes['approval_type']}")
    for key in ("min_amount", "max_amount"):
        if key in changes and changes[key] is not None:
            changes[key] = to_amount(changes[key])
    if changes.get("min_amount", row.min_amount) is None:
        raise ValidationError("min_amount cannot be cleared")

    new_min = changes.get("min_amount", row.min_amount)
    new_max = changes["max_amount"] if "max_amount" in changes else row.max_amount
    _check_band(to_amount(new_min), to_amount(new_max) if new_max is not None else None)

    with audit.tracking(row, table_name=TABLE, record_id=str(row.id), actor=actor) as entry:
        for k, v in changes.items():
            setattr(row, k, v)
        db.commit()
        db.refresh(row)
        entry.context = f"Updated approval threshold: {row.name}"
    return row


def deactivate_threshold(
    db: Session,
    audit: AuditRecorder,
    threshold_id: Optional[int],
    actor: Optional[ActorContext] = None,
) -> ApprovalThreshold:
    """Soft delete: thresholds are never removed, only excluded from resolution."""
    if threshold_id is None:
        raise ValidationError("Threshold ID is required")
    row = get_threshold(db, threshold_id)

    with audit.tracking(row, table_name=TABLE, record_id=str(row.id),
                        action=AuditAction.DELETE, actor=actor) as entry:
        row.is_active = False
        db.commit()
        db.refresh(row)
        entry.context = f"Deactivated approval threshold: {row.name}"
    return row
