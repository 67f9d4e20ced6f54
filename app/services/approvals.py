"""
Approval gate for turns.

Approvals are requested when a turn's cost crosses configured thresholds, one
pending approval per (turn, type) at most. The turn carries a
``needs_<type>_approval`` flag per type that blocks it while a request is
outstanding. Deciding or cancelling an approval updates those flags.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.core import clock
from app.core.audit import AuditRecorder, snapshot
from app.core.auth import ActorContext, system_actor
from app.core.notifications import ApprovalDecisionNotice, ApprovalRequestNotice, Notifier
from app.models.approval import Approval
from app.models.enums import APPROVER_ROLES, ApprovalStatus, ApprovalType, AuditAction
from app.models.turn import Turn
from app.models.user import AppUser
from app.services.errors import NotFoundError, ValidationError
from app.services.thresholds import ThresholdResolver, to_amount
from app.services.txn import run_with_conflict_retry

logger = logging.getLogger(__name__)

NO_APPROVALS_NEEDED = "No approvals needed for this amount"

# Turn columns driven by each approval type
FLAG_FIELDS = {
    ApprovalType.DFO: "needs_dfo_approval",
    ApprovalType.HO: "needs_ho_approval",
}
APPROVED_BY_FIELDS = {
    ApprovalType.DFO: ("dfo_approved_by", "dfo_approved_at"),
    ApprovalType.HO: ("ho_approved_by", "ho_approved_at"),
}

ACTIONS = ("approve", "reject")


@dataclass
class ApprovalRequestResult:
    created: List[Approval] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def approvals_needed(self) -> bool:
        return bool(self.created)


class ApprovalGate:
    def __init__(
        self,
        db: Session,
        audit: AuditRecorder,
        notifier: Optional[Notifier] = None,
        now_ms: Callable[[], int] = None,
    ):
        self.db = db
        self.audit = audit
        self.notifier = notifier
        self._now_ms = now_ms or clock.now_ms

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, approval_id: str) -> Approval:
        row = self.db.query(Approval).filter(Approval.id == approval_id).first()
        if not row:
            raise NotFoundError("Approval", approval_id)
        return row

    def list(
        self,
        turn_id: Optional[str] = None,
        status: Optional[str] = None,
        type: Optional[str] = None,
    ) -> List[Approval]:
        q = self.db.query(Approval)
        if turn_id:
            q = q.filter(Approval.turn_id == turn_id)
        if status:
            q = q.filter(Approval.status == status)
        if type:
            q = q.filter(Approval.type == type)
        return q.order_by(Approval.created_at.desc()).all()

    def pending_types(self, turn_id: str) -> set:
        rows = (
            self.db.query(Approval.type)
            .filter(Approval.turn_id == turn_id, Approval.status == ApprovalStatus.PENDING.value)
            .all()
        )
        return {ApprovalType(t) for (t,) in rows}

    def _lock_turn(self, turn_id: str) -> Turn:
        turn = self.db.query(Turn).filter(Turn.id == turn_id).with_for_update().first()
        if not turn:
            raise NotFoundError("Turn", turn_id)
        return turn

    def _lock_approval(self, approval_id: str) -> Approval:
        row = self.db.query(Approval).filter(Approval.id == approval_id).with_for_update().first()
        if not row:
            raise NotFoundError("Approval", approval_id)
        return row

    # ------------------------------------------------------------------
    # Request
    # ------------------------------------------------------------------

    def request_approvals(
        self,
        turn_id: str,
        amount,
        requested_by: Optional[ActorContext] = None,
        notes: Optional[str] = None,
    ) -> ApprovalRequestResult:
        """Create a pending approval for every required type not already pending.

        Returns an empty result with NO_APPROVALS_NEEDED when nothing was
        created, either because no threshold fired or because every required
        type is already pending.
        """
        amount = to_amount(amount)
        if amount < 0:
            raise ValidationError("Amount cannot be negative")
        actor = requested_by or system_actor()

        def _request() -> List[Approval]:
            turn = self._lock_turn(turn_id)
            required = ThresholdResolver(self.db).required_for(amount)
            already_pending = self.pending_types(turn_id)
            to_create = sorted(required - already_pending, key=lambda t: t.value)
            if not to_create:
                return []

            with self.audit.tracking(
                turn,
                table_name="turns",
                record_id=turn.id,
                actor=actor,
                turn_id=turn.id,
                property_id=turn.property_id,
                vendor_id=turn.vendor_id,
            ) as entry:
                created = []
                for approval_type in to_create:
                    approval = Approval(
                        turn_id=turn.id,
                        type=approval_type.value,
                        status=ApprovalStatus.PENDING.value,
                        requested_by=actor.id,
                        amount=amount,
                        notes=notes,
                    )
                    self.db.add(approval)
                    created.append(approval)
                    # OR with the existing flag: other approvals may still be outstanding
                    setattr(turn, FLAG_FIELDS[approval_type], True)
                turn.updated_at = self._now_ms()
                self.db.commit()
                entry.context = f"Approval requested: {', '.join(t.value for t in to_create)}"
            return created

        created = run_with_conflict_retry(self.db, _request)
        if not created:
            return ApprovalRequestResult(created=[], message=NO_APPROVALS_NEEDED)

        for approval in created:
            self.db.refresh(approval)
            self.audit.log_create(
                "approvals",
                approval.id,
                snapshot(approval),
                actor=actor,
                context=f"Requested {approval.type} approval for {approval.amount}",
                turn_id=approval.turn_id,
            )

        self._notify_approvers(created, actor)
        return ApprovalRequestResult(created=created, message=f"{len(created)} approval(s) requested")

    # ------------------------------------------------------------------
    # Decide
    # ------------------------------------------------------------------

    def decide(
        self,
        approval_id: str,
        action: Optional[str],
        actor: ActorContext,
        rejection_reason: Optional[str] = None,
    ) -> Approval:
        """Approve or reject a pending approval.

        Approval clears the turn's flag for this type. Rejection stores the
        reason on the approval and the turn but leaves the turn's flags as they
        are; what happens to a rejected turn is a business decision.
        """
        if action not in ACTIONS:
            raise ValidationError("Invalid action. Must be 'approve' or 'reject'")
        reason = (rejection_reason or "").strip()
        if action == "reject" and not reason:
            raise ValidationError("Rejection reason is required")

        def _decide() -> Approval:
            approval = self._lock_approval(approval_id)
            if approval.status != ApprovalStatus.PENDING.value:
                raise ValidationError("Approval has already been processed")
            turn = self._lock_turn(approval.turn_id)
            approval_type = ApprovalType(approval.type)
            now = datetime.now(timezone.utc)

            audit_action = AuditAction.APPROVE if action == "approve" else AuditAction.REJECT
            links = dict(turn_id=turn.id, property_id=turn.property_id, vendor_id=turn.vendor_id)
            with self.audit.tracking(approval, table_name="approvals", record_id=approval.id,
                                     action=audit_action, actor=actor, **links) as approval_entry, \
                    self.audit.tracking(turn, table_name="turns", record_id=turn.id,
                                        actor=actor, **links) as turn_entry:
                if action == "approve":
                    approval.status = ApprovalStatus.APPROVED.value
                    approval.approved_by = actor.id
                    approval.approved_at = now
                    by_field, at_field = APPROVED_BY_FIELDS[approval_type]
                    setattr(turn, FLAG_FIELDS[approval_type], False)
                    setattr(turn, by_field, actor.id)
                    setattr(turn, at_field, self._now_ms())
                else:
                    approval.status = ApprovalStatus.REJECTED.value
                    approval.rejected_by = actor.id
                    approval.rejected_at = now
                    approval.rejection_reason = reason
                    turn.rejection_reason = reason
                turn.updated_at = self._now_ms()
                self.db.commit()
                approval_entry.context = f"{approval_type.value} approval {approval.status}"
                turn_entry.context = f"Turn {approval_type.value} approval {approval.status}"
            return approval

        approval = run_with_conflict_retry(self.db, _decide)
        self._notify_requester(approval, actor)
        return approval

    # ------------------------------------------------------------------
    # Cancel
    # ------------------------------------------------------------------

    def cancel(self, approval_id: str, actor: ActorContext) -> Approval:
        """Cancel a pending approval; clear the turn's flags if nothing else is pending."""

        def _cancel() -> Approval:
            approval = self._lock_approval(approval_id)
            if approval.status != ApprovalStatus.PENDING.value:
                raise ValidationError("Cannot cancel a processed approval")
            turn = self._lock_turn(approval.turn_id)

            links = dict(turn_id=turn.id, property_id=turn.property_id, vendor_id=turn.vendor_id)
            with self.audit.tracking(approval, table_name="approvals", record_id=approval.id,
                                     action=AuditAction.CANCEL, actor=actor, **links) as entry, \
                    self.audit.tracking(turn, table_name="turns", record_id=turn.id,
                                        actor=actor, **links) as turn_entry:
                approval.status = ApprovalStatus.CANCELLED.value
                self.db.flush()
                if not self.pending_types(turn.id):
                    turn.needs_dfo_approval = False
                    turn.needs_ho_approval = False
                    turn.updated_at = self._now_ms()
                self.db.commit()
                entry.context = f"{approval.type} approval cancelled"
                turn_entry.context = "Approval flags cleared, no pending approvals remain"
            return approval

        return run_with_conflict_retry(self.db, _cancel)

    # ------------------------------------------------------------------
    # Notifications (after commit, never raise)
    # ------------------------------------------------------------------

    def _user(self, user_id: Optional[str]) -> Optional[AppUser]:
        if not user_id:
            return None
        return self.db.query(AppUser).filter(AppUser.id == user_id).first()

    def _actor_name(self, actor: ActorContext) -> str:
        user = self._user(actor.id)
        if user:
            return user.display_name
        return actor.email or "System"

    def _notify_approvers(self, created: List[Approval], actor: ActorContext) -> None:
        if self.notifier is None:
            return
        try:
            turn = self.db.query(Turn).filter(Turn.id == created[0].turn_id).first()
            submitter = self._actor_name(actor)
            for approval in created:
                role = APPROVER_ROLES[ApprovalType(approval.type)]
                approvers = (
                    self.db.query(AppUser)
                    .filter(AppUser.role == role.value, AppUser.is_active.is_(True))
                    .all()
                )
                if not approvers:
                    logger.warning("No active %s users to notify for approval %s", role.value, approval.id)
                for approver in approvers:
                    self.notifier.send_approval_request(ApprovalRequestNotice(
                        turn_id=turn.id,
                        property_address=turn.property.full_address if turn.property else "",
                        estimated_cost=float(turn.estimated_cost if turn.estimated_cost is not None else approval.amount),
                        priority=turn.priority,
                        approver_email=approver.email,
                        approver_name=approver.display_name,
                        submitter_name=submitter,
                    ))
        except Exception:
            logger.exception("Failed to send approval request notifications")

    def _notify_requester(self, approval: Approval, actor: ActorContext) -> None:
        if self.notifier is None:
            return
        try:
            requester = self._user(approval.requested_by)
            if requester is None:
                logger.info("Requester %s has no profile, skipping decision email", approval.requested_by)
                return
            turn = approval.turn
            self.notifier.send_approval_decision(ApprovalDecisionNotice(
                turn_id=turn.id,
                property_address=turn.property.full_address if turn.property else "",
                estimated_cost=float(turn.estimated_cost if turn.estimated_cost is not None else approval.amount),
                priority=turn.priority,
                recipient_email=requester.email,
                recipient_name=requester.display_name,
                decision="APPROVED" if approval.status == ApprovalStatus.APPROVED.value else "REJECTED",
                approver_name=self._actor_name(actor),
                comments=approval.rejection_reason,
            ))
        except Exception:
            logger.exception("Failed to send approval decision notification for %s", approval.id)
