"""
Approval email notifications sent through the Resend HTTP API.

Dispatch is notify-and-forget: each send has a bounded timeout, is never
retried, and any failure is logged and swallowed. Callers only send after
their own transaction has committed.
"""
import html
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import requests

from app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass
class ApprovalRequestNotice:
    turn_id: str
    property_address: str
    estimated_cost: float
    priority: str
    approver_email: str
    approver_name: str
    submitter_name: str


@dataclass
class ApprovalDecisionNotice:
    turn_id: str
    property_address: str
    estimated_cost: float
    priority: str
    recipient_email: str
    recipient_name: str
    decision: str  # APPROVED / REJECTED
    approver_name: str
    comments: Optional[str] = None


def _format_currency(value) -> str:
    try:
        return f"${Decimal(str(value)):,.2f}"
    except (ArithmeticError, ValueError, TypeError):
        return "$0.00"


def _turn_url(turn_id: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}/turns/{turn_id}"


def build_approval_request_html(notice: ApprovalRequestNotice) -> str:
    e = html.escape
    return f"""
    <div style="font-family: Arial, sans-serif; color: #111827;">
        <h2>Approval Required</h2>
        <p>Hi {e(notice.approver_name)},</p>
        <p>{e(notice.submitter_name)} submitted a turn that needs your approval.</p>
        <table style="border-collapse: collapse;">
            <tr><td style="padding: 4px 12px 4px 0; color: #4b5563;">Property</td><td>{e(notice.property_address)}</td></tr>
            <tr><td style="padding: 4px 12px 4px 0; color: #4b5563;">Estimated cost</td><td>{_format_currency(notice.estimated_cost)}</td></tr>
            <tr><td style="padding: 4px 12px 4px 0; color: #4b5563;">Priority</td><td>{e(notice.priority.upper())}</td></tr>
        </table>
        <p><a href="{_turn_url(notice.turn_id)}">Review the turn</a></p>
    </div>
    """


def build_approval_decision_html(notice: ApprovalDecisionNotice) -> str:
    e = html.escape
    verb = "approved" if notice.decision == "APPROVED" else "rejected"
    comments = ""
    if notice.comments:
        comments = f"<p><strong>Comments:</strong> {e(notice.comments)}</p>"
    return f"""
    <div style="font-family: Arial, sans-serif; color: #111827;">
        <h2>Turn {verb}</h2>
        <p>Hi {e(notice.recipient_name)},</p>
        <p>{e(notice.approver_name)} {verb} the turn for {e(notice.property_address)}
        ({_format_currency(notice.estimated_cost)}).</p>
        {comments}
        <p><a href="{_turn_url(notice.turn_id)}">View the turn</a></p>
    </div>
    """


class Notifier:
    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: str = settings.RESEND_API_URL,
        from_email: str = settings.NOTIFICATION_FROM_EMAIL,
        timeout: float = settings.NOTIFICATION_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.from_email = from_email
        self.timeout = timeout

    def send_email(self, to: str, subject: str, body_html: str) -> bool:
        """Send one email. Returns False instead of raising on any failure."""
        if not self.api_key:
            logger.info("Email notifications disabled; skipping %r to %s", subject, to)
            return False
        try:
            response = requests.post(
                self.api_url,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={"from": self.from_email, "to": [to], "subject": subject, "html": body_html},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return True
        except requests.RequestException as exc:
            logger.warning("Failed to send email %r to %s: %s", subject, to, exc)
            return False

    def send_approval_request(self, notice: ApprovalRequestNotice) -> bool:
        return self.send_email(
            to=notice.approver_email,
            subject=f"Approval Required: Turn for {notice.property_address}",
            body_html=build_approval_request_html(notice),
        )

    def send_approval_decision(self, notice: ApprovalDecisionNotice) -> bool:
        if notice.decision == "APPROVED":
            subject = f"Turn Approved: {notice.property_address}"
        else:
            subject = f"Turn Rejected: {notice.property_address}"
        return self.send_email(
            to=notice.recipient_email,
            subject=subject,
            body_html=build_approval_decision_html(notice),
        )
