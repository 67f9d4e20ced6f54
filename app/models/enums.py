from enum import Enum


class TurnStatus(str, Enum):
    DRAFT = "draft"
    SECURE_PROPERTY = "secure_property"
    INSPECTION = "inspection"
    SCOPE_REVIEW = "scope_review"
    VENDOR_ASSIGNED = "vendor_assigned"
    IN_PROGRESS = "in_progress"
    CHANGE_ORDER = "change_order"
    COMPLETE = "complete"
    SCAN_360 = "scan_360"
    ON_HOLD = "on_hold"
    CANCELLED = "cancelled"


class TurnPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class StageAutoStatus(str, Enum):
    """Tags a stage can carry to drive the turn's coarse status."""
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ApprovalType(str, Enum):
    DFO = "dfo"
    HO = "ho"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    VIEW = "VIEW"
    EXPORT = "EXPORT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    ASSIGN = "ASSIGN"
    COMPLETE = "COMPLETE"
    CANCEL = "CANCEL"


class UserRole(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    PROPERTY_MANAGER = "PROPERTY_MANAGER"
    SR_PROPERTY_MANAGER = "SR_PROPERTY_MANAGER"
    VENDOR = "VENDOR"
    INSPECTOR = "INSPECTOR"
    DFO_APPROVER = "DFO_APPROVER"
    HO_APPROVER = "HO_APPROVER"


# Which approver role signs off on which approval type
APPROVER_ROLES = {
    ApprovalType.DFO: UserRole.DFO_APPROVER,
    ApprovalType.HO: UserRole.HO_APPROVER,
}
