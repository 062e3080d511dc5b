from enum import Enum


class MemberRole(str, Enum):
    OWNER = "owner"
    MEMBER = "member"


class FairnessMode(str, Enum):
    ACTUAL = "actual"
    PROJECTION = "projection"
    EXPECTED = "expected"


class ShoppingRecurrenceUnit(str, Enum):
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


class SubscriptionRecurrence(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class CashAuditStatus(str, Enum):
    QUEUED = "queued"
    SENT = "sent"
    FAILED = "failed"


class HouseholdEventType(str, Enum):
    TASK_COMPLETED = "task_completed"
    TASK_SKIPPED = "task_skipped"
    TASK_TAKEN_OVER = "task_taken_over"
    SHOPPING_COMPLETED = "shopping_completed"
    FINANCE_CREATED = "finance_created"
    ROLE_CHANGED = "role_changed"
    CASH_AUDIT_REQUESTED = "cash_audit_requested"
    PIMPERS_RESET = "pimpers_reset"
    VACATION_MODE_ENABLED = "vacation_mode_enabled"
    VACATION_MODE_DISABLED = "vacation_mode_disabled"
