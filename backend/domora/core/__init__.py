"""Pure household logic: settlement math, task fairness and lifecycle."""

from .errors import (
    DomoraError,
    EmptyRotation,
    HouseholdGuardError,
    InvalidSplitInput,
    NotFoundError,
    PermissionDeniedError,
    TaskActionError,
    ValidationError,
)
from .finance_math import (
    SettlementTransfer,
    calculate_balances,
    calculate_reimbursement_preview,
    calculate_settlement_transfers,
    entries_since_cash_audit,
    split_amount_evenly,
)
from .fairness import choose_next_assignee, next_assignee, scaled_score

__all__ = [
    "DomoraError",
    "EmptyRotation",
    "HouseholdGuardError",
    "InvalidSplitInput",
    "NotFoundError",
    "PermissionDeniedError",
    "TaskActionError",
    "ValidationError",
    "SettlementTransfer",
    "calculate_balances",
    "calculate_reimbursement_preview",
    "calculate_settlement_transfers",
    "entries_since_cash_audit",
    "split_amount_evenly",
    "choose_next_assignee",
    "next_assignee",
    "scaled_score",
]
