"""
Balance and settlement engine for shared household expenses.

Responsibilities:
- Split an amount evenly across members without losing cents
- Net balance per member (positive = the household owes them)
- Reimbursement preview for a hypothetical expense
- Greedy settlement transfers that clear all balances

Every function here is pure and works on already-loaded entries.
"""
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import InvalidSplitInput

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Amount = Union[Decimal, float, int, str]


@dataclass(frozen=True)
class SettlementTransfer:
    from_member_id: str
    to_member_id: str
    amount: Decimal

    def to_dict(self) -> Dict:
        return {
            "from_member_id": self.from_member_id,
            "to_member_id": self.to_member_id,
            "amount": float(self.amount),
        }


def unique_ids(member_ids: Iterable[str]) -> List[str]:
    """Drop duplicates and blanks, keeping first-seen order."""
    seen = set()
    result = []
    for member_id in member_ids or []:
        if not member_id or member_id in seen:
            continue
        seen.add(member_id)
        result.append(member_id)
    return result


def to_cents(value: Amount) -> Decimal:
    """Parse a currency value and round it to cents."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidSplitInput(f"Invalid amount: {value!r}")

    if not amount.is_finite() or amount < 0:
        raise InvalidSplitInput(f"Amount must be a finite, non-negative number, got {value!r}")

    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def split_amount_evenly(amount: Amount, member_ids: Sequence[str]) -> Dict[str, Decimal]:
    """
    Split an amount evenly across members, to the cent.

    Leftover cents go one each to the first members in the given order, so
    the shares always add up to the amount and the result is deterministic.

    Raises:
        InvalidSplitInput: empty member list or unusable amount
    """
    ids = unique_ids(member_ids)
    if not ids:
        raise InvalidSplitInput("Cannot split an amount across an empty member set")

    total_cents = int(to_cents(amount) * 100)
    base, leftover = divmod(total_cents, len(ids))

    return {
        member_id: Decimal(base + (1 if index < leftover else 0)) * CENT
        for index, member_id in enumerate(ids)
    }


def entry_payers(entry) -> List[str]:
    """Payer set of an entry, falling back to the legacy single payer."""
    payers = unique_ids(entry.paid_by_user_ids)
    if payers:
        return payers
    return unique_ids([entry.paid_by])


def entry_beneficiaries(entry, fallback_member_ids: Sequence[str]) -> List[str]:
    """Beneficiary set of an entry, falling back to every settlement member."""
    return unique_ids(entry.beneficiary_user_ids) or unique_ids(fallback_member_ids)


def calculate_balances(entries: Iterable, member_ids: Sequence[str]) -> Dict[str, Decimal]:
    """
    Net balance per member over a list of finance entries.

    Each entry adds the member's paid share and subtracts their consumed
    share. Members that show up in entries but not in ``member_ids`` (for
    example someone who already left) are appended so the balances of the
    closed system still sum to zero.

    Returns:
        Dict of {member_id: balance}, in ``member_ids`` order
    """
    balances = {member_id: ZERO for member_id in unique_ids(member_ids)}

    for entry in entries:
        payers = entry_payers(entry)
        beneficiaries = entry_beneficiaries(entry, member_ids)
        if not payers or not beneficiaries:
            raise InvalidSplitInput(
                f"Entry {getattr(entry, 'id', '?')} needs at least one payer and one beneficiary"
            )

        for member_id, share in split_amount_evenly(entry.amount, payers).items():
            balances[member_id] = balances.get(member_id, ZERO) + share
        for member_id, share in split_amount_evenly(entry.amount, beneficiaries).items():
            balances[member_id] = balances.get(member_id, ZERO) - share

    return balances


def sort_balances(balances: Mapping[str, Decimal]) -> List[Dict]:
    """Balances as rows, biggest creditor first."""
    rows = [{"member_id": member_id, "balance": balance} for member_id, balance in balances.items()]
    rows.sort(key=lambda row: (-row["balance"], row["member_id"]))
    return rows


def calculate_reimbursement_preview(
    amount: Amount,
    payer_ids: Sequence[str],
    beneficiary_ids: Sequence[str]
) -> Dict[str, Decimal]:
    """
    Signed per-member delta for a proposed expense.

    Positive means the member gets money back, negative means they owe.
    Payers come first in the result, then beneficiaries who did not pay.

    Raises:
        InvalidSplitInput: empty payer or beneficiary set, or bad amount
    """
    if not unique_ids(payer_ids):
        raise InvalidSplitInput("A reimbursement preview needs at least one payer")
    if not unique_ids(beneficiary_ids):
        raise InvalidSplitInput("A reimbursement preview needs at least one beneficiary")

    paid = split_amount_evenly(amount, payer_ids)
    consumed = split_amount_evenly(amount, beneficiary_ids)

    return {
        member_id: paid.get(member_id, ZERO) - consumed.get(member_id, ZERO)
        for member_id in unique_ids(list(payer_ids) + list(beneficiary_ids))
    }


def calculate_settlement_transfers(
    balances: Union[Mapping[str, Decimal], Iterable[Tuple[str, Decimal]]]
) -> List[SettlementTransfer]:
    """
    Calculate who pays whom so every balance ends at zero.

    Greedy matching: creditors and debtors are both sorted by amount
    (largest first) and the largest debtor pays the largest creditor until
    one of them is cleared.
    """
    items = balances.items() if isinstance(balances, Mapping) else balances

    creditors = []  # People who are OWED money
    debtors = []    # People who OWE money
    for member_id, balance in items:
        balance = Decimal(str(balance))
        if balance > 0:
            creditors.append([member_id, balance])
        elif balance < 0:
            debtors.append([member_id, -balance])

    creditors.sort(key=lambda row: -row[1])
    debtors.sort(key=lambda row: -row[1])

    transfers = []
    creditor_index = 0
    debtor_index = 0

    while creditor_index < len(creditors) and debtor_index < len(debtors):
        creditor = creditors[creditor_index]
        debtor = debtors[debtor_index]
        amount = min(creditor[1], debtor[1])

        if amount > 0:
            transfers.append(SettlementTransfer(
                from_member_id=debtor[0],
                to_member_id=creditor[0],
                amount=amount
            ))

        creditor[1] -= amount
        debtor[1] -= amount

        if creditor[1] <= 0:
            creditor_index += 1
        if debtor[1] <= 0:
            debtor_index += 1

    return transfers


def entry_day(entry) -> date:
    """Calendar day an entry counts for."""
    value = entry.entry_date or entry.created_at
    if isinstance(value, datetime):
        return value.date()
    return value


def entries_since_cash_audit(entries: Iterable, last_audit_at: Optional[datetime]) -> List:
    """Entries dated after the day of the last cash audit (all if none)."""
    entries = list(entries)
    if last_audit_at is None:
        return entries
    audit_day = last_audit_at.date() if isinstance(last_audit_at, datetime) else last_audit_at
    return [entry for entry in entries if entry_day(entry) > audit_day]


def paid_totals_by_member(entries: Iterable) -> List[Tuple[str, Decimal]]:
    """How much each member paid across entries, biggest spender first."""
    totals: Dict[str, Decimal] = {}
    for entry in entries:
        for member_id, share in split_amount_evenly(entry.amount, entry_payers(entry)).items():
            totals[member_id] = totals.get(member_id, ZERO) + share
    return sorted(totals.items(), key=lambda item: -item[1])


def totals_by_category(entries: Iterable) -> Dict[str, Decimal]:
    totals: Dict[str, Decimal] = {}
    for entry in entries:
        category = entry.category or "general"
        totals[category] = totals.get(category, ZERO) + to_cents(entry.amount)
    return totals
