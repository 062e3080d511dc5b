from datetime import date, datetime
from decimal import Decimal

import pytest

from domora.core.errors import InvalidSplitInput
from domora.core.finance_math import (
    SettlementTransfer,
    calculate_balances,
    calculate_reimbursement_preview,
    calculate_settlement_transfers,
    entries_since_cash_audit,
    paid_totals_by_member,
    sort_balances,
    split_amount_evenly,
    totals_by_category,
)
from domora.finances.models import FinanceEntry


def entry(amount, payers, beneficiaries=(), day=date(2024, 5, 10), category="general", paid_by=None):
    return FinanceEntry(
        id=None,
        household_id="h",
        description="test",
        amount=amount,
        paid_by_user_ids=list(payers),
        beneficiary_user_ids=list(beneficiaries),
        category=category,
        entry_date=day,
        paid_by=paid_by,
    )


def test_split_even_amount():
    assert split_amount_evenly("30", ["a", "b", "c"]) == {
        "a": Decimal("10.00"), "b": Decimal("10.00"), "c": Decimal("10.00"),
    }


def test_split_leftover_cents_go_to_first_members():
    shares = split_amount_evenly("10", ["a", "b", "c"])
    assert shares == {"a": Decimal("3.34"), "b": Decimal("3.33"), "c": Decimal("3.33")}
    assert sum(shares.values()) == Decimal("10.00")


@pytest.mark.parametrize("amount,ids", [
    ("0.01", ["a", "b"]),
    ("99.99", ["a", "b", "c", "d", "e", "f", "g"]),
    ("1234.56", ["x", "y", "z"]),
])
def test_split_is_complete(amount, ids):
    assert sum(split_amount_evenly(amount, ids).values()) == Decimal(amount)


def test_split_collapses_duplicate_ids():
    assert split_amount_evenly("9", ["a", "b", "a"]) == {"a": Decimal("4.50"), "b": Decimal("4.50")}


def test_split_rejects_bad_input():
    with pytest.raises(InvalidSplitInput):
        split_amount_evenly("10", [])
    with pytest.raises(InvalidSplitInput):
        split_amount_evenly("-1", ["a"])
    with pytest.raises(InvalidSplitInput):
        split_amount_evenly("NaN", ["a"])


def test_balances_single_payer():
    balances = calculate_balances([entry("30", ["a"], ["a", "b", "c"])], ["a", "b", "c"])
    assert balances == {"a": Decimal("20.00"), "b": Decimal("-10.00"), "c": Decimal("-10.00")}


def test_balances_sum_to_zero_with_unknown_members():
    entries = [
        entry("10", ["a"], ["a", "b", "c"]),
        entry("7.77", ["b", "gone"], ["c"]),
        entry("5", [], ["a"], paid_by="c"),
    ]
    balances = calculate_balances(entries, ["a", "b", "c"])

    assert "gone" in balances
    assert sum(balances.values()) == Decimal("0")


def test_balances_empty_beneficiaries_fall_back_to_members():
    balances = calculate_balances([entry("20", ["a"])], ["a", "b"])
    assert balances == {"a": Decimal("10.00"), "b": Decimal("-10.00")}


def test_balances_reject_entry_without_payer():
    with pytest.raises(InvalidSplitInput):
        calculate_balances([entry("20", [], ["a"])], ["a", "b"])


def test_sort_balances_breaks_ties_by_member_id():
    rows = sort_balances({"c": Decimal("5"), "b": Decimal("5"), "a": Decimal("-10")})
    assert [row["member_id"] for row in rows] == ["b", "c", "a"]


def test_reimbursement_preview():
    preview = calculate_reimbursement_preview("30", ["a"], ["a", "b", "c"])
    assert list(preview) == ["a", "b", "c"]
    assert preview["a"] == Decimal("20.00")
    assert preview["b"] == Decimal("-10.00")


def test_reimbursement_preview_requires_both_sides():
    with pytest.raises(InvalidSplitInput):
        calculate_reimbursement_preview("30", [], ["a"])
    with pytest.raises(InvalidSplitInput):
        calculate_reimbursement_preview("30", ["a"], [])


def test_settlement_transfers_clear_all_balances():
    balances = {"a": Decimal("30"), "b": Decimal("-10"), "c": Decimal("-20"), "d": Decimal("0")}
    transfers = calculate_settlement_transfers(balances)

    assert transfers == [
        SettlementTransfer("c", "a", Decimal("20")),
        SettlementTransfer("b", "a", Decimal("10")),
    ]


def test_settlement_transfers_accept_pairs():
    transfers = calculate_settlement_transfers([("a", "5"), ("b", "-5")])
    assert [t.to_dict() for t in transfers] == [{"from_member_id": "b", "to_member_id": "a", "amount": 5.0}]


def test_entries_since_cash_audit_uses_calendar_day():
    before = entry("1", ["a"], day=date(2024, 5, 1))
    same_day = entry("2", ["a"], day=date(2024, 5, 2))
    after = entry("3", ["a"], day=date(2024, 5, 3))

    kept = entries_since_cash_audit([before, same_day, after], datetime(2024, 5, 2, 18, 30))
    assert kept == [after]
    assert entries_since_cash_audit([before], None) == [before]


def test_totals():
    entries = [
        entry("10", ["a"], category="food"),
        entry("5", ["b", "a"], category="food"),
        entry("3", ["b"], category="cleaning"),
    ]
    assert paid_totals_by_member(entries) == [("a", Decimal("12.50")), ("b", Decimal("5.50"))]
    assert totals_by_category(entries) == {"food": Decimal("15.00"), "cleaning": Decimal("3.00")}
