from flask import Blueprint, g, jsonify, request

from domora.finances.services import FinanceService
from domora.households.services import HouseholdService
from domora.utils.enums import SubscriptionRecurrence
from domora.utils.permissions import member_required
from domora.utils.validators import (
    parse_amount,
    parse_choice,
    parse_date_field,
    parse_member_ids,
    require_text,
)

finances_bp = Blueprint("finances", __name__)


# ------------------ HELPERS ------------------

def parse_split_fields(data, household_id, partial=False):
    """Amount, payers and beneficiaries shared by entries and subscriptions."""
    fields = {}
    member_ids = HouseholdService.member_ids(household_id)

    if not partial or "amount" in data:
        fields["amount"] = parse_amount(data.get("amount"))
    if not partial or "paid_by_user_ids" in data:
        fields["paid_by_user_ids"] = parse_member_ids(
            data.get("paid_by_user_ids"), "paid_by_user_ids", member_ids
        )
    if not partial or "beneficiary_user_ids" in data:
        fields["beneficiary_user_ids"] = parse_member_ids(
            data.get("beneficiary_user_ids"), "beneficiary_user_ids", member_ids
        )
    if "category" in data:
        fields["category"] = require_text(data, "category", max_length=60, allow_empty=True) or "general"
    return fields


def parse_entry_fields(data, household_id, partial=False):
    fields = parse_split_fields(data, household_id, partial)
    if not partial or "description" in data:
        fields["description"] = require_text(data, "description", max_length=200)
    if data.get("entry_date"):
        fields["entry_date"] = parse_date_field(data["entry_date"], "entry_date")
    if "receipt_image_url" in data:
        fields["receipt_image_url"] = data.get("receipt_image_url") or None
    return fields


def parse_subscription_fields(data, household_id, partial=False):
    fields = parse_split_fields(data, household_id, partial)
    if not partial or "name" in data:
        fields["name"] = require_text(data, "name", max_length=120)
    if not partial or "recurrence" in data:
        fields["recurrence"] = parse_choice(
            data.get("recurrence"), "recurrence", SubscriptionRecurrence,
            default=SubscriptionRecurrence.MONTHLY
        )
    return fields


# ------------------ ENTRIES ------------------

@finances_bp.route("/entries", methods=["GET"])
@member_required()
def list_entries(household_id):
    return jsonify([e.to_dict() for e in FinanceService.list_entries(household_id)])


@finances_bp.route("/entries", methods=["POST"])
@member_required()
def create_entry(household_id):
    fields = parse_entry_fields(request.get_json() or {}, household_id)
    entry = FinanceService.create_entry(household_id, g.user_id, fields)
    return jsonify(entry.to_dict()), 201


@finances_bp.route("/entries/<entry_id>", methods=["GET"])
@member_required()
def get_entry(household_id, entry_id):
    return jsonify(FinanceService.get_entry(household_id, entry_id).to_dict())


@finances_bp.route("/entries/<entry_id>", methods=["PATCH"])
@member_required()
def update_entry(household_id, entry_id):
    fields = parse_entry_fields(request.get_json() or {}, household_id, partial=True)
    entry = FinanceService.update_entry(household_id, entry_id, g.user_id, fields)
    return jsonify(entry.to_dict())


@finances_bp.route("/entries/<entry_id>", methods=["DELETE"])
@member_required()
def delete_entry(household_id, entry_id):
    FinanceService.delete_entry(household_id, entry_id, g.user_id)
    return jsonify({"message": "Entry deleted"})


# ------------------ SETTLEMENT ------------------

@finances_bp.route("/balances", methods=["GET"])
@member_required()
def get_balances(household_id):
    return jsonify(FinanceService.balance_summary(household_id))


@finances_bp.route("/settlements", methods=["GET"])
@member_required()
def get_settlements(household_id):
    transfers = FinanceService.settlement_transfers(household_id)
    return jsonify([t.to_dict() for t in transfers])


@finances_bp.route("/preview", methods=["POST"])
@member_required()
def reimbursement_preview(household_id):
    fields = parse_split_fields(request.get_json() or {}, household_id)
    return jsonify(FinanceService.reimbursement_preview(
        fields["amount"], fields["paid_by_user_ids"], fields["beneficiary_user_ids"]
    ))


# ------------------ CASH AUDITS ------------------

@finances_bp.route("/cash-audits", methods=["GET"])
@member_required()
def list_cash_audits(household_id):
    return jsonify([a.to_dict() for a in FinanceService.list_cash_audits(household_id)])


@finances_bp.route("/cash-audits", methods=["POST"])
@member_required()
def request_cash_audit(household_id):
    audit = FinanceService.request_cash_audit(household_id, g.user_id)
    return jsonify(audit.to_dict()), 201


# ------------------ SUBSCRIPTIONS ------------------

@finances_bp.route("/subscriptions", methods=["GET"])
@member_required()
def list_subscriptions(household_id):
    return jsonify([s.to_dict() for s in FinanceService.list_subscriptions(household_id)])


@finances_bp.route("/subscriptions", methods=["POST"])
@member_required()
def create_subscription(household_id):
    fields = parse_subscription_fields(request.get_json() or {}, household_id)
    subscription = FinanceService.create_subscription(household_id, g.user_id, fields)
    return jsonify(subscription.to_dict()), 201


@finances_bp.route("/subscriptions/<subscription_id>", methods=["PATCH"])
@member_required()
def update_subscription(household_id, subscription_id):
    fields = parse_subscription_fields(request.get_json() or {}, household_id, partial=True)
    subscription = FinanceService.update_subscription(household_id, subscription_id, fields)
    return jsonify(subscription.to_dict())


@finances_bp.route("/subscriptions/<subscription_id>", methods=["DELETE"])
@member_required()
def delete_subscription(household_id, subscription_id):
    FinanceService.delete_subscription(household_id, subscription_id)
    return jsonify({"message": "Subscription deleted"})


@finances_bp.route("/subscriptions/book", methods=["POST"])
@member_required()
def book_subscriptions(household_id):
    entries = FinanceService.book_due_subscriptions(household_id, g.user_id)
    return jsonify({"booked": [e.to_dict() for e in entries]})
