from flask import Blueprint, g, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required

from domora.households.services import HouseholdService
from domora.utils.enums import MemberRole
from domora.utils.permissions import member_required
from domora.utils.validators import parse_bool, parse_choice, parse_currency, parse_factor, require_text

households_bp = Blueprint("households", __name__)


# ------------------ HOUSEHOLDS ------------------

@households_bp.route("/", methods=["POST"])
@jwt_required()
def create_household():
    data = request.get_json() or {}
    name = require_text(data, "name", max_length=120)
    currency = parse_currency(data.get("currency"))

    household = HouseholdService.create_household(name, get_jwt_identity(), currency)
    return jsonify(household.to_dict()), 201


@households_bp.route("/", methods=["GET"])
@jwt_required()
def list_households():
    households = HouseholdService.households_for_user(get_jwt_identity())
    return jsonify([h.to_dict() for h in households])


@households_bp.route("/join", methods=["POST"])
@jwt_required()
def join_household():
    data = request.get_json() or {}
    invite_code = require_text(data, "invite_code", max_length=16)

    household = HouseholdService.join_by_invite(invite_code, get_jwt_identity())
    return jsonify(household.to_dict())


@households_bp.route("/<household_id>", methods=["GET"])
@member_required()
def get_household(household_id):
    household = HouseholdService.get_household(household_id)
    return jsonify({
        **household.to_dict(),
        "members": [m.to_dict() for m in HouseholdService.get_members(household_id)],
        "my_role": g.member.role.value,
    })


@households_bp.route("/<household_id>", methods=["PATCH"])
@member_required(owner=True)
def update_household(household_id):
    data = request.get_json() or {}
    changes = {}
    if "name" in data:
        changes["name"] = require_text(data, "name", max_length=120)
    if "currency" in data:
        changes["currency"] = parse_currency(data["currency"])
    if "task_laziness_enabled" in data:
        changes["task_laziness_enabled"] = parse_bool(data["task_laziness_enabled"])

    household = HouseholdService.update_settings(household_id, changes)
    return jsonify(household.to_dict())


@households_bp.route("/<household_id>", methods=["DELETE"])
@member_required()
def dissolve_household(household_id):
    HouseholdService.dissolve_household(household_id, g.user_id)
    return jsonify({"message": "Household dissolved"})


@households_bp.route("/<household_id>/leave", methods=["POST"])
@member_required()
def leave_household(household_id):
    HouseholdService.leave_household(household_id, g.user_id)
    return jsonify({"message": "Left household"})


# ------------------ MEMBERS ------------------

@households_bp.route("/<household_id>/members", methods=["GET"])
@member_required()
def list_members(household_id):
    return jsonify([m.to_dict() for m in HouseholdService.get_members(household_id)])


@households_bp.route("/<household_id>/members/<user_id>", methods=["PATCH"])
@member_required()
def update_member(household_id, user_id):
    data = request.get_json() or {}
    laziness = None
    if "task_laziness_factor" in data:
        laziness = parse_factor(data["task_laziness_factor"], "task_laziness_factor")
    vacation = parse_bool(data["vacation_mode"]) if "vacation_mode" in data else None

    member = HouseholdService.update_member_settings(
        household_id, g.user_id, user_id,
        laziness_factor=laziness,
        vacation_mode=vacation
    )
    return jsonify(member.to_dict())


@households_bp.route("/<household_id>/members/<user_id>/role", methods=["PUT"])
@member_required(owner=True)
def set_member_role(household_id, user_id):
    data = request.get_json() or {}
    role = parse_choice(data.get("role"), "role", MemberRole)

    member = HouseholdService.set_member_role(household_id, g.user_id, user_id, role)
    return jsonify(member.to_dict())


@households_bp.route("/<household_id>/members/<user_id>", methods=["DELETE"])
@member_required(owner=True)
def remove_member(household_id, user_id):
    HouseholdService.remove_member(household_id, g.user_id, user_id)
    return jsonify({"message": "Member removed"})


@households_bp.route("/<household_id>/pimpers/reset", methods=["POST"])
@member_required(owner=True)
def reset_pimpers(household_id):
    count = HouseholdService.reset_pimpers(household_id, g.user_id)
    return jsonify({"reset_members": count})


# ------------------ EVENTS ------------------

@households_bp.route("/<household_id>/events", methods=["GET"])
@member_required()
def list_events(household_id):
    limit = request.args.get("limit", 50, type=int)
    return jsonify(HouseholdService.get_events(household_id, limit=limit))
