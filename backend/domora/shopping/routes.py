from flask import Blueprint, g, jsonify, request

from domora.core.errors import ValidationError
from domora.shopping.services import ShoppingService
from domora.utils.enums import ShoppingRecurrenceUnit
from domora.utils.permissions import member_required
from domora.utils.validators import parse_bool, parse_choice, parse_positive_int, parse_tags, require_text

shopping_bp = Blueprint("shopping", __name__)


def parse_item_fields(data, partial=False):
    fields = {}
    if not partial or "title" in data:
        fields["title"] = require_text(data, "title", max_length=200)
    if "tags" in data:
        fields["tags"] = parse_tags(data["tags"])

    if "recurrence_interval_value" in data or "recurrence_interval_unit" in data:
        value = data.get("recurrence_interval_value")
        unit = data.get("recurrence_interval_unit")
        if value is None and unit is None:
            fields["recurrence_interval_value"] = None
            fields["recurrence_interval_unit"] = None
        elif value is None or unit is None:
            raise ValidationError("recurrence_interval_value and recurrence_interval_unit go together")
        else:
            fields["recurrence_interval_value"] = parse_positive_int(value, "recurrence_interval_value")
            fields["recurrence_interval_unit"] = parse_choice(
                unit, "recurrence_interval_unit", ShoppingRecurrenceUnit
            )
    return fields


@shopping_bp.route("/", methods=["GET"])
@member_required()
def list_items(household_id):
    return jsonify([i.to_dict() for i in ShoppingService.list_items(household_id)])


@shopping_bp.route("/", methods=["POST"])
@member_required()
def add_item(household_id):
    fields = parse_item_fields(request.get_json() or {})
    item = ShoppingService.add_item(household_id, g.user_id, fields)
    return jsonify(item.to_dict()), 201


@shopping_bp.route("/<item_id>", methods=["PATCH"])
@member_required()
def update_item(household_id, item_id):
    fields = parse_item_fields(request.get_json() or {}, partial=True)
    item = ShoppingService.update_item(household_id, item_id, fields)
    return jsonify(item.to_dict())


@shopping_bp.route("/<item_id>/done", methods=["PUT"])
@member_required()
def set_item_done(household_id, item_id):
    data = request.get_json() or {}
    item = ShoppingService.set_done(household_id, item_id, g.user_id, parse_bool(data.get("done"), True))
    return jsonify(item.to_dict())


@shopping_bp.route("/<item_id>", methods=["DELETE"])
@member_required()
def delete_item(household_id, item_id):
    ShoppingService.delete_item(household_id, item_id)
    return jsonify({"message": "Item deleted"})


@shopping_bp.route("/completions", methods=["GET"])
@member_required()
def list_completions(household_id):
    limit = request.args.get("limit", 100, type=int)
    return jsonify(ShoppingService.get_completions(household_id, limit=limit))
