from flask import Blueprint, jsonify, request
from flask_jwt_extended import get_jwt_identity, jwt_required
from bson import ObjectId

from domora.extensions import db
from domora.utils.dates import isoformat
from domora.utils.validators import require_text

users_bp = Blueprint("users", __name__)

PAYMENT_HANDLES = ("paypal_name", "revolut_name", "wero_name")


def profile_payload(user):
    return {
        "_id": str(user["_id"]),
        "name": user["name"],
        "email": user["email"],
        "display_name": user.get("display_name") or user["name"],
        "paypal_name": user.get("paypal_name"),
        "revolut_name": user.get("revolut_name"),
        "wero_name": user.get("wero_name"),
        "created_at": isoformat(user.get("created_at")),
    }


@users_bp.route("/profile", methods=["GET"])
@jwt_required()
def get_profile():
    user = db.users.find_one({"_id": ObjectId(get_jwt_identity())})
    if not user:
        return jsonify({"error": "User not found"}), 404
    return jsonify(profile_payload(user))


@users_bp.route("/profile", methods=["PATCH"])
@jwt_required()
def update_profile():
    uid = ObjectId(get_jwt_identity())
    data = request.get_json() or {}

    updates = {}
    if "display_name" in data:
        updates["display_name"] = require_text(data, "display_name", max_length=80)
    for handle in PAYMENT_HANDLES:
        if handle in data:
            updates[handle] = require_text(data, handle, max_length=80, allow_empty=True) or None

    if updates:
        db.users.update_one({"_id": uid}, {"$set": updates})

    user = db.users.find_one({"_id": uid})
    if not user:
        return jsonify({"error": "User not found"}), 404
    return jsonify(profile_payload(user))
