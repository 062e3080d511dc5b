import logging

from flask import Blueprint, request, jsonify
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity
from bson import ObjectId

from domora import bcrypt
from domora.extensions import db
from domora.utils.dates import utcnow
from domora.utils.validators import require_keys

auth_bp = Blueprint("auth", __name__)

logger = logging.getLogger(__name__)


def user_payload(user):
    return {
        "_id": str(user["_id"]),
        "name": user["name"],
        "email": user["email"],
        "display_name": user.get("display_name") or user["name"],
    }


@auth_bp.route("/register", methods=["POST"])
def register():
    data = request.get_json() or {}
    require_keys(data, "name", "email", "password")

    email = str(data["email"]).strip().lower()
    if db.users.find_one({"email": email}):
        return jsonify({"error": "User already exists"}), 409

    if len(str(data["password"])) < 8:
        return jsonify({"error": "Password must be at least 8 characters"}), 400

    user = {
        "name": str(data["name"]).strip(),
        "email": email,
        "password_hash": bcrypt.generate_password_hash(data["password"]).decode("utf-8"),
        "display_name": str(data.get("display_name") or data["name"]).strip(),
        "paypal_name": None,
        "revolut_name": None,
        "wero_name": None,
        "created_at": utcnow(),
    }

    res = db.users.insert_one(user)
    user["_id"] = res.inserted_id
    access_token = create_access_token(identity=str(res.inserted_id))
    logger.info("[Auth] Registered user %s", res.inserted_id)

    return jsonify({
        "access_token": access_token,
        "user": user_payload(user)
    }), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    data = request.get_json() or {}
    user = db.users.find_one({"email": str(data.get("email", "")).strip().lower()})

    if not user or not bcrypt.check_password_hash(user["password_hash"], data.get("password", "")):
        return jsonify({"error": "Invalid credentials"}), 401

    token = create_access_token(identity=str(user["_id"]))

    return jsonify({
        "access_token": token,
        "user": user_payload(user)
    })


@auth_bp.route("/me", methods=["GET"])
@jwt_required()
def me():
    uid = get_jwt_identity()
    user = db.users.find_one({"_id": ObjectId(uid)})

    if not user:
        return jsonify({"error": "User not found"}), 404

    return jsonify(user_payload(user))
