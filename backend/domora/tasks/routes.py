from flask import Blueprint, g, jsonify, request

from domora.households.services import HouseholdService
from domora.tasks.services import TaskService
from domora.utils.dates import utcnow
from domora.utils.enums import FairnessMode
from domora.utils.permissions import member_required
from domora.utils.validators import (
    parse_bool,
    parse_choice,
    parse_date_field,
    parse_factor,
    parse_member_ids,
    parse_non_negative_int,
    parse_positive_int,
    require_text,
)

tasks_bp = Blueprint("tasks", __name__)


# ------------------ HELPERS ------------------

def parse_task_fields(data, household_id, partial=False):
    """Validated task fields from a request body; ``partial`` for PATCH."""
    fields = {}

    if not partial or "title" in data:
        fields["title"] = require_text(data, "title", max_length=120)
    if "description" in data:
        fields["description"] = require_text(data, "description", max_length=2000, allow_empty=True)
    if not partial or "rotation_user_ids" in data:
        fields["rotation_user_ids"] = parse_member_ids(
            data.get("rotation_user_ids"), "rotation_user_ids", HouseholdService.member_ids(household_id)
        )
    if "frequency_days" in data:
        fields["frequency_days"] = parse_positive_int(data["frequency_days"], "frequency_days")
    if "effort_pimpers" in data:
        fields["effort_pimpers"] = parse_positive_int(data["effort_pimpers"], "effort_pimpers")
    if "grace_minutes" in data:
        fields["grace_minutes"] = parse_non_negative_int(data["grace_minutes"], "grace_minutes")
    if "delay_penalty_per_day" in data:
        fields["delay_penalty_per_day"] = parse_factor(
            data["delay_penalty_per_day"], "delay_penalty_per_day", high=100.0
        )
    if "prioritize_low_pimpers" in data:
        fields["prioritize_low_pimpers"] = parse_bool(data["prioritize_low_pimpers"], True)
    if "assignee_fairness_mode" in data:
        fields["assignee_fairness_mode"] = parse_choice(
            data["assignee_fairness_mode"], "assignee_fairness_mode", FairnessMode
        )
    if "ignore_delay_penalty_once" in data:
        fields["ignore_delay_penalty_once"] = parse_bool(data["ignore_delay_penalty_once"])
    if data.get("start_date"):
        fields["start_date"] = parse_date_field(data["start_date"], "start_date")
    return fields


def action_payload(result):
    payload = {"task": result.task.to_dict(), "pimpers_earned": result.pimpers_earned}
    if result.completion is not None:
        payload["completion"] = result.completion.to_dict()
    return payload


# ------------------ TASKS ------------------

@tasks_bp.route("/", methods=["GET"])
@member_required()
def list_tasks(household_id):
    return jsonify([t.to_dict() for t in TaskService.list_tasks(household_id)])


@tasks_bp.route("/", methods=["POST"])
@member_required()
def create_task(household_id):
    fields = parse_task_fields(request.get_json() or {}, household_id)
    task = TaskService.create_task(household_id, g.user_id, fields)
    return jsonify(task.to_dict()), 201


@tasks_bp.route("/<task_id>", methods=["GET"])
@member_required()
def get_task(household_id, task_id):
    return jsonify(TaskService.get_task(household_id, task_id).to_dict())


@tasks_bp.route("/<task_id>", methods=["PATCH"])
@member_required()
def update_task(household_id, task_id):
    fields = parse_task_fields(request.get_json() or {}, household_id, partial=True)
    task = TaskService.update_task(household_id, task_id, fields)
    return jsonify(task.to_dict())


@tasks_bp.route("/<task_id>", methods=["DELETE"])
@member_required()
def delete_task(household_id, task_id):
    TaskService.delete_task(household_id, task_id)
    return jsonify({"message": "Task deleted"})


@tasks_bp.route("/<task_id>/active", methods=["PUT"])
@member_required()
def set_task_active(household_id, task_id):
    data = request.get_json() or {}
    task = TaskService.set_active(household_id, task_id, parse_bool(data.get("is_active"), True))
    return jsonify(task.to_dict())


# ------------------ ACTIONS ------------------

@tasks_bp.route("/<task_id>/complete", methods=["POST"])
@member_required()
def complete_task(household_id, task_id):
    result = TaskService.complete_task(household_id, task_id, g.user_id)
    return jsonify(action_payload(result))


@tasks_bp.route("/<task_id>/skip", methods=["POST"])
@member_required()
def skip_task(household_id, task_id):
    result = TaskService.skip_task(household_id, task_id, g.user_id)
    return jsonify(action_payload(result))


@tasks_bp.route("/<task_id>/takeover", methods=["POST"])
@member_required()
def takeover_task(household_id, task_id):
    result = TaskService.takeover_task(household_id, task_id, g.user_id)
    return jsonify(action_payload(result))


# ------------------ STATS ------------------

@tasks_bp.route("/completions", methods=["GET"])
@member_required()
def list_completions(household_id):
    limit = request.args.get("limit", 100, type=int)
    completions = TaskService.get_completions(household_id, limit=limit, task_id=request.args.get("task_id"))
    return jsonify([c.to_dict() for c in completions])


@tasks_bp.route("/leaderboard", methods=["GET"])
@member_required()
def get_leaderboard(household_id):
    return jsonify(TaskService.get_leaderboard(household_id))


@tasks_bp.route("/forecast", methods=["GET"])
@member_required()
def get_forecast(household_id):
    horizon = parse_positive_int(request.args.get("days"), "days", default=30)
    return jsonify({
        "horizon_days": horizon,
        "forecast": TaskService.forecast(household_id, horizon),
    })


@tasks_bp.route("/member-of-month", methods=["GET"])
@member_required()
def get_member_of_month(household_id):
    today = utcnow()
    year = parse_positive_int(request.args.get("year"), "year", default=today.year)
    month = parse_positive_int(request.args.get("month"), "month", default=today.month)

    winner = TaskService.member_of_month(household_id, year, month)
    return jsonify({
        "year": year,
        "month": month,
        "member": winner.to_dict() if winner else None,
    })
