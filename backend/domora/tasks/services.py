"""
Task Service - Recurring chores, rotation and pimpers.

Responsibilities:
- Task CRUD and activation
- Complete / skip / takeover on the current due instance
- Pick the next assignee with the household's fairness settings
- Completion history, leaderboard, forecast and member of the month
"""
import logging
from dataclasses import replace
from datetime import MAXYEAR, MINYEAR, datetime, time
from typing import Dict, List, Optional

from bson import ObjectId
from dateutil.relativedelta import relativedelta

from domora.core import leaderboard, task_lifecycle
from domora.core.errors import NotFoundError, ValidationError
from domora.core.fairness import advance_rotation, choose_next_assignee
from domora.extensions import db as mongo
from domora.households.services import HouseholdService
from domora.tasks.models import Task, TaskCompletion
from domora.utils.dates import date_to_datetime, utcnow
from domora.utils.enums import HouseholdEventType
from domora.utils.ids import safe_object_id
from domora.utils.recurrence import frequency_to_cron

logger = logging.getLogger(__name__)

# New tasks become due at 09:00 on their start day, matching the cron patterns.
DUE_TIME = time(9, 0)


class TaskService:
    """Service for household tasks."""

    # ==================== LOOKUPS ====================

    @classmethod
    def get_task(cls, household_id: str, task_id: str) -> Task:
        oid = safe_object_id(task_id)
        doc = mongo.tasks.find_one({"_id": oid, "household_id": ObjectId(household_id)}) if oid else None
        if not doc:
            raise NotFoundError("Task not found")
        task = Task.from_document(doc)
        reopened = task_lifecycle.reopen_due(task, utcnow())
        if reopened is not task:
            cls._save(reopened)
        return reopened

    @classmethod
    def _household_tasks(cls, household_id: str) -> List[Task]:
        docs = mongo.tasks.find({"household_id": ObjectId(household_id)}).sort("due_at", 1)
        return [Task.from_document(doc) for doc in docs]

    @classmethod
    def _save(cls, task: Task) -> Task:
        mongo.tasks.update_one({"_id": ObjectId(task.id)}, {"$set": task.to_document()})
        return task

    @classmethod
    def reopen_due_tasks(cls, household_id: str, now: Optional[datetime] = None) -> int:
        """Open every done task whose next due date has arrived."""
        now = now or utcnow()
        result = mongo.tasks.update_many(
            {
                "household_id": ObjectId(household_id),
                "done": True,
                "is_active": True,
                "due_at": {"$lte": now},
            },
            {"$set": {"done": False, "done_at": None, "done_by": None}}
        )
        return result.modified_count

    @classmethod
    def list_tasks(cls, household_id: str) -> List[Task]:
        cls.reopen_due_tasks(household_id)
        return cls._household_tasks(household_id)

    # ==================== CRUD ====================

    @classmethod
    def create_task(cls, household_id: str, user_id: str, fields: Dict) -> Task:
        """
        Create a task from validated fields.

        Args:
            fields: title, rotation_user_ids and optionally description,
                frequency_days, effort_pimpers, start_date, grace_minutes,
                delay_penalty_per_day, prioritize_low_pimpers,
                assignee_fairness_mode

        Returns:
            The stored task, assigned to the first rotation member
        """
        fields = dict(fields)
        rotation = fields.get("rotation_user_ids") or []
        if not rotation:
            raise ValidationError("rotation_user_ids must contain at least one member")

        start_date = fields.pop("start_date", None) or utcnow().date()
        now = utcnow()
        task = Task(
            id=None,
            household_id=household_id,
            due_at=date_to_datetime(start_date, DUE_TIME),
            assignee_id=rotation[0],
            created_by=user_id,
            created_at=now,
            **fields
        )
        result = mongo.tasks.insert_one(task.to_document())
        logger.info("[Tasks] %s created task %s in %s", user_id, result.inserted_id, household_id)
        return task.evolve(id=str(result.inserted_id))

    @classmethod
    def update_task(cls, household_id: str, task_id: str, changes: Dict) -> Task:
        task = cls.get_task(household_id, task_id)
        changes = dict(changes)

        start_date = changes.pop("start_date", None)
        if start_date is not None:
            changes["due_at"] = date_to_datetime(start_date, DUE_TIME)
        if "frequency_days" in changes:
            changes["cron_pattern"] = frequency_to_cron(changes["frequency_days"])

        rotation = changes.get("rotation_user_ids")
        if rotation is not None:
            if not rotation:
                raise ValidationError("rotation_user_ids must contain at least one member")
            if task.assignee_id not in rotation:
                changes["assignee_id"] = rotation[0]

        return cls._save(task.evolve(**changes))

    @classmethod
    def delete_task(cls, household_id: str, task_id: str) -> None:
        task = cls.get_task(household_id, task_id)
        mongo.tasks.delete_one({"_id": ObjectId(task.id)})

    @classmethod
    def set_active(cls, household_id: str, task_id: str, active: bool) -> Task:
        """Deactivate, or activate with the task due right away."""
        task = cls.get_task(household_id, task_id)
        if active == task.is_active:
            return task
        if active:
            task = task.evolve(is_active=True, done=False, done_at=None, done_by=None, due_at=utcnow())
        else:
            task = task.evolve(is_active=False)
        return cls._save(task)

    @classmethod
    def remove_member_from_rotations(cls, household_id: str, user_id: str) -> None:
        """Drop a departing member from every rotation and reassign their tasks."""
        for task in cls._household_tasks(household_id):
            if user_id not in task.rotation_user_ids:
                continue
            rotation = [m for m in task.rotation_user_ids if m != user_id]
            changes = {"rotation_user_ids": rotation}
            if task.assignee_id == user_id:
                changes["assignee_id"] = advance_rotation(task.rotation_user_ids, user_id) if rotation else None
            if not rotation:
                changes["is_active"] = False
            cls._save(task.evolve(**changes))

    # ==================== ACTIONS ====================

    @classmethod
    def average_delay_minutes(cls, household_id: str) -> Dict[str, float]:
        totals: Dict[str, List[int]] = {}
        for doc in mongo.task_completions.find({"household_id": ObjectId(household_id)}, {"user_id": 1, "delay_minutes": 1}):
            row = totals.setdefault(str(doc["user_id"]), [0, 0])
            row[0] += int(doc.get("delay_minutes", 0))
            row[1] += 1
        return {user_id: total / count for user_id, (total, count) in totals.items()}

    @classmethod
    def _assignee_picker(cls, task: Task):
        household = HouseholdService.get_household(task.household_id)
        members = HouseholdService.members_by_id(task.household_id)
        other_tasks = [t for t in cls._household_tasks(task.household_id) if t.id != task.id]
        avg_delay = cls.average_delay_minutes(task.household_id)

        def pick(completion: Optional[TaskCompletion]) -> str:
            # Points just earned count towards the next pick
            if completion is not None and completion.user_id in members:
                members[completion.user_id].total_pimpers += completion.pimpers_earned
            return choose_next_assignee(
                task,
                members,
                other_tasks,
                laziness_enabled=household.task_laziness_enabled,
                avg_delay_minutes=avg_delay,
            )

        return pick

    @classmethod
    def complete_task(cls, household_id: str, task_id: str, user_id: str) -> task_lifecycle.TaskActionResult:
        task = cls.get_task(household_id, task_id)
        result = task_lifecycle.complete_task(task, user_id, utcnow(), cls._assignee_picker(task))
        completion = result.completion

        cls._save(result.task)
        inserted = mongo.task_completions.insert_one(completion.to_document())
        HouseholdService.add_pimpers(household_id, user_id, completion.pimpers_earned)
        HouseholdService.record_event(
            household_id,
            HouseholdEventType.TASK_COMPLETED,
            actor_id=user_id,
            subject_id=result.task.assignee_id,
            payload={
                "task_id": task.id,
                "title": task.title,
                "pimpers_earned": completion.pimpers_earned,
                "delay_minutes": completion.delay_minutes,
            },
        )
        logger.info(
            "[Tasks] %s completed %s (+%s pimpers, %s min late), next: %s",
            user_id, task.id, completion.pimpers_earned, completion.delay_minutes, result.task.assignee_id
        )
        return task_lifecycle.TaskActionResult(
            task=result.task,
            completion=replace(completion, id=str(inserted.inserted_id)),
        )

    @classmethod
    def skip_task(cls, household_id: str, task_id: str, user_id: str) -> task_lifecycle.TaskActionResult:
        task = cls.get_task(household_id, task_id)
        result = task_lifecycle.skip_task(task, user_id, utcnow(), cls._assignee_picker(task))

        cls._save(result.task)
        HouseholdService.record_event(
            household_id,
            HouseholdEventType.TASK_SKIPPED,
            actor_id=user_id,
            subject_id=result.task.assignee_id,
            payload={"task_id": task.id, "title": task.title},
        )
        logger.info("[Tasks] %s skipped %s, next: %s", user_id, task.id, result.task.assignee_id)
        return result

    @classmethod
    def takeover_task(cls, household_id: str, task_id: str, user_id: str) -> task_lifecycle.TaskActionResult:
        task = cls.get_task(household_id, task_id)
        result = task_lifecycle.takeover_task(task, user_id)

        cls._save(result.task)
        HouseholdService.record_event(
            household_id,
            HouseholdEventType.TASK_TAKEN_OVER,
            actor_id=user_id,
            subject_id=task.assignee_id,
            payload={"task_id": task.id, "title": task.title},
        )
        logger.info("[Tasks] %s took over %s from %s", user_id, task.id, task.assignee_id)
        return result

    # ==================== STATS ====================

    @classmethod
    def _completions(cls, household_id: str, query: Optional[Dict] = None, limit: int = 0) -> List[TaskCompletion]:
        criteria = {"household_id": ObjectId(household_id)}
        criteria.update(query or {})
        cursor = mongo.task_completions.find(criteria).sort("completed_at", -1)
        if limit:
            cursor = cursor.limit(limit)
        return [TaskCompletion.from_document(doc) for doc in cursor]

    @classmethod
    def get_completions(cls, household_id: str, limit: int = 100, task_id: Optional[str] = None) -> List[TaskCompletion]:
        query = {}
        if task_id:
            oid = safe_object_id(task_id)
            if oid is None:
                raise NotFoundError("Task not found")
            query["task_id"] = oid
        return cls._completions(household_id, query, limit)

    @classmethod
    def get_leaderboard(cls, household_id: str) -> List[Dict]:
        household = HouseholdService.get_household(household_id)
        members = HouseholdService.get_members(household_id)
        rows = leaderboard.pimper_leaderboard(members, household.task_laziness_enabled)
        names = {m.user_id: m.display_name for m in members}
        for row in rows:
            row["display_name"] = names.get(row["user_id"])
        return rows

    @classmethod
    def forecast(cls, household_id: str, horizon_days: int) -> Dict[str, float]:
        members = HouseholdService.members_by_id(household_id)
        return leaderboard.forecast_workload(
            cls._household_tasks(household_id), list(members), horizon_days, members
        )

    @classmethod
    def member_of_month(cls, household_id: str, year: int, month: int) -> Optional[leaderboard.MemberOfMonth]:
        if month < 1 or month > 12:
            raise ValidationError("month must be between 1 and 12")
        if not MINYEAR <= year < MAXYEAR:
            raise ValidationError(f"year must be between {MINYEAR} and {MAXYEAR - 1}")
        start = datetime(year, month, 1)
        end = start + relativedelta(months=1) - relativedelta(microseconds=1)
        completions = cls._completions(household_id, {"completed_at": {"$gte": start, "$lte": end}})
        return leaderboard.member_of_month(completions, start, end)
