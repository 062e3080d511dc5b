"""
Terminal actions on a due task: complete, skip, takeover.

complete and skip both close the current due instance and schedule the
next one at ``old_due_at + interval_days``, so the cadence stays fixed no
matter how late the task was handled. takeover only changes who holds the
current instance.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from domora.tasks.models import Task, TaskCompletion

from .errors import TaskActionError

MINUTES_PER_DAY = 1440.0

# Completing is allowed a day ahead of the due date, skipping is not.
COMPLETE_EARLY_WINDOW = timedelta(hours=24)

NextAssigneePicker = Callable[[Optional[TaskCompletion]], Optional[str]]


@dataclass(frozen=True)
class TaskActionResult:
    task: Task
    completion: Optional[TaskCompletion] = None

    @property
    def pimpers_earned(self) -> float:
        return self.completion.pimpers_earned if self.completion else 0.0


def next_due_at(task: Task) -> datetime:
    return task.due_at + timedelta(days=task.interval_days)


def delay_minutes(task: Task, now: datetime) -> int:
    """Whole minutes past the due date plus the grace period."""
    deadline = task.due_at + timedelta(minutes=max(task.grace_minutes, 0))
    return max(0, math.floor((now - deadline).total_seconds() / 60))


def pimpers_for_completion(task: Task, delay: int) -> float:
    """Effort minus the per-day delay penalty, never below zero."""
    if task.ignore_delay_penalty_once:
        penalty = 0.0
    else:
        penalty = max(task.delay_penalty_per_day, 0.0) * (delay / MINUTES_PER_DAY)
    return round(max(task.effort_pimpers - penalty, 0.0), 2)


def _ensure_open(task: Task) -> None:
    if not task.is_active:
        raise TaskActionError("Task is inactive")


def _ensure_assignee(task: Task, user_id: str, verb: str) -> None:
    if task.assignee_id is not None and task.assignee_id != user_id:
        raise TaskActionError(f"Only the assigned person can {verb} this task")


def complete_task(
    task: Task,
    user_id: str,
    now: datetime,
    pick_next_assignee: NextAssigneePicker
) -> TaskActionResult:
    """
    Complete the current due instance.

    The completing member earns the task's effort (minus the delay penalty),
    the completion snapshot is produced, the due date moves one interval
    forward from the old due date and the task goes to whoever
    ``pick_next_assignee`` returns (the current assignee if it returns None).

    Raises:
        TaskActionError: inactive, already done, wrong member, or not due yet
    """
    _ensure_open(task)
    if task.done:
        raise TaskActionError("Task is already completed for this round")
    _ensure_assignee(task, user_id, "complete")
    if task.due_at > now + COMPLETE_EARLY_WINDOW:
        raise TaskActionError("Task is not due yet")

    delay = delay_minutes(task, now)
    completion = TaskCompletion(
        task_id=task.id,
        household_id=task.household_id,
        task_title_snapshot=task.title,
        user_id=user_id,
        pimpers_earned=pimpers_for_completion(task, delay),
        due_at_snapshot=task.due_at,
        delay_minutes=delay,
        completed_at=now,
    )

    next_assignee = pick_next_assignee(completion)
    updated = task.evolve(
        done=True,
        done_at=now,
        done_by=user_id,
        due_at=next_due_at(task),
        assignee_id=next_assignee or task.assignee_id,
        ignore_delay_penalty_once=False,
    )
    return TaskActionResult(task=updated, completion=completion)


def skip_task(
    task: Task,
    user_id: str,
    now: datetime,
    pick_next_assignee: NextAssigneePicker
) -> TaskActionResult:
    """
    Skip the current due instance without awarding points.

    Raises:
        TaskActionError: inactive, wrong member, or not due yet
    """
    _ensure_open(task)
    _ensure_assignee(task, user_id, "skip")
    if task.due_at > now:
        raise TaskActionError("Task is not due yet")

    next_assignee = pick_next_assignee(None)
    updated = task.evolve(
        done=False,
        done_at=None,
        done_by=None,
        due_at=next_due_at(task),
        assignee_id=next_assignee or task.assignee_id,
        ignore_delay_penalty_once=False,
    )
    return TaskActionResult(task=updated)


def takeover_task(task: Task, user_id: str) -> TaskActionResult:
    """
    Hand the current due instance to ``user_id``; they may then complete it.

    Raises:
        TaskActionError: inactive or already done for this round
    """
    _ensure_open(task)
    if task.done:
        raise TaskActionError("Task is already completed for this round")
    if task.assignee_id == user_id:
        raise TaskActionError("Task is already assigned to this member")
    return TaskActionResult(task=task.evolve(assignee_id=user_id))


def reopen_due(task: Task, now: datetime) -> Task:
    """A done task opens again once its next due date has arrived."""
    if task.done and task.is_active and task.due_at <= now:
        return task.evolve(done=False, done_at=None, done_by=None)
    return task
