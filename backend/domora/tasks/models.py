"""Task models."""
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Optional

from bson import ObjectId

from domora.utils.dates import isoformat
from domora.utils.enums import FairnessMode
from domora.utils.ids import oid_list, str_list, str_or_none
from domora.utils.recurrence import cron_interval_days, frequency_to_cron


@dataclass
class Task:
    id: str
    household_id: str
    title: str
    due_at: datetime
    frequency_days: int = 7
    effort_pimpers: int = 1
    rotation_user_ids: List[str] = field(default_factory=list)
    assignee_id: Optional[str] = None
    description: str = ""
    cron_pattern: str = ""
    grace_minutes: int = 1440
    delay_penalty_per_day: float = 0.25
    prioritize_low_pimpers: bool = True
    assignee_fairness_mode: FairnessMode = FairnessMode.ACTUAL
    is_active: bool = True
    done: bool = False
    done_at: Optional[datetime] = None
    done_by: Optional[str] = None
    ignore_delay_penalty_once: bool = False
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.cron_pattern:
            self.cron_pattern = frequency_to_cron(self.frequency_days)
        self.assignee_fairness_mode = FairnessMode(self.assignee_fairness_mode)

    @property
    def interval_days(self) -> int:
        return cron_interval_days(self.cron_pattern, self.frequency_days)

    def evolve(self, **changes) -> "Task":
        return replace(self, **changes)

    @classmethod
    def from_document(cls, doc: Dict) -> "Task":
        return cls(
            id=str(doc["_id"]),
            household_id=str(doc["household_id"]),
            title=doc["title"],
            description=doc.get("description", ""),
            due_at=doc["due_at"],
            frequency_days=int(doc.get("frequency_days", 7)),
            effort_pimpers=int(doc.get("effort_pimpers", 1)),
            rotation_user_ids=str_list(doc.get("rotation_user_ids")),
            assignee_id=str_or_none(doc.get("assignee_id")),
            cron_pattern=doc.get("cron_pattern", ""),
            grace_minutes=int(doc.get("grace_minutes", 1440)),
            delay_penalty_per_day=float(doc.get("delay_penalty_per_day", 0.25)),
            prioritize_low_pimpers=bool(doc.get("prioritize_low_pimpers", True)),
            assignee_fairness_mode=doc.get("assignee_fairness_mode", FairnessMode.ACTUAL.value),
            is_active=bool(doc.get("is_active", True)),
            done=bool(doc.get("done", False)),
            done_at=doc.get("done_at"),
            done_by=str_or_none(doc.get("done_by")),
            ignore_delay_penalty_once=bool(doc.get("ignore_delay_penalty_once", False)),
            created_by=str_or_none(doc.get("created_by")),
            created_at=doc.get("created_at"),
        )

    def to_document(self) -> Dict:
        return {
            "household_id": ObjectId(self.household_id),
            "title": self.title,
            "description": self.description,
            "due_at": self.due_at,
            "frequency_days": self.frequency_days,
            "effort_pimpers": self.effort_pimpers,
            "rotation_user_ids": oid_list(self.rotation_user_ids),
            "assignee_id": ObjectId(self.assignee_id) if self.assignee_id else None,
            "cron_pattern": self.cron_pattern,
            "grace_minutes": self.grace_minutes,
            "delay_penalty_per_day": self.delay_penalty_per_day,
            "prioritize_low_pimpers": self.prioritize_low_pimpers,
            "assignee_fairness_mode": self.assignee_fairness_mode.value,
            "is_active": self.is_active,
            "done": self.done,
            "done_at": self.done_at,
            "done_by": ObjectId(self.done_by) if self.done_by else None,
            "ignore_delay_penalty_once": self.ignore_delay_penalty_once,
            "created_by": ObjectId(self.created_by) if self.created_by else None,
            "created_at": self.created_at,
        }

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "household_id": self.household_id,
            "title": self.title,
            "description": self.description,
            "due_at": isoformat(self.due_at),
            "frequency_days": self.frequency_days,
            "effort_pimpers": self.effort_pimpers,
            "rotation_user_ids": list(self.rotation_user_ids),
            "assignee_id": self.assignee_id,
            "cron_pattern": self.cron_pattern,
            "grace_minutes": self.grace_minutes,
            "delay_penalty_per_day": self.delay_penalty_per_day,
            "prioritize_low_pimpers": self.prioritize_low_pimpers,
            "assignee_fairness_mode": self.assignee_fairness_mode.value,
            "is_active": self.is_active,
            "done": self.done,
            "done_at": isoformat(self.done_at),
            "done_by": self.done_by,
            "created_by": self.created_by,
            "created_at": isoformat(self.created_at),
        }


@dataclass(frozen=True)
class TaskCompletion:
    """Snapshot written once per completion. Never updated."""
    task_id: str
    household_id: str
    task_title_snapshot: str
    user_id: str
    pimpers_earned: float
    due_at_snapshot: Optional[datetime]
    delay_minutes: int
    completed_at: datetime
    id: Optional[str] = None

    @classmethod
    def from_document(cls, doc: Dict) -> "TaskCompletion":
        return cls(
            id=str(doc["_id"]),
            task_id=str(doc["task_id"]),
            household_id=str(doc["household_id"]),
            task_title_snapshot=doc.get("task_title_snapshot", ""),
            user_id=str(doc["user_id"]),
            pimpers_earned=float(doc.get("pimpers_earned", 0)),
            due_at_snapshot=doc.get("due_at_snapshot"),
            delay_minutes=int(doc.get("delay_minutes", 0)),
            completed_at=doc["completed_at"],
        )

    def to_document(self) -> Dict:
        return {
            "task_id": ObjectId(self.task_id),
            "household_id": ObjectId(self.household_id),
            "task_title_snapshot": self.task_title_snapshot,
            "user_id": ObjectId(self.user_id),
            "pimpers_earned": self.pimpers_earned,
            "due_at_snapshot": self.due_at_snapshot,
            "delay_minutes": self.delay_minutes,
            "completed_at": self.completed_at,
        }

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "household_id": self.household_id,
            "task_title_snapshot": self.task_title_snapshot,
            "user_id": self.user_id,
            "pimpers_earned": self.pimpers_earned,
            "due_at_snapshot": isoformat(self.due_at_snapshot),
            "delay_minutes": self.delay_minutes,
            "completed_at": isoformat(self.completed_at),
        }
