"""Shopping list models."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from bson import ObjectId

from domora.utils.dates import isoformat
from domora.utils.enums import ShoppingRecurrenceUnit
from domora.utils.ids import str_or_none


@dataclass
class ShoppingItem:
    id: Optional[str]
    household_id: str
    title: str
    tags: List[str] = field(default_factory=list)
    recurrence_interval_value: Optional[int] = None
    recurrence_interval_unit: Optional[ShoppingRecurrenceUnit] = None
    done: bool = False
    done_at: Optional[datetime] = None
    done_by: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict) -> "ShoppingItem":
        unit = doc.get("recurrence_interval_unit")
        return cls(
            id=str(doc["_id"]),
            household_id=str(doc["household_id"]),
            title=doc["title"],
            tags=list(doc.get("tags") or []),
            recurrence_interval_value=doc.get("recurrence_interval_value"),
            recurrence_interval_unit=ShoppingRecurrenceUnit(unit) if unit else None,
            done=bool(doc.get("done", False)),
            done_at=doc.get("done_at"),
            done_by=str_or_none(doc.get("done_by")),
            created_by=str_or_none(doc.get("created_by")),
            created_at=doc.get("created_at"),
        )

    def to_document(self) -> Dict:
        return {
            "household_id": ObjectId(self.household_id),
            "title": self.title,
            "tags": list(self.tags),
            "recurrence_interval_value": self.recurrence_interval_value,
            "recurrence_interval_unit": (
                self.recurrence_interval_unit.value if self.recurrence_interval_unit else None
            ),
            "done": self.done,
            "done_at": self.done_at,
            "done_by": ObjectId(self.done_by) if self.done_by else None,
            "created_by": ObjectId(self.created_by) if self.created_by else None,
            "created_at": self.created_at,
        }

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "household_id": self.household_id,
            "title": self.title,
            "tags": list(self.tags),
            "recurrence_interval_value": self.recurrence_interval_value,
            "recurrence_interval_unit": (
                self.recurrence_interval_unit.value if self.recurrence_interval_unit else None
            ),
            "done": self.done,
            "done_at": isoformat(self.done_at),
            "done_by": self.done_by,
            "created_by": self.created_by,
            "created_at": isoformat(self.created_at),
        }
