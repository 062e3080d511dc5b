"""Household models."""
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from bson import ObjectId

from domora.utils.dates import isoformat
from domora.utils.enums import MemberRole


@dataclass
class Household:
    id: str
    name: str
    invite_code: str
    created_by: str
    currency: str = "EUR"
    task_laziness_enabled: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc: Dict) -> "Household":
        return cls(
            id=str(doc["_id"]),
            name=doc["name"],
            invite_code=doc["invite_code"],
            created_by=str(doc["created_by"]),
            currency=doc.get("currency", "EUR"),
            task_laziness_enabled=bool(doc.get("task_laziness_enabled", False)),
            created_at=doc.get("created_at"),
        )

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "name": self.name,
            "invite_code": self.invite_code,
            "created_by": self.created_by,
            "currency": self.currency,
            "task_laziness_enabled": self.task_laziness_enabled,
            "created_at": isoformat(self.created_at),
        }


@dataclass
class HouseholdMember:
    household_id: str
    user_id: str
    role: MemberRole = MemberRole.MEMBER
    display_name: Optional[str] = None
    task_laziness_factor: float = 1.0
    vacation_mode: bool = False
    total_pimpers: float = 0.0
    created_at: Optional[datetime] = None

    @property
    def is_owner(self) -> bool:
        return self.role == MemberRole.OWNER

    @classmethod
    def from_document(cls, doc: Dict, display_name: Optional[str] = None) -> "HouseholdMember":
        return cls(
            household_id=str(doc["household_id"]),
            user_id=str(doc["user_id"]),
            role=MemberRole(doc.get("role", MemberRole.MEMBER.value)),
            display_name=display_name,
            task_laziness_factor=float(doc.get("task_laziness_factor", 1.0)),
            vacation_mode=bool(doc.get("vacation_mode", False)),
            total_pimpers=float(doc.get("total_pimpers", 0.0)),
            created_at=doc.get("created_at"),
        )

    def to_document(self) -> Dict:
        return {
            "household_id": ObjectId(self.household_id),
            "user_id": ObjectId(self.user_id),
            "role": self.role.value,
            "task_laziness_factor": self.task_laziness_factor,
            "vacation_mode": self.vacation_mode,
            "total_pimpers": self.total_pimpers,
            "created_at": self.created_at,
        }

    def to_dict(self) -> Dict:
        return {
            "household_id": self.household_id,
            "user_id": self.user_id,
            "role": self.role.value,
            "display_name": self.display_name,
            "task_laziness_factor": self.task_laziness_factor,
            "vacation_mode": self.vacation_mode,
            "total_pimpers": round(self.total_pimpers, 2),
            "created_at": isoformat(self.created_at),
        }
