"""Finance models."""
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Dict, List, Optional

from bson import ObjectId

from domora.utils.dates import date_to_datetime, isoformat, parse_date
from domora.utils.enums import CashAuditStatus, SubscriptionRecurrence
from domora.utils.ids import oid_list, str_list, str_or_none
from domora.utils.recurrence import recurrence_from_cron, subscription_cron

# Entry days are stored at noon, like the hosted schema did.
ENTRY_TIME = time(12, 0)


@dataclass
class FinanceEntry:
    id: Optional[str]
    household_id: str
    description: str
    amount: Decimal
    paid_by_user_ids: List[str] = field(default_factory=list)
    beneficiary_user_ids: List[str] = field(default_factory=list)
    category: str = "general"
    entry_date: Optional[date] = None
    paid_by: Optional[str] = None
    receipt_image_url: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        self.amount = Decimal(str(self.amount))
        if self.paid_by is None and self.paid_by_user_ids:
            self.paid_by = self.paid_by_user_ids[0]

    @classmethod
    def from_document(cls, doc: Dict) -> "FinanceEntry":
        return cls(
            id=str(doc["_id"]),
            household_id=str(doc["household_id"]),
            description=doc.get("description", ""),
            amount=Decimal(str(doc.get("amount", 0))),
            paid_by_user_ids=str_list(doc.get("paid_by_user_ids")),
            beneficiary_user_ids=str_list(doc.get("beneficiary_user_ids")),
            category=doc.get("category") or "general",
            entry_date=parse_date(doc.get("entry_date")),
            paid_by=str_or_none(doc.get("paid_by")),
            receipt_image_url=doc.get("receipt_image_url"),
            created_by=str_or_none(doc.get("created_by")),
            created_at=doc.get("created_at"),
        )

    def to_document(self) -> Dict:
        return {
            "household_id": ObjectId(self.household_id),
            "description": self.description,
            "category": self.category or "general",
            "amount": float(self.amount),
            "paid_by": ObjectId(self.paid_by) if self.paid_by else None,
            "paid_by_user_ids": oid_list(self.paid_by_user_ids),
            "beneficiary_user_ids": oid_list(self.beneficiary_user_ids),
            "entry_date": date_to_datetime(self.entry_date, ENTRY_TIME) if self.entry_date else None,
            "receipt_image_url": self.receipt_image_url,
            "created_by": ObjectId(self.created_by) if self.created_by else None,
            "created_at": self.created_at,
        }

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "household_id": self.household_id,
            "description": self.description,
            "category": self.category,
            "amount": float(self.amount),
            "paid_by": self.paid_by,
            "paid_by_user_ids": list(self.paid_by_user_ids),
            "beneficiary_user_ids": list(self.beneficiary_user_ids),
            "entry_date": isoformat(self.entry_date),
            "receipt_image_url": self.receipt_image_url,
            "created_by": self.created_by,
            "created_at": isoformat(self.created_at),
        }


@dataclass
class CashAuditRequest:
    id: str
    household_id: str
    requested_by: str
    status: CashAuditStatus
    created_at: datetime

    @classmethod
    def from_document(cls, doc: Dict) -> "CashAuditRequest":
        return cls(
            id=str(doc["_id"]),
            household_id=str(doc["household_id"]),
            requested_by=str(doc["requested_by"]),
            status=CashAuditStatus(doc.get("status", CashAuditStatus.QUEUED.value)),
            created_at=doc["created_at"],
        )

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "household_id": self.household_id,
            "requested_by": self.requested_by,
            "status": self.status.value,
            "created_at": isoformat(self.created_at),
        }


@dataclass
class FinanceSubscription:
    id: Optional[str]
    household_id: str
    name: str
    amount: Decimal
    paid_by_user_ids: List[str]
    beneficiary_user_ids: List[str]
    recurrence: SubscriptionRecurrence = SubscriptionRecurrence.MONTHLY
    category: str = "general"
    next_run_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.amount = Decimal(str(self.amount))
        self.recurrence = SubscriptionRecurrence(self.recurrence)

    @property
    def cron_pattern(self) -> str:
        return subscription_cron(self.recurrence)

    @classmethod
    def from_document(cls, doc: Dict) -> "FinanceSubscription":
        return cls(
            id=str(doc["_id"]),
            household_id=str(doc["household_id"]),
            name=doc["name"],
            amount=Decimal(str(doc.get("amount", 0))),
            paid_by_user_ids=str_list(doc.get("paid_by_user_ids")),
            beneficiary_user_ids=str_list(doc.get("beneficiary_user_ids")),
            recurrence=recurrence_from_cron(doc.get("cron_pattern", "")),
            category=doc.get("category") or "general",
            next_run_at=doc.get("next_run_at"),
            created_by=str_or_none(doc.get("created_by")),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )

    def to_document(self) -> Dict:
        return {
            "household_id": ObjectId(self.household_id),
            "name": self.name,
            "category": self.category or "general",
            "amount": float(self.amount),
            "paid_by_user_ids": oid_list(self.paid_by_user_ids),
            "beneficiary_user_ids": oid_list(self.beneficiary_user_ids),
            "cron_pattern": self.cron_pattern,
            "next_run_at": self.next_run_at,
            "created_by": ObjectId(self.created_by) if self.created_by else None,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "household_id": self.household_id,
            "name": self.name,
            "category": self.category,
            "amount": float(self.amount),
            "paid_by_user_ids": list(self.paid_by_user_ids),
            "beneficiary_user_ids": list(self.beneficiary_user_ids),
            "recurrence": self.recurrence.value,
            "cron_pattern": self.cron_pattern,
            "next_run_at": isoformat(self.next_run_at),
            "created_by": self.created_by,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }
