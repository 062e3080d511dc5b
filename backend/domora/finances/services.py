"""
Finance Service - Shared expenses, settlement and cash audits.

Responsibilities:
- Finance entry CRUD (only the creator edits or deletes)
- Balances since the last cash audit and settlement transfers
- Reimbursement previews
- Cash audit requests (mailed to every member)
- Recurring subscriptions booked as entries
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

from bson import ObjectId
from flask_mail import Message as MailMessage

from domora.core import finance_math
from domora.core.errors import NotFoundError, PermissionDeniedError
from domora.extensions import db as mongo
from domora.finances.models import CashAuditRequest, FinanceEntry, FinanceSubscription
from domora.households.services import HouseholdService
from domora.utils.dates import utcnow
from domora.utils.enums import CashAuditStatus, HouseholdEventType
from domora.utils.ids import safe_object_id
from domora.utils.recurrence import next_subscription_run

logger = logging.getLogger(__name__)


class FinanceService:
    """Service for household finances."""

    # ==================== ENTRIES ====================

    @classmethod
    def get_entry(cls, household_id: str, entry_id: str) -> FinanceEntry:
        oid = safe_object_id(entry_id)
        doc = mongo.finance_entries.find_one({"_id": oid, "household_id": ObjectId(household_id)}) if oid else None
        if not doc:
            raise NotFoundError("Finance entry not found")
        return FinanceEntry.from_document(doc)

    @classmethod
    def list_entries(cls, household_id: str) -> List[FinanceEntry]:
        docs = mongo.finance_entries.find(
            {"household_id": ObjectId(household_id)}
        ).sort([("entry_date", -1), ("created_at", -1)])
        return [FinanceEntry.from_document(doc) for doc in docs]

    @classmethod
    def create_entry(cls, household_id: str, user_id: str, fields: Dict) -> FinanceEntry:
        """
        Record a shared expense.

        Args:
            fields: description, amount, paid_by_user_ids,
                beneficiary_user_ids and optionally category, entry_date

        Returns:
            The stored entry
        """
        fields = dict(fields)
        fields.setdefault("entry_date", utcnow().date())
        entry = FinanceEntry(
            id=None,
            household_id=household_id,
            created_by=user_id,
            created_at=utcnow(),
            **fields
        )
        result = mongo.finance_entries.insert_one(entry.to_document())
        entry.id = str(result.inserted_id)

        HouseholdService.record_event(
            household_id,
            HouseholdEventType.FINANCE_CREATED,
            actor_id=user_id,
            payload={
                "entry_id": entry.id,
                "description": entry.description,
                "amount": float(entry.amount),
            },
        )
        logger.info("[Finances] %s added entry %s (%s)", user_id, entry.id, entry.amount)
        return entry

    @classmethod
    def _own_entry(cls, household_id: str, entry_id: str, user_id: str) -> FinanceEntry:
        entry = cls.get_entry(household_id, entry_id)
        if entry.created_by != user_id:
            raise PermissionDeniedError("Only the creator can change this entry")
        return entry

    @classmethod
    def update_entry(cls, household_id: str, entry_id: str, user_id: str, changes: Dict) -> FinanceEntry:
        entry = cls._own_entry(household_id, entry_id, user_id)
        for key, value in changes.items():
            setattr(entry, key, value)
        if "paid_by_user_ids" in changes:
            entry.paid_by = entry.paid_by_user_ids[0]
        mongo.finance_entries.update_one({"_id": ObjectId(entry.id)}, {"$set": entry.to_document()})
        return entry

    @classmethod
    def delete_entry(cls, household_id: str, entry_id: str, user_id: str) -> None:
        entry = cls._own_entry(household_id, entry_id, user_id)
        mongo.finance_entries.delete_one({"_id": ObjectId(entry.id)})

    # ==================== BALANCES ====================

    @classmethod
    def last_cash_audit(cls, household_id: str) -> Optional[CashAuditRequest]:
        doc = mongo.cash_audit_requests.find_one(
            {"household_id": ObjectId(household_id)},
            sort=[("created_at", -1)]
        )
        return CashAuditRequest.from_document(doc) if doc else None

    @classmethod
    def entries_since_last_audit(cls, household_id: str) -> List[FinanceEntry]:
        audit = cls.last_cash_audit(household_id)
        return finance_math.entries_since_cash_audit(
            cls.list_entries(household_id), audit.created_at if audit else None
        )

    @classmethod
    def current_balances(cls, household_id: str) -> Dict[str, Decimal]:
        return finance_math.calculate_balances(
            cls.entries_since_last_audit(household_id),
            HouseholdService.member_ids(household_id)
        )

    @classmethod
    def balance_summary(cls, household_id: str) -> Dict:
        """Balances, transfers and per-category totals since the last cash audit."""
        audit = cls.last_cash_audit(household_id)
        entries = cls.entries_since_last_audit(household_id)
        balances = finance_math.calculate_balances(entries, HouseholdService.member_ids(household_id))

        return {
            "since": audit.created_at.isoformat() if audit else None,
            "entry_count": len(entries),
            "balances": [
                {"member_id": row["member_id"], "balance": float(row["balance"])}
                for row in finance_math.sort_balances(balances)
            ],
            "transfers": [t.to_dict() for t in finance_math.calculate_settlement_transfers(balances)],
            "paid_totals": [
                {"member_id": member_id, "total": float(total)}
                for member_id, total in finance_math.paid_totals_by_member(entries)
            ],
            "category_totals": {
                category: float(total)
                for category, total in finance_math.totals_by_category(entries).items()
            },
        }

    @classmethod
    def settlement_transfers(cls, household_id: str) -> List[finance_math.SettlementTransfer]:
        return finance_math.calculate_settlement_transfers(cls.current_balances(household_id))

    @classmethod
    def reimbursement_preview(cls, amount, payer_ids: List[str], beneficiary_ids: List[str]) -> List[Dict]:
        deltas = finance_math.calculate_reimbursement_preview(amount, payer_ids, beneficiary_ids)
        return [{"member_id": member_id, "delta": float(delta)} for member_id, delta in deltas.items()]

    # ==================== CASH AUDITS ====================

    @classmethod
    def _send_audit_mail(cls, household_id: str, requested_by: str, transfers) -> bool:
        from domora import mail

        household = HouseholdService.get_household(household_id)
        members = HouseholdService.get_members(household_id)
        users = mongo.users.find(
            {"_id": {"$in": [ObjectId(m.user_id) for m in members]}},
            {"email": 1}
        )
        recipients = [u["email"] for u in users if u.get("email")]
        if not recipients:
            return False

        names = {m.user_id: m.display_name or m.user_id for m in members}
        lines = [
            f"{names.get(t.from_member_id, t.from_member_id)} pays "
            f"{names.get(t.to_member_id, t.to_member_id)} {t.amount} {household.currency}"
            for t in transfers
        ]

        try:
            msg = MailMessage(
                subject=f"Cash audit for {household.name}",
                recipients=recipients,
            )
            msg.body = (
                f"{names.get(requested_by, 'A member')} requested a cash audit.\n\n"
                + ("\n".join(lines) if lines else "Everyone is settled up.")
                + "\n"
            )
            mail.send(msg)
            return True
        except Exception as exc:
            logger.error("[Finances] Failed to send cash audit mail for %s: %s", household_id, exc)
            return False

    @classmethod
    def request_cash_audit(cls, household_id: str, user_id: str) -> CashAuditRequest:
        """
        Mail the current settlement to every member and start a new period.

        The request is stored as queued, then marked sent or failed depending
        on the mail delivery. Either way it becomes the new checkpoint.
        """
        # Mail the balances as they were before this checkpoint
        transfers = cls.settlement_transfers(household_id)

        now = utcnow()
        doc = {
            "household_id": ObjectId(household_id),
            "requested_by": ObjectId(user_id),
            "status": CashAuditStatus.QUEUED.value,
            "created_at": now,
        }
        result = mongo.cash_audit_requests.insert_one(doc)
        doc["_id"] = result.inserted_id

        sent = cls._send_audit_mail(household_id, user_id, transfers)
        status = CashAuditStatus.SENT if sent else CashAuditStatus.FAILED
        mongo.cash_audit_requests.update_one(
            {"_id": result.inserted_id},
            {"$set": {"status": status.value}}
        )
        doc["status"] = status.value

        HouseholdService.record_event(
            household_id,
            HouseholdEventType.CASH_AUDIT_REQUESTED,
            actor_id=user_id,
            payload={"request_id": str(result.inserted_id), "status": status.value},
        )
        logger.info("[Finances] Cash audit %s for %s: %s", result.inserted_id, household_id, status.value)
        return CashAuditRequest.from_document(doc)

    @classmethod
    def list_cash_audits(cls, household_id: str) -> List[CashAuditRequest]:
        docs = mongo.cash_audit_requests.find({"household_id": ObjectId(household_id)}).sort("created_at", -1)
        return [CashAuditRequest.from_document(doc) for doc in docs]

    # ==================== SUBSCRIPTIONS ====================

    @classmethod
    def get_subscription(cls, household_id: str, subscription_id: str) -> FinanceSubscription:
        oid = safe_object_id(subscription_id)
        doc = mongo.finance_subscriptions.find_one(
            {"_id": oid, "household_id": ObjectId(household_id)}
        ) if oid else None
        if not doc:
            raise NotFoundError("Subscription not found")
        return FinanceSubscription.from_document(doc)

    @classmethod
    def list_subscriptions(cls, household_id: str) -> List[FinanceSubscription]:
        docs = mongo.finance_subscriptions.find({"household_id": ObjectId(household_id)}).sort("created_at", 1)
        return [FinanceSubscription.from_document(doc) for doc in docs]

    @classmethod
    def create_subscription(cls, household_id: str, user_id: str, fields: Dict) -> FinanceSubscription:
        now = utcnow()
        subscription = FinanceSubscription(
            id=None,
            household_id=household_id,
            created_by=user_id,
            created_at=now,
            updated_at=now,
            **fields
        )
        subscription.next_run_at = next_subscription_run(subscription.recurrence, now)
        result = mongo.finance_subscriptions.insert_one(subscription.to_document())
        subscription.id = str(result.inserted_id)
        return subscription

    @classmethod
    def update_subscription(cls, household_id: str, subscription_id: str, changes: Dict) -> FinanceSubscription:
        subscription = cls.get_subscription(household_id, subscription_id)
        previous = subscription.recurrence
        for key, value in changes.items():
            setattr(subscription, key, value)

        now = utcnow()
        if subscription.recurrence != previous:
            subscription.next_run_at = next_subscription_run(subscription.recurrence, now)
        subscription.updated_at = now
        mongo.finance_subscriptions.update_one(
            {"_id": ObjectId(subscription.id)}, {"$set": subscription.to_document()}
        )
        return subscription

    @classmethod
    def delete_subscription(cls, household_id: str, subscription_id: str) -> None:
        subscription = cls.get_subscription(household_id, subscription_id)
        mongo.finance_subscriptions.delete_one({"_id": ObjectId(subscription.id)})

    @classmethod
    def book_due_subscriptions(cls, household_id: str, user_id: str, now: Optional[datetime] = None) -> List[FinanceEntry]:
        """
        Turn every missed subscription run into a finance entry.

        Each booking is dated on its run day; ``next_run_at`` then moves to
        the following cron firing, so a subscription that was missed twice
        is booked twice.
        """
        now = now or utcnow()
        booked = []
        for subscription in cls.list_subscriptions(household_id):
            run_at = subscription.next_run_at
            while run_at is not None and run_at <= now:
                booked.append(cls.create_entry(household_id, user_id, {
                    "description": subscription.name,
                    "category": subscription.category,
                    "amount": subscription.amount,
                    "paid_by_user_ids": list(subscription.paid_by_user_ids),
                    "beneficiary_user_ids": list(subscription.beneficiary_user_ids),
                    "entry_date": run_at.date(),
                }))
                run_at = next_subscription_run(subscription.recurrence, run_at)

            if run_at != subscription.next_run_at:
                mongo.finance_subscriptions.update_one(
                    {"_id": ObjectId(subscription.id)},
                    {"$set": {"next_run_at": run_at, "updated_at": now}}
                )

        if booked:
            logger.info("[Finances] Booked %s subscription entries for %s", len(booked), household_id)
        return booked
