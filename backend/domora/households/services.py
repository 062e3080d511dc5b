"""
Household Service - Membership, roles and the activity feed.

Responsibilities:
- Create and join households (invite codes)
- Member settings: laziness factor, vacation mode, roles
- Leaving, removing and dissolving with the ownership/balance guards
- Stored pimper totals per member
- Household event feed
"""
import logging
import secrets
from typing import Dict, List, Optional

from bson import ObjectId

from domora.core import household_guards
from domora.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from domora.core.fairness import vacation_return_points
from domora.extensions import db as mongo
from domora.households.models import Household, HouseholdMember
from domora.utils.dates import isoformat, utcnow
from domora.utils.enums import HouseholdEventType, MemberRole
from domora.utils.ids import safe_object_id

logger = logging.getLogger(__name__)


def generate_invite_code():
    """Generate an 8-character invite code."""
    return secrets.token_urlsafe(6)[:8].upper()


class HouseholdService:
    """Service for households and their members."""

    @classmethod
    def _household_oid(cls, household_id: str) -> ObjectId:
        oid = safe_object_id(household_id)
        if oid is None:
            raise NotFoundError("Household not found")
        return oid

    # ==================== HOUSEHOLDS ====================

    @classmethod
    def create_household(cls, name: str, user_id: str, currency: str = "EUR") -> Household:
        invite_code = generate_invite_code()
        # Ensure unique invite code
        while mongo.households.find_one({"invite_code": invite_code}):
            invite_code = generate_invite_code()

        now = utcnow()
        doc = {
            "name": name,
            "currency": currency,
            "invite_code": invite_code,
            "task_laziness_enabled": False,
            "created_by": ObjectId(user_id),
            "created_at": now,
        }
        result = mongo.households.insert_one(doc)
        doc["_id"] = result.inserted_id

        mongo.household_members.insert_one(HouseholdMember(
            household_id=str(result.inserted_id),
            user_id=user_id,
            role=MemberRole.OWNER,
            created_at=now,
        ).to_document())

        logger.info("[Households] %s created household %s", user_id, result.inserted_id)
        return Household.from_document(doc)

    @classmethod
    def get_household(cls, household_id: str) -> Household:
        doc = mongo.households.find_one({"_id": cls._household_oid(household_id)})
        if not doc:
            raise NotFoundError("Household not found")
        return Household.from_document(doc)

    @classmethod
    def households_for_user(cls, user_id: str) -> List[Household]:
        memberships = mongo.household_members.find({"user_id": ObjectId(user_id)})
        ids = [m["household_id"] for m in memberships]
        if not ids:
            return []
        docs = mongo.households.find({"_id": {"$in": ids}}).sort("created_at", 1)
        return [Household.from_document(doc) for doc in docs]

    @classmethod
    def join_by_invite(cls, invite_code: str, user_id: str) -> Household:
        doc = mongo.households.find_one({"invite_code": invite_code.strip().upper()})
        if not doc:
            raise NotFoundError("Invalid invite code")

        household = Household.from_document(doc)
        if cls.get_member(household.id, user_id) is None:
            mongo.household_members.insert_one(HouseholdMember(
                household_id=household.id,
                user_id=user_id,
                created_at=utcnow(),
            ).to_document())
            logger.info("[Households] %s joined household %s", user_id, household.id)
        return household

    @classmethod
    def update_settings(cls, household_id: str, changes: Dict) -> Household:
        allowed = {k: v for k, v in changes.items() if k in ("name", "currency", "task_laziness_enabled")}
        if allowed:
            mongo.households.update_one({"_id": cls._household_oid(household_id)}, {"$set": allowed})
        return cls.get_household(household_id)

    @classmethod
    def dissolve_household(cls, household_id: str, user_id: str) -> None:
        member = cls.require_member(household_id, user_id)
        member_count = mongo.household_members.count_documents({"household_id": ObjectId(household_id)})
        household_guards.assert_can_dissolve_household(member.role.value, member_count)

        oid = ObjectId(household_id)
        for collection in (
            "household_members", "tasks", "task_completions", "shopping_items",
            "shopping_item_completions", "finance_entries", "finance_subscriptions",
            "cash_audit_requests", "household_events",
        ):
            mongo[collection].delete_many({"household_id": oid})
        mongo.households.delete_one({"_id": oid})
        logger.info("[Households] %s dissolved household %s", user_id, household_id)

    # ==================== MEMBERS ====================

    @classmethod
    def get_members(cls, household_id: str) -> List[HouseholdMember]:
        docs = list(mongo.household_members.find(
            {"household_id": cls._household_oid(household_id)}
        ).sort("created_at", 1))

        users = {
            u["_id"]: u for u in mongo.users.find(
                {"_id": {"$in": [d["user_id"] for d in docs]}},
                {"name": 1, "display_name": 1}
            )
        }
        members = []
        for doc in docs:
            user = users.get(doc["user_id"], {})
            members.append(HouseholdMember.from_document(
                doc, display_name=user.get("display_name") or user.get("name")
            ))
        return members

    @classmethod
    def members_by_id(cls, household_id: str) -> Dict[str, HouseholdMember]:
        return {m.user_id: m for m in cls.get_members(household_id)}

    @classmethod
    def member_ids(cls, household_id: str) -> List[str]:
        return [m.user_id for m in cls.get_members(household_id)]

    @classmethod
    def get_member(cls, household_id: str, user_id: str) -> Optional[HouseholdMember]:
        household_oid = safe_object_id(household_id)
        user_oid = safe_object_id(user_id)
        if household_oid is None or user_oid is None:
            return None
        doc = mongo.household_members.find_one({"household_id": household_oid, "user_id": user_oid})
        return HouseholdMember.from_document(doc) if doc else None

    @classmethod
    def require_member(cls, household_id: str, user_id: str) -> HouseholdMember:
        cls.get_household(household_id)
        member = cls.get_member(household_id, user_id)
        if member is None:
            raise PermissionDeniedError("Not a member of this household")
        return member

    @classmethod
    def require_owner(cls, household_id: str, user_id: str) -> HouseholdMember:
        member = cls.require_member(household_id, user_id)
        if not member.is_owner:
            raise PermissionDeniedError("Only household owners can do this")
        return member

    @classmethod
    def _owner_count(cls, household_id: str) -> int:
        return mongo.household_members.count_documents({
            "household_id": ObjectId(household_id),
            "role": MemberRole.OWNER.value
        })

    @classmethod
    def _update_member(cls, household_id: str, user_id: str, changes: Dict) -> None:
        mongo.household_members.update_one(
            {"household_id": ObjectId(household_id), "user_id": ObjectId(user_id)},
            {"$set": changes}
        )

    @classmethod
    def update_member_settings(
        cls,
        household_id: str,
        actor_id: str,
        target_id: str,
        laziness_factor: Optional[float] = None,
        vacation_mode: Optional[bool] = None
    ) -> HouseholdMember:
        """
        Change a member's laziness factor or vacation mode.

        Members may change their own settings; owners may change anyone's.
        Coming back from vacation lifts the member's stored total to the
        winsorized mean of the other present members.
        """
        actor = cls.require_member(household_id, actor_id)
        target = cls.get_member(household_id, target_id)
        if target is None:
            raise NotFoundError("Member not found")
        if actor_id != target_id and not actor.is_owner:
            raise PermissionDeniedError("Only owners can change other members' settings")

        changes = {}
        if laziness_factor is not None:
            changes["task_laziness_factor"] = laziness_factor

        if vacation_mode is not None and vacation_mode != target.vacation_mode:
            changes["vacation_mode"] = vacation_mode
            if not vacation_mode:
                others = [
                    m.total_pimpers for m in cls.get_members(household_id)
                    if m.user_id != target_id and not m.vacation_mode
                ]
                changes["total_pimpers"] = vacation_return_points(target.total_pimpers, others)

            cls.record_event(
                household_id,
                HouseholdEventType.VACATION_MODE_ENABLED if vacation_mode
                else HouseholdEventType.VACATION_MODE_DISABLED,
                actor_id=actor_id,
                subject_id=target_id,
            )

        if changes:
            cls._update_member(household_id, target_id, changes)
        return cls.get_member(household_id, target_id)

    @classmethod
    def set_member_role(cls, household_id: str, actor_id: str, target_id: str, role: MemberRole) -> HouseholdMember:
        cls.require_owner(household_id, actor_id)
        target = cls.get_member(household_id, target_id)
        if target is None:
            raise NotFoundError("Member not found")

        if role == MemberRole.MEMBER and target.is_owner:
            household_guards.assert_can_demote_owner(cls._owner_count(household_id))

        if target.role != role:
            cls._update_member(household_id, target_id, {"role": role.value})
            cls.record_event(
                household_id,
                HouseholdEventType.ROLE_CHANGED,
                actor_id=actor_id,
                subject_id=target_id,
                payload={"previous_role": target.role.value, "next_role": role.value},
            )
        return cls.get_member(household_id, target_id)

    @classmethod
    def remove_member(cls, household_id: str, actor_id: str, target_id: str) -> None:
        cls.require_owner(household_id, actor_id)
        target = cls.get_member(household_id, target_id)
        if target is None:
            raise NotFoundError("Member not found")
        if target.is_owner:
            household_guards.assert_can_remove_owner(cls._owner_count(household_id))
        cls._delete_membership(household_id, target_id)

    @classmethod
    def leave_household(cls, household_id: str, user_id: str) -> None:
        from domora.finances.services import FinanceService

        member = cls.require_member(household_id, user_id)
        balances = FinanceService.current_balances(household_id)
        household_guards.assert_can_leave_with_balance(balances.get(user_id, 0))

        if member.is_owner:
            household_guards.assert_can_leave_as_owner(cls._owner_count(household_id))
        cls._delete_membership(household_id, user_id)

    @classmethod
    def _delete_membership(cls, household_id: str, user_id: str) -> None:
        from domora.tasks.services import TaskService

        mongo.household_members.delete_one(
            {"household_id": ObjectId(household_id), "user_id": ObjectId(user_id)}
        )
        TaskService.remove_member_from_rotations(household_id, user_id)
        logger.info("[Households] %s left household %s", user_id, household_id)

    # ==================== PIMPERS ====================

    @classmethod
    def add_pimpers(cls, household_id: str, user_id: str, amount: float) -> None:
        mongo.household_members.update_one(
            {"household_id": ObjectId(household_id), "user_id": ObjectId(user_id)},
            {"$inc": {"total_pimpers": round(float(amount), 2)}}
        )

    @classmethod
    def reset_pimpers(cls, household_id: str, actor_id: str) -> int:
        cls.require_owner(household_id, actor_id)
        result = mongo.household_members.update_many(
            {"household_id": ObjectId(household_id)},
            {"$set": {"total_pimpers": 0.0}}
        )
        if result.matched_count:
            cls.record_event(
                household_id,
                HouseholdEventType.PIMPERS_RESET,
                actor_id=actor_id,
                payload={"total_reset": result.matched_count},
            )
        return result.matched_count

    # ==================== EVENTS ====================

    @classmethod
    def record_event(
        cls,
        household_id: str,
        event_type: HouseholdEventType,
        actor_id: Optional[str] = None,
        subject_id: Optional[str] = None,
        payload: Optional[Dict] = None
    ) -> str:
        event = {
            "household_id": ObjectId(household_id),
            "event_type": HouseholdEventType(event_type).value,
            "actor_user_id": ObjectId(actor_id) if actor_id else None,
            "subject_user_id": ObjectId(subject_id) if subject_id else None,
            "payload": payload or {},
            "created_at": utcnow(),
        }
        result = mongo.household_events.insert_one(event)
        return str(result.inserted_id)

    @classmethod
    def get_events(cls, household_id: str, limit: int = 50) -> List[Dict]:
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        events = mongo.household_events.find(
            {"household_id": ObjectId(household_id)}
        ).sort("created_at", -1).limit(limit)

        result = []
        for e in events:
            result.append({
                "id": str(e["_id"]),
                "household_id": str(e["household_id"]),
                "event_type": e["event_type"],
                "actor_user_id": str(e["actor_user_id"]) if e.get("actor_user_id") else None,
                "subject_user_id": str(e["subject_user_id"]) if e.get("subject_user_id") else None,
                "payload": e.get("payload", {}),
                "created_at": isoformat(e["created_at"]),
            })
        return result
