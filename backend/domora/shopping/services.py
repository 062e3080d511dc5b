"""Shopping list service."""
import logging
from typing import Dict, List

from bson import ObjectId

from domora.core.errors import NotFoundError
from domora.extensions import db as mongo
from domora.households.services import HouseholdService
from domora.shopping.models import ShoppingItem
from domora.utils.dates import isoformat, utcnow
from domora.utils.enums import HouseholdEventType
from domora.utils.ids import safe_object_id
from domora.utils.recurrence import shopping_item_due_again

logger = logging.getLogger(__name__)


class ShoppingService:

    @classmethod
    def get_item(cls, household_id: str, item_id: str) -> ShoppingItem:
        oid = safe_object_id(item_id)
        doc = mongo.shopping_items.find_one({"_id": oid, "household_id": ObjectId(household_id)}) if oid else None
        if not doc:
            raise NotFoundError("Shopping item not found")
        return ShoppingItem.from_document(doc)

    @classmethod
    def list_items(cls, household_id: str) -> List[ShoppingItem]:
        """All items; recurring items whose interval has passed go back on the list."""
        now = utcnow()
        docs = mongo.shopping_items.find({"household_id": ObjectId(household_id)}).sort("created_at", -1)

        items = []
        for doc in docs:
            item = ShoppingItem.from_document(doc)
            if shopping_item_due_again(item, now):
                mongo.shopping_items.update_one(
                    {"_id": doc["_id"]},
                    {"$set": {"done": False, "done_at": None, "done_by": None}}
                )
                item.done, item.done_at, item.done_by = False, None, None
            items.append(item)

        # Open items first
        items.sort(key=lambda i: i.done)
        return items

    @classmethod
    def add_item(cls, household_id: str, user_id: str, fields: Dict) -> ShoppingItem:
        item = ShoppingItem(
            id=None,
            household_id=household_id,
            created_by=user_id,
            created_at=utcnow(),
            **fields
        )
        result = mongo.shopping_items.insert_one(item.to_document())
        item.id = str(result.inserted_id)
        return item

    @classmethod
    def update_item(cls, household_id: str, item_id: str, changes: Dict) -> ShoppingItem:
        item = cls.get_item(household_id, item_id)
        for key, value in changes.items():
            setattr(item, key, value)
        mongo.shopping_items.update_one({"_id": ObjectId(item.id)}, {"$set": item.to_document()})
        return item

    @classmethod
    def set_done(cls, household_id: str, item_id: str, user_id: str, done: bool) -> ShoppingItem:
        """Tick an item off (writing a completion snapshot) or put it back."""
        item = cls.get_item(household_id, item_id)
        if item.done == done:
            return item

        now = utcnow()
        if done:
            item.done, item.done_at, item.done_by = True, now, user_id
            mongo.shopping_item_completions.insert_one({
                "household_id": ObjectId(household_id),
                "shopping_item_id": ObjectId(item.id),
                "title_snapshot": item.title,
                "tags_snapshot": list(item.tags),
                "completed_by": ObjectId(user_id),
                "completed_at": now,
            })
            HouseholdService.record_event(
                household_id,
                HouseholdEventType.SHOPPING_COMPLETED,
                actor_id=user_id,
                payload={"item_id": item.id, "title": item.title},
            )
            logger.info("[Shopping] %s completed %s", user_id, item.id)
        else:
            item.done, item.done_at, item.done_by = False, None, None

        mongo.shopping_items.update_one(
            {"_id": ObjectId(item.id)},
            {"$set": {"done": item.done, "done_at": item.done_at,
                      "done_by": ObjectId(item.done_by) if item.done_by else None}}
        )
        return item

    @classmethod
    def delete_item(cls, household_id: str, item_id: str) -> None:
        item = cls.get_item(household_id, item_id)
        mongo.shopping_items.delete_one({"_id": ObjectId(item.id)})

    @classmethod
    def get_completions(cls, household_id: str, limit: int = 100) -> List[Dict]:
        docs = mongo.shopping_item_completions.find(
            {"household_id": ObjectId(household_id)}
        ).sort("completed_at", -1).limit(limit)

        return [{
            "id": str(doc["_id"]),
            "shopping_item_id": str(doc["shopping_item_id"]),
            "title_snapshot": doc.get("title_snapshot", ""),
            "tags_snapshot": doc.get("tags_snapshot", []),
            "completed_by": str(doc["completed_by"]),
            "completed_at": isoformat(doc["completed_at"]),
        } for doc in docs]
