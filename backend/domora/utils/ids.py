"""ObjectId helpers shared by services and routes."""
from typing import Iterable, List, Optional

from bson import ObjectId, errors


def safe_object_id(value) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(value)
    except (errors.InvalidId, TypeError):
        return None


def oid_list(values: Iterable) -> List[ObjectId]:
    return [ObjectId(value) for value in values or []]


def str_list(values: Iterable) -> List[str]:
    return [str(value) for value in values or []]


def str_or_none(value) -> Optional[str]:
    return str(value) if value is not None else None
