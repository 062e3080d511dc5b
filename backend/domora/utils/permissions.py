"""Permission helpers."""
from functools import wraps

from flask import g
from flask_jwt_extended import get_jwt_identity, jwt_required


def member_required(owner: bool = False):
    """
    Route decorator for ``/households/<household_id>/...`` endpoints.

    Requires a valid JWT and a membership in the household; with
    ``owner=True`` the caller must also hold the owner role. The caller's
    membership is stored on ``g.member``.
    """
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            from domora.households.services import HouseholdService

            household_id = kwargs.get("household_id")
            user_id = get_jwt_identity()
            if owner:
                g.member = HouseholdService.require_owner(household_id, user_id)
            else:
                g.member = HouseholdService.require_member(household_id, user_id)
            g.user_id = user_id
            return fn(*args, **kwargs)
        return wrapper
    return decorator
