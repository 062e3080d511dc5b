"""Rules that keep a household in a valid shape when membership changes."""
from decimal import Decimal

from .errors import HouseholdGuardError

OWNER_MUST_REMAIN_ERROR = "At least one owner has to stay in the household"
LAST_OWNER_CANNOT_BE_REMOVED_ERROR = "The last owner cannot be removed"
LAST_OWNER_CANNOT_LEAVE_ERROR = "You are the last owner. Make someone else an owner first"
DISSOLVE_OWNER_ONLY_ERROR = "Only owners can dissolve the household"
DISSOLVE_LAST_MEMBER_ONLY_ERROR = "The household can only be dissolved by its last member"
LEAVE_BALANCE_NOT_ZERO_ERROR = "You can only leave once your balance is settled"

BALANCE_TOLERANCE = Decimal("0.004")


def assert_can_demote_owner(owner_count: int) -> None:
    if owner_count <= 1:
        raise HouseholdGuardError(OWNER_MUST_REMAIN_ERROR)


def assert_can_remove_owner(owner_count: int) -> None:
    if owner_count <= 1:
        raise HouseholdGuardError(LAST_OWNER_CANNOT_BE_REMOVED_ERROR)


def assert_can_leave_as_owner(owner_count: int) -> None:
    if owner_count <= 1:
        raise HouseholdGuardError(LAST_OWNER_CANNOT_LEAVE_ERROR)


def assert_can_dissolve_household(role: str, member_count: int) -> None:
    if role != "owner":
        raise HouseholdGuardError(DISSOLVE_OWNER_ONLY_ERROR)
    if member_count != 1:
        raise HouseholdGuardError(DISSOLVE_LAST_MEMBER_ONLY_ERROR)


def assert_can_leave_with_balance(balance) -> None:
    if abs(Decimal(str(balance))) > BALANCE_TOLERANCE:
        raise HouseholdGuardError(LEAVE_BALANCE_NOT_ZERO_ERROR)
