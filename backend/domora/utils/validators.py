"""Request payload validators. All raise ValidationError."""
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from domora.core.errors import ValidationError
from domora.core.finance_math import unique_ids
from domora.utils.dates import parse_date


def require_keys(payload, *keys):
    missing = [k for k in keys if k not in (payload or {})]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    return True


def require_text(payload, key: str, max_length: int = 200, allow_empty: bool = False) -> str:
    value = str((payload or {}).get(key) or "").strip()
    if not value and not allow_empty:
        raise ValidationError(f"{key} is required")
    if len(value) > max_length:
        raise ValidationError(f"{key} must be at most {max_length} characters")
    return value


def parse_amount(value, allow_zero: bool = False) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Invalid amount: {value!r}")
    if not amount.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError("Amount must be greater than zero")
    return amount.quantize(Decimal("0.01"))


def parse_positive_int(value, key: str, default: Optional[int] = None) -> int:
    if value is None and default is not None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a whole number")
    if number < 1:
        raise ValidationError(f"{key} must be at least 1")
    return number


def parse_non_negative_int(value, key: str, default: int = 0) -> int:
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a whole number")
    if number < 0:
        raise ValidationError(f"{key} must not be negative")
    return number


def parse_factor(value, key: str, low: float = 0.0, high: float = 2.0) -> float:
    try:
        factor = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be a number")
    if factor < low or factor > high:
        raise ValidationError(f"{key} must be between {low} and {high}")
    return factor


def parse_member_ids(value, key: str, allowed: Iterable[str], required: bool = True) -> List[str]:
    """Deduplicated list of ids that all belong to the household."""
    if value is None:
        value = []
    if not isinstance(value, list):
        raise ValidationError(f"{key} must be a list")
    ids = unique_ids(str(v) for v in value)
    if required and not ids:
        raise ValidationError(f"{key} must contain at least one member")
    allowed = set(allowed)
    unknown = [member_id for member_id in ids if member_id not in allowed]
    if unknown:
        raise ValidationError(f"{key} contains non-members: {', '.join(unknown)}")
    return ids


def parse_tags(value) -> List[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError("tags must be a list")
    return unique_ids(str(tag).strip().lower() for tag in value if str(tag).strip())


def parse_date_field(value, key: str):
    try:
        return parse_date(value)
    except ValueError:
        raise ValidationError(f"{key} must be an ISO date (YYYY-MM-DD)")


def parse_choice(value, key: str, enum_cls, default=None):
    if value is None and default is not None:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(item.value for item in enum_cls)
        raise ValidationError(f"{key} must be one of: {choices}")


def parse_bool(value, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def parse_currency(value, default: str = "EUR") -> str:
    code = str(value or default).strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValidationError("currency must be a 3-letter code")
    return code
