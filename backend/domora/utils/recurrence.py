"""
Recurrence helpers for tasks, shopping items and finance subscriptions.

Tasks store a cron pattern of the form ``0 9 */N * *`` next to their
frequency; subscriptions store one of three fixed patterns.
"""
import re
from datetime import datetime
from typing import Optional

from dateutil.relativedelta import relativedelta
from dateutil.rrule import MO, MONTHLY, WEEKLY, rrule

from .enums import ShoppingRecurrenceUnit, SubscriptionRecurrence

_DAY_STEP = re.compile(r"^\*/(\d+)$")

SUBSCRIPTION_CRON = {
    SubscriptionRecurrence.WEEKLY: "0 9 * * 1",
    SubscriptionRecurrence.MONTHLY: "0 9 1 * *",
    SubscriptionRecurrence.QUARTERLY: "0 9 1 */3 *",
}


def frequency_to_cron(frequency_days: int) -> str:
    return f"0 9 */{max(1, int(frequency_days))} * *"


def cron_interval_days(cron_pattern: Optional[str], fallback_days: Optional[int] = 7) -> int:
    """Day step of a task cron pattern, or the fallback frequency."""
    parts = (cron_pattern or "").strip().split()
    if len(parts) >= 3:
        match = _DAY_STEP.match(parts[2])
        if match:
            return max(int(match.group(1)), 1)
    return max(int(fallback_days or 7), 1)


def subscription_cron(recurrence: SubscriptionRecurrence) -> str:
    return SUBSCRIPTION_CRON[SubscriptionRecurrence(recurrence)]


def recurrence_from_cron(cron_pattern: str) -> SubscriptionRecurrence:
    for recurrence, pattern in SUBSCRIPTION_CRON.items():
        if pattern == cron_pattern:
            return recurrence
    return SubscriptionRecurrence.MONTHLY


def next_subscription_run(recurrence: SubscriptionRecurrence, after: datetime) -> datetime:
    """First cron firing strictly after ``after`` (all firings are at 09:00)."""
    recurrence = SubscriptionRecurrence(recurrence)
    start = after.replace(second=0, microsecond=0)

    if recurrence == SubscriptionRecurrence.WEEKLY:
        rule = rrule(WEEKLY, byweekday=MO, byhour=9, byminute=0, bysecond=0, dtstart=start)
    elif recurrence == SubscriptionRecurrence.QUARTERLY:
        rule = rrule(MONTHLY, bymonth=(1, 4, 7, 10), bymonthday=1,
                     byhour=9, byminute=0, bysecond=0, dtstart=start)
    else:
        rule = rrule(MONTHLY, bymonthday=1, byhour=9, byminute=0, bysecond=0, dtstart=start)

    return rule.after(after, inc=False)


def shopping_interval(value: int, unit: ShoppingRecurrenceUnit) -> relativedelta:
    unit = ShoppingRecurrenceUnit(unit)
    if unit == ShoppingRecurrenceUnit.WEEKS:
        return relativedelta(days=value * 7)
    if unit == ShoppingRecurrenceUnit.MONTHS:
        return relativedelta(months=value)
    return relativedelta(days=value)


def shopping_item_due_again(item, now: datetime) -> bool:
    """A done recurring item goes back on the list once its interval passed."""
    if not item.done or item.done_at is None:
        return False
    if not item.recurrence_interval_value or not item.recurrence_interval_unit:
        return False
    interval = shopping_interval(item.recurrence_interval_value, item.recurrence_interval_unit)
    return item.done_at + interval <= now
