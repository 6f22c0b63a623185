import calendar
from datetime import date, datetime
from typing import Optional, TypeVar

from workshop.models.maintenance_order import (
    REMINDER_STEP_4_MONTHS,
    REMINDER_STEP_6_MONTHS,
)

D = TypeVar("D", date, datetime)

NEXT_MAINTENANCE_MONTHS = 4

REMINDER_OFFSETS = {
    REMINDER_STEP_4_MONTHS: 4,
    REMINDER_STEP_6_MONTHS: 6,
}


def add_months(moment: D, months: int) -> D:
    """Calendar-aware month addition; clamps to the last day of the target month."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def derive_next_maintenance_date(delivery_date: date) -> date:
    if isinstance(delivery_date, datetime):
        delivery_date = delivery_date.date()
    return add_months(delivery_date, NEXT_MAINTENANCE_MONTHS)


def resolve_next_maintenance_date(
    delivery_date: date,
    override: Optional[date] = None,
) -> date:
    if override is not None:
        return override
    return derive_next_maintenance_date(delivery_date)


def advance_reminder_step(current_step: Optional[str]) -> Optional[str]:
    if current_step == REMINDER_STEP_4_MONTHS:
        return REMINDER_STEP_6_MONTHS
    return None


def reminder_anchor(delivery_date: Optional[date], opened_at: datetime) -> datetime:
    if delivery_date is not None:
        return datetime.combine(delivery_date, datetime.min.time())
    return opened_at


def reminder_due_at(anchor: datetime, step: Optional[str]) -> Optional[datetime]:
    months = REMINDER_OFFSETS.get(step)
    if months is None:
        return None
    return add_months(anchor, months)
