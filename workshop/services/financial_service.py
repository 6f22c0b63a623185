import calendar
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Iterable, Optional

import structlog
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from workshop.models.maintenance_order import MaintenanceOrder, OrderStatus
from workshop.services.cost_service import ZERO, order_total_cost, round_money, to_decimal

logger = structlog.get_logger(__name__)

GRANULARITIES = ("day", "month", "year")

# First populated field wins when placing an order on the timeline.
REFERENCE_DATE_FIELDS = ("delivery_date", "start_date", "opened_at")


@dataclass
class Bucket:
    date: date
    revenue: Decimal = ZERO
    costs: Decimal = ZERO
    order_count: int = 0

    @property
    def net_gain(self) -> Decimal:
        return self.revenue - self.costs

    def as_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "revenue": round_money(self.revenue),
            "costs": round_money(self.costs),
            "net_gain": round_money(self.net_gain),
            "order_count": self.order_count,
        }


@dataclass
class MonthlySummary:
    total_revenue: Decimal = ZERO
    total_costs: Decimal = ZERO
    order_count: int = 0

    @property
    def net_gain(self) -> Decimal:
        return self.total_revenue - self.total_costs

    def as_dict(self) -> dict:
        return {
            "total_revenue": round_money(self.total_revenue),
            "total_costs": round_money(self.total_costs),
            "net_gain": round_money(self.net_gain),
            "order_count": self.order_count,
        }


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value
    return datetime.combine(value, time.min)


def _parse_from_date(date_value: str | date | datetime | None) -> datetime | None:
    if not date_value:
        return None

    if isinstance(date_value, (date, datetime)):
        return _as_datetime(date_value)

    parsed = _as_datetime(datetime.fromisoformat(date_value))
    if "T" not in date_value:
        return datetime.combine(parsed.date(), time.min)
    return parsed


def _parse_to_date(date_value: str | date | datetime | None) -> datetime | None:
    """The upper bound always covers the whole calendar day it falls on."""
    if not date_value:
        return None

    if isinstance(date_value, str):
        date_value = datetime.fromisoformat(date_value)
    day = _as_datetime(date_value).date()
    return datetime.combine(day, time.max)


def reference_date(order) -> Optional[datetime]:
    for field in REFERENCE_DATE_FIELDS:
        value = getattr(order, field, None)
        if value is not None:
            return _as_datetime(value)
    return None


def truncate(moment: datetime, granularity: str) -> date:
    if granularity == "day":
        return moment.date()
    if granularity == "month":
        return date(moment.year, moment.month, 1)
    if granularity == "year":
        return date(moment.year, 1, 1)
    raise ValueError(f"Unsupported granularity: {granularity!r}")


def completed_only(status: str | None) -> bool:
    return bool(status) and status.strip().upper() == OrderStatus.COMPLETED.value


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    last_day = calendar.monthrange(year, month)[1]
    return (
        datetime.combine(date(year, month, 1), time.min),
        datetime.combine(date(year, month, last_day), time.max),
    )


# =====================================================
# PURE AGGREGATION
# =====================================================

def aggregate_orders(
    orders: Iterable,
    start: str | date | datetime,
    end: str | date | datetime,
    granularity: str,
    status: str | None = None,
) -> list[Bucket]:
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unsupported granularity: {granularity!r}")

    start_dt = _parse_from_date(start)
    end_dt = _parse_to_date(end)
    only_completed = completed_only(status)

    buckets: dict[date, Bucket] = {}

    for order in orders:
        if only_completed and order.status != OrderStatus.COMPLETED.value:
            continue

        ref = reference_date(order)
        if ref is None or ref < start_dt or ref > end_dt:
            continue

        key = truncate(ref, granularity)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = Bucket(date=key)

        bucket.revenue += to_decimal(order.value)
        bucket.costs += order_total_cost(order)
        bucket.order_count += 1

    return [buckets[key] for key in sorted(buckets)]


def summarize_month(orders: Iterable, year: int, month: int) -> MonthlySummary:
    start, end = month_bounds(year, month)
    summary = MonthlySummary()

    for bucket in aggregate_orders(orders, start, end, "month", OrderStatus.COMPLETED.value):
        summary.total_revenue += bucket.revenue
        summary.total_costs += bucket.costs
        summary.order_count += bucket.order_count

    return summary


# =====================================================
# DATABASE-BACKED REPORTS
# =====================================================

def _candidate_orders(
    db: Session,
    start_dt: datetime,
    end_dt: datetime,
    only_completed: bool,
) -> list[MaintenanceOrder]:
    start_day, end_day = start_dt.date(), end_dt.date()

    query = db.query(MaintenanceOrder).filter(
        or_(
            and_(
                MaintenanceOrder.delivery_date.isnot(None),
                MaintenanceOrder.delivery_date >= start_day,
                MaintenanceOrder.delivery_date <= end_day,
            ),
            and_(
                MaintenanceOrder.delivery_date.is_(None),
                MaintenanceOrder.start_date.isnot(None),
                MaintenanceOrder.start_date >= start_day,
                MaintenanceOrder.start_date <= end_day,
            ),
            and_(
                MaintenanceOrder.delivery_date.is_(None),
                MaintenanceOrder.start_date.is_(None),
                MaintenanceOrder.opened_at >= start_dt,
                MaintenanceOrder.opened_at <= end_dt,
            ),
        )
    )

    if only_completed:
        query = query.filter(MaintenanceOrder.status == OrderStatus.COMPLETED.value)

    return query.all()


def financial_report(
    db: Session,
    start_date: str | date | datetime,
    end_date: str | date | datetime,
    granularity: str,
    status: str | None = None,
) -> list[Bucket]:
    start_dt = _parse_from_date(start_date)
    end_dt = _parse_to_date(end_date)

    orders = _candidate_orders(db, start_dt, end_dt, completed_only(status))
    buckets = aggregate_orders(orders, start_dt, end_dt, granularity, status)

    logger.info(
        "financial_report",
        start=start_dt.isoformat(),
        end=end_dt.isoformat(),
        granularity=granularity,
        status=status,
        orders=len(orders),
        buckets=len(buckets),
    )
    return buckets


def monthly_summary(db: Session, year: int, month: int) -> MonthlySummary:
    start, end = month_bounds(year, month)
    orders = _candidate_orders(db, start, end, only_completed=True)
    return summarize_month(orders, year, month)
