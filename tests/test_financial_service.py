from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from workshop.models.maintenance_order import MaintenanceOrder
from workshop.services.financial_service import (
    aggregate_orders,
    financial_report,
    month_bounds,
    monthly_summary,
    reference_date,
    summarize_month,
)


def order(value="100", status="OPEN", costs=None, internal_cost=None,
          delivery_date=None, start_date=None, opened_at=datetime(2024, 1, 1, 8, 0)):
    return MaintenanceOrder(
        value=Decimal(value),
        status=status,
        costs=costs or [],
        internal_cost=internal_cost,
        delivery_date=delivery_date,
        start_date=start_date,
        opened_at=opened_at,
    )


class TestReferenceDate:

    def test_delivery_date_wins(self):
        o = order(delivery_date=date(2024, 3, 5), start_date=date(2024, 2, 1))
        assert reference_date(o) == datetime(2024, 3, 5)

    def test_falls_back_to_start_date(self):
        o = order(start_date=date(2024, 2, 1), opened_at=datetime(2024, 1, 20, 10, 0))
        assert reference_date(o) == datetime(2024, 2, 1)

    def test_falls_back_to_opening_timestamp(self):
        o = order(opened_at=datetime(2024, 1, 20, 10, 0))
        assert reference_date(o) == datetime(2024, 1, 20, 10, 0)


class TestAggregateOrders:

    def test_empty_input_gives_no_buckets(self):
        for granularity in ("day", "month", "year"):
            assert aggregate_orders([], "2024-01-01", "2024-12-31", granularity) == []

    def test_status_filter_scenario(self):
        a = order(value="100", status="COMPLETED", delivery_date=date(2024, 3, 5))
        b = order(value="200", status="OPEN", start_date=date(2024, 3, 20))

        completed = aggregate_orders([a, b], "2024-03-01", "2024-03-31", "month", "COMPLETED")
        assert [bucket.as_dict() for bucket in completed] == [
            {"date": "2024-03-01", "revenue": 100.0, "costs": 0.0, "net_gain": 100.0, "order_count": 1}
        ]

        everything = aggregate_orders([a, b], "2024-03-01", "2024-03-31", "month")
        assert len(everything) == 1
        assert everything[0].revenue == Decimal("300")

    def test_status_filter_is_case_insensitive(self):
        a = order(status="COMPLETED", delivery_date=date(2024, 3, 5))
        b = order(status="CANCELLED", delivery_date=date(2024, 3, 6))

        buckets = aggregate_orders([a, b], "2024-03-01", "2024-03-31", "month", "completed")

        assert buckets[0].order_count == 1

    def test_non_completed_filter_keeps_all_statuses(self):
        orders = [
            order(status=status, delivery_date=date(2024, 3, 5))
            for status in ("OPEN", "COMPLETED", "CANCELLED")
        ]

        buckets = aggregate_orders(orders, "2024-03-01", "2024-03-31", "month", "OPEN")

        assert buckets[0].order_count == 3

    def test_itemized_costs_reduce_net_gain(self):
        o = order(
            value="100",
            delivery_date=date(2024, 3, 5),
            costs=[{"name": "parte", "value": "30"}, {"name": "mão de obra", "value": "20"}],
        )

        (bucket,) = aggregate_orders([o], "2024-03-01", "2024-03-31", "month")

        assert bucket.costs == Decimal("50")
        assert bucket.net_gain == Decimal("50")

    def test_legacy_flat_cost_is_counted(self):
        o = order(value="100", delivery_date=date(2024, 3, 5), internal_cost=Decimal("35"))

        (bucket,) = aggregate_orders([o], "2024-03-01", "2024-03-31", "month")

        assert bucket.costs == Decimal("35")

    def test_buckets_are_ascending_and_gaps_are_omitted(self):
        orders = [
            order(delivery_date=date(2024, 5, 2)),
            order(delivery_date=date(2024, 1, 9)),
            order(delivery_date=date(2024, 5, 30)),
        ]

        buckets = aggregate_orders(orders, "2024-01-01", "2024-12-31", "month")

        assert [b.date for b in buckets] == [date(2024, 1, 1), date(2024, 5, 1)]
        assert [b.order_count for b in buckets] == [1, 2]

    def test_interval_is_closed_on_both_ends(self):
        first = order(opened_at=datetime(2024, 3, 1, 0, 0))
        last = order(opened_at=datetime(2024, 3, 31, 23, 59, 59))
        outside = order(opened_at=datetime(2024, 4, 1, 0, 0))

        buckets = aggregate_orders([first, last, outside], "2024-03-01", "2024-03-31", "day")

        assert [b.date for b in buckets] == [date(2024, 3, 1), date(2024, 3, 31)]

    def test_end_is_normalised_to_end_of_day(self):
        late = order(opened_at=datetime(2024, 3, 31, 22, 0))

        buckets = aggregate_orders([late], "2024-03-01", "2024-03-31T08:00:00", "day")

        assert len(buckets) == 1

    def test_aware_bounds_are_compared_in_utc(self):
        inside = order(opened_at=datetime(2024, 3, 1, 2, 0))
        before = order(opened_at=datetime(2024, 2, 29, 23, 0))
        next_utc_day = order(opened_at=datetime(2024, 4, 1, 12, 0))

        buckets = aggregate_orders(
            [inside, before, next_utc_day],
            datetime(2024, 3, 1, tzinfo=timezone.utc),
            datetime(2024, 3, 31, 21, 0, tzinfo=timezone(timedelta(hours=-3))),
            "day",
        )

        assert [b.date for b in buckets] == [date(2024, 3, 1), date(2024, 4, 1)]

    def test_same_day_orders_merge_regardless_of_time(self):
        orders = [
            order(value="10", opened_at=datetime(2024, 3, 7, 8, 0)),
            order(value="15", opened_at=datetime(2024, 3, 7, 19, 30)),
        ]

        (bucket,) = aggregate_orders(orders, "2024-03-01", "2024-03-31", "day")

        assert bucket.revenue == Decimal("25")

    def test_partition_and_granularity_monotonicity(self):
        orders = [
            order(value="120.50", delivery_date=date(2024, 1, 3), costs=[{"name": "x", "value": "20.25"}]),
            order(value="80", delivery_date=date(2024, 1, 3)),
            order(value="99.99", start_date=date(2024, 2, 14)),
            order(value="10", opened_at=datetime(2024, 7, 1, 12, 0)),
            order(value="55", delivery_date=date(2025, 1, 1)),
        ]
        totals = {}
        counts = {}
        for granularity in ("day", "month", "year"):
            buckets = aggregate_orders(orders, "2024-01-01", "2024-12-31", granularity)
            totals[granularity] = sum((b.revenue for b in buckets), Decimal("0"))
            counts[granularity] = len(buckets)

        assert set(totals.values()) == {Decimal("310.49")}
        assert counts["day"] >= counts["month"] >= counts["year"]

    def test_year_granularity(self):
        orders = [order(delivery_date=date(2023, 12, 31)), order(delivery_date=date(2024, 1, 1))]

        buckets = aggregate_orders(orders, "2023-01-01", "2024-12-31", "year")

        assert [b.date for b in buckets] == [date(2023, 1, 1), date(2024, 1, 1)]

    def test_unknown_granularity(self):
        with pytest.raises(ValueError):
            aggregate_orders([], "2024-01-01", "2024-01-31", "week")


class TestMonthlySummary:

    def test_month_bounds_follow_month_length(self):
        start, end = month_bounds(2024, 2)
        assert start == datetime(2024, 2, 1, 0, 0)
        assert end.date() == date(2024, 2, 29)
        assert (end.hour, end.minute, end.second) == (23, 59, 59)

    def test_empty_month_is_all_zeros(self):
        assert summarize_month([], 2024, 3).as_dict() == {
            "total_revenue": 0.0,
            "total_costs": 0.0,
            "net_gain": 0.0,
            "order_count": 0,
        }

    def test_only_completed_orders_count(self):
        orders = [
            order(value="100", status="COMPLETED", delivery_date=date(2024, 3, 5),
                  costs=[{"name": "parte", "value": "40"}]),
            order(value="70", status="COMPLETED", delivery_date=date(2024, 3, 28),
                  internal_cost=Decimal("10")),
            order(value="500", status="OPEN", start_date=date(2024, 3, 10)),
            order(value="300", status="COMPLETED", delivery_date=date(2024, 4, 1)),
        ]

        summary = summarize_month(orders, 2024, 3)

        assert summary.total_revenue == Decimal("170")
        assert summary.total_costs == Decimal("50")
        assert summary.net_gain == Decimal("120")
        assert summary.order_count == 2

    def test_anchored_on_reference_date_not_opening(self):
        # Opened in February, delivered in March: counts for March only.
        o = order(status="COMPLETED", opened_at=datetime(2024, 2, 20, 9, 0), delivery_date=date(2024, 3, 2))

        assert summarize_month([o], 2024, 2).order_count == 0
        assert summarize_month([o], 2024, 3).order_count == 1

    def test_matches_single_month_bucket(self):
        orders = [
            order(value="40", status="COMPLETED", delivery_date=date(2024, 3, 5)),
            order(value="60", status="COMPLETED", start_date=date(2024, 3, 9)),
        ]

        (bucket,) = aggregate_orders(orders, "2024-03-01", "2024-03-31", "month", "COMPLETED")
        summary = summarize_month(orders, 2024, 3)

        assert summary.total_revenue == bucket.revenue
        assert summary.order_count == bucket.order_count


class TestDatabaseReports:

    def test_financial_report_reads_persisted_orders(self, db_session, make_order):
        make_order(value=Decimal("100"), status="COMPLETED", delivery_date=date(2024, 3, 5),
                   costs=[{"name": "parte", "value": "30"}])
        make_order(value=Decimal("200"), start_date=date(2024, 3, 20))
        make_order(value=Decimal("999"), opened_at=datetime(2024, 4, 2, 8, 0))

        completed = financial_report(db_session, "2024-03-01", "2024-03-31", "month", "COMPLETED")
        everything = financial_report(db_session, date(2024, 3, 1), date(2024, 3, 31), "month")

        assert [b.as_dict() for b in completed] == [
            {"date": "2024-03-01", "revenue": 100.0, "costs": 30.0, "net_gain": 70.0, "order_count": 1}
        ]
        assert everything[0].revenue == Decimal("300")

    def test_delivery_outside_range_excludes_order_opened_inside(self, db_session, make_order):
        make_order(opened_at=datetime(2024, 3, 10, 8, 0), delivery_date=date(2024, 4, 2))

        assert financial_report(db_session, "2024-03-01", "2024-03-31", "day") == []

    def test_monthly_summary_from_database(self, db_session, make_order):
        make_order(value=Decimal("150"), status="COMPLETED", delivery_date=date(2024, 5, 31),
                   internal_cost=Decimal("50"))
        make_order(value=Decimal("80"), status="CANCELLED", delivery_date=date(2024, 5, 2))

        summary = monthly_summary(db_session, 2024, 5)

        assert summary.as_dict() == {
            "total_revenue": 150.0,
            "total_costs": 50.0,
            "net_gain": 100.0,
            "order_count": 1,
        }

    def test_monthly_summary_with_no_orders(self, db_session, workshop_client):
        assert monthly_summary(db_session, 2024, 1).order_count == 0
