from datetime import date

import pytest

from insights.core.errors import InvalidQuery
from insights.schemas.reports import ReportQuery
from insights.services.dashboard_service import (
    build_executive_dashboard,
    inventory_history,
    resolve_window,
)
from insights.services.quality import QualityLog
from insights.services.snapshot import build_snapshot

WINDOW = ReportQuery(start_date=date(2024, 1, 1), end_date=date(2024, 1, 5))
AS_OF = date(2024, 1, 10)


def _dashboard(snapshot, classifier, query=WINDOW):
    return build_executive_dashboard(
        snapshot, query, as_of=AS_OF, classifier=classifier, default_days=30
    )


def test_window_defaults_to_trailing_days_ending_as_of():
    start, end = resolve_window(ReportQuery(), as_of=AS_OF, default_days=30)
    assert end == AS_OF
    assert start == date(2023, 12, 11)

    with pytest.raises(InvalidQuery):
        resolve_window(ReportQuery(start_date=date(2024, 2, 1)), as_of=AS_OF, default_days=30)


def test_summary_and_kpis(snapshot, classifier):
    dashboard = _dashboard(snapshot, classifier)

    assert dashboard.summary.total_sales == 3
    assert dashboard.summary.total_revenue == 210.0
    assert dashboard.summary.total_products == 3
    assert dashboard.summary.active_stores == 3
    assert dashboard.summary.period == "2024-01-01 - 2024-01-05"
    assert dashboard.kpis.average_ticket == 70.0
    assert dashboard.kpis.profit_margin == pytest.approx(71.43)
    assert dashboard.kpis.margin_health == "good"


def test_trends_cover_every_day_of_the_window(snapshot, classifier):
    trends = _dashboard(snapshot, classifier).trends

    days = [point.date for point in trends.sales_trend]
    assert days == [date(2024, 1, d) for d in range(1, 6)]
    assert [point.value for point in trends.sales_trend] == [0, 1, 1, 0, 1]
    assert [point.value for point in trends.revenue_trend] == [0, 100, 50, 0, 60]
    assert [point.date for point in trends.inventory_trend] == days


def test_inventory_history_rolls_back_later_movements(snapshot):
    history = inventory_history(
        snapshot,
        WINDOW,
        start=date(2024, 1, 1),
        end=date(2024, 1, 5),
        quality=QualityLog(),
    )
    assert [units for _, units, _ in history] == [86, 56, 56, 56, 56]
    assert [float(value) for _, _, value in history] == [174.0, 114.0, 114.0, 114.0, 114.0]


def test_inventory_turnover_is_cogs_over_average_inventory_value(snapshot, classifier):
    # COGS 60 over an average daily value of 126
    assert _dashboard(snapshot, classifier).kpis.inventory_turnover == 0.48


def test_turnover_is_zero_without_inventory(rows, classifier):
    rows["stock"] = []
    rows["movements"] = []
    dashboard = _dashboard(build_snapshot(rows), classifier)
    assert dashboard.kpis.inventory_turnover == 0.0


def test_kpis_without_a_source_are_listed_as_unavailable(snapshot, classifier):
    kpis = _dashboard(snapshot, classifier).kpis
    assert kpis.conversion_rate is None
    assert kpis.customer_retention is None
    assert kpis.unavailable_kpis == ["conversion_rate", "customer_retention"]


def test_upstream_kpis_and_alerts_pass_through(rows, classifier):
    snapshot = build_snapshot(
        rows,
        upstream_kpis={"conversion_rate": 12.5, "pending_receipts_count": 4},
        system_alerts=["Backup pending"],
    )
    dashboard = _dashboard(snapshot, classifier)

    assert dashboard.kpis.conversion_rate == 12.5
    assert dashboard.kpis.unavailable_kpis == ["customer_retention"]
    assert dashboard.alerts.pending_receipts_count == 4
    assert dashboard.alerts.system_alerts == ["Backup pending"]


def test_alert_counts(snapshot, classifier):
    alerts = _dashboard(snapshot, classifier).alerts
    assert alerts.low_stock_count == 3
    assert alerts.expiring_batches_count == 1
    assert alerts.pending_receipts_count is None
    assert alerts.system_alerts == []


def test_store_scoped_dashboard(snapshot, classifier):
    dashboard = _dashboard(
        snapshot, classifier, WINDOW.model_copy(update={"store_id": 2})
    )
    assert dashboard.summary.total_sales == 1
    assert dashboard.summary.active_stores == 1
    # the transfer into store 2 on Jan 3 is rolled back for earlier days
    assert [point.value for point in dashboard.trends.inventory_trend] == [34, 34, 54, 54, 54]
