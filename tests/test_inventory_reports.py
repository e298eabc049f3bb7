from datetime import date
from decimal import Decimal

import pytest

from insights.core.config import Settings
from insights.schemas.reports import ReportQuery
from insights.services.classification import (
    Classifier,
    ExpirationUrgency,
    MarginHealth,
    StockStatus,
)
from insights.services.inventory_service import build_inventory_report
from insights.services.snapshot import build_snapshot

AS_OF = date(2024, 1, 10)


@pytest.mark.parametrize(
    "current,minimum,expected",
    [
        (0, 5, StockStatus.OUT_OF_STOCK),
        (2, 5, StockStatus.CRITICAL),
        (4, 5, StockStatus.LOW),
        (5, 5, StockStatus.LOW),
        (6, 5, StockStatus.NORMAL),
        (3, 0, StockStatus.NORMAL),
    ],
)
def test_relative_stock_rule(current, minimum, expected):
    assert Classifier().stock_status(current, minimum) == expected


def test_flat_stock_rule_uses_fixed_thresholds():
    classifier = Classifier(stock_rule="flat")
    assert classifier.stock_status(0, 100) == StockStatus.OUT_OF_STOCK
    assert classifier.stock_status(3, 100) == StockStatus.CRITICAL
    assert classifier.stock_status(9, 100) == StockStatus.LOW
    assert classifier.stock_status(10, 100) == StockStatus.NORMAL


def test_expiration_and_margin_tiers():
    classifier = Classifier()
    assert classifier.expiration_urgency(-1) == ExpirationUrgency.EXPIRED
    assert classifier.expiration_urgency(0) == ExpirationUrgency.EXPIRED
    assert classifier.expiration_urgency(7) == ExpirationUrgency.CRITICAL
    assert classifier.expiration_urgency(30) == ExpirationUrgency.WARNING
    assert classifier.expiration_urgency(31) == ExpirationUrgency.NORMAL

    assert classifier.margin_health(Decimal("30")) == MarginHealth.GOOD
    assert classifier.margin_health(15.0) == MarginHealth.WARNING
    assert classifier.margin_health(14.99) == MarginHealth.DANGER


def test_inventory_report_totals_and_alerts(snapshot, classifier):
    report = build_inventory_report(snapshot, ReportQuery(), as_of=AS_OF, classifier=classifier)

    assert report.as_of_date == AS_OF
    assert report.total_products == 3
    assert report.total_stock == 56
    assert report.total_value == 114.0
    assert report.stock_alerts.model_dump() == {
        "low_stock": 1,
        "critical": 1,
        "out_of_stock": 1,
        "expiring_soon": 1,
        "expired": 1,
    }
    assert [(row.product_name, row.alert_level) for row in report.low_stock_products] == [
        ("Trufa", "OUT_OF_STOCK"),
        ("Bombon", "CRITICAL"),
        ("Cacao Drink", "LOW"),
    ]


def test_expiring_batches_sorted_by_urgency(snapshot, classifier):
    report = build_inventory_report(snapshot, ReportQuery(), as_of=AS_OF, classifier=classifier)

    assert [(row.batch_code, row.urgency, row.days_until_expiration) for row in report.expiring_batches] == [
        ("B3", "expired", -5),
        ("B2", "critical", 5),
    ]
    assert report.expiring_batches[1].store_name == "Bodega"


def test_depleted_or_inactive_batches_are_not_expiry_alerts(rows, classifier):
    rows["batches"][1]["currentQuantity"] = 0
    rows["batches"][2]["isActive"] = False
    report = build_inventory_report(build_snapshot(rows), ReportQuery(), as_of=AS_OF, classifier=classifier)
    assert report.expiring_batches == []


def test_inventory_groups_by_store_and_category(snapshot, classifier):
    report = build_inventory_report(snapshot, ReportQuery(), as_of=AS_OF, classifier=classifier)

    by_store = {row.group_name: row for row in report.inventory_by_store}
    assert by_store["Centro"].total_stock == 2
    assert by_store["Centro"].total_value == 2.0
    assert by_store["Movil Norte"].product_count == 2
    assert by_store["Movil Norte"].total_value == 112.0

    by_category = {row.group_name: row for row in report.inventory_by_category}
    assert by_category["Chocolates"].total_stock == 52
    assert by_category["Bebidas"].total_value == 12.0


def test_store_filter_limits_stock_and_batches(snapshot, classifier):
    report = build_inventory_report(
        snapshot, ReportQuery(store_id=1), as_of=AS_OF, classifier=classifier
    )
    assert report.total_stock == 2
    assert report.stock_alerts.out_of_stock == 1
    assert report.expiring_batches == []


def test_classifier_reads_settings():
    classifier = Classifier.from_settings(
        Settings(stock_alert_rule="flat", low_stock_flat_threshold=20, critical_stock_flat_threshold=5)
    )
    assert classifier.stock_status(5, 0) == StockStatus.CRITICAL
    assert classifier.stock_status(19, 0) == StockStatus.LOW
