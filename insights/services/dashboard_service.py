from datetime import date, timedelta
from decimal import Decimal

from insights.core.errors import InvalidQuery
from insights.core.money import ZERO_MONEY, safe_div, to_money
from insights.models import InventoryMovement, MovementType
from insights.schemas.reports import (
    DashboardAlertsOut,
    DashboardKpisOut,
    DashboardSummaryOut,
    DashboardTrendsOut,
    ExecutiveDashboardOut,
    ReportQuery,
    TrendPointOut,
)
from insights.services.aggregation import (
    date_span,
    fill_days,
    inventory_value,
    overall_profit,
    sales_by_day,
    sales_totals,
)
from insights.services.classification import Classifier, ExpirationUrgency, StockStatus
from insights.services.filters import as_day, select_movements, select_sales, select_stock
from insights.services.inventory_service import classify_stock, expiring_batches
from insights.services.quality import QualityLog
from insights.services.snapshot import Snapshot

PASS_THROUGH_KPIS = ("conversion_rate", "customer_retention")


def resolve_window(query: ReportQuery, *, as_of: date, default_days: int) -> tuple[date, date]:
    end = query.end_date or as_of
    start = query.start_date or (end - timedelta(days=default_days))
    if end < start:
        raise InvalidQuery("dashboard window ends before it starts", field="end_date")
    return start, end


def _movement_delta(movement: InventoryMovement, store_id: int | None) -> int:
    if store_id is None:
        return movement.signed_quantity
    delta = 0
    if movement.to_store_id == store_id and movement.movement_type in (
        MovementType.IN,
        MovementType.TRANSFER,
    ):
        delta += movement.quantity
    if movement.from_store_id == store_id and movement.movement_type in (
        MovementType.OUT,
        MovementType.TRANSFER,
    ):
        delta -= movement.quantity
    return delta


def inventory_history(
    snapshot: Snapshot,
    query: ReportQuery,
    *,
    start: date,
    end: date,
    quality: QualityLog,
) -> list[tuple[date, int, Decimal]]:
    """Daily (units, cost value) reconstructed backwards from current stock.

    level(d) = current - sum of net movements dated after d.
    """
    rows = select_stock(snapshot, query, quality)
    level_units = sum(row.stock.current_stock for row in rows)
    level_value = inventory_value(rows)

    products = snapshot.index.products
    units_after: dict[date, int] = {}
    value_after: dict[date, Decimal] = {}
    for movement in select_movements(snapshot, query, start=start + timedelta(days=1)):
        delta = _movement_delta(movement, query.store_id)
        if not delta:
            continue
        day = as_day(movement.movement_date)
        bucket = min(day, end + timedelta(days=1))
        units_after[bucket] = units_after.get(bucket, 0) + delta
        value_after[bucket] = value_after.get(bucket, ZERO_MONEY) + (
            delta * products[movement.product_id].production_cost
        )

    # Everything dated after the window is rolled back first.
    level_units -= units_after.get(end + timedelta(days=1), 0)
    level_value -= value_after.get(end + timedelta(days=1), ZERO_MONEY)

    history: list[tuple[date, int, Decimal]] = []
    for day in reversed(date_span(start, end)):
        history.append((day, level_units, level_value))
        level_units -= units_after.get(day, 0)
        level_value -= value_after.get(day, ZERO_MONEY)
    history.reverse()
    return history


def build_executive_dashboard(
    snapshot: Snapshot,
    query: ReportQuery,
    *,
    as_of: date,
    classifier: Classifier,
    default_days: int,
) -> ExecutiveDashboardOut:
    start, end = resolve_window(query, as_of=as_of, default_days=default_days)
    window = query.model_copy(update={"start_date": start, "end_date": end})

    quality = QualityLog(snapshot.parse_warnings)
    working = select_sales(snapshot, window, quality)
    totals = sales_totals(working.sales)
    profit = overall_profit(working.lines)
    daily = fill_days(sales_by_day(working.sales), start, end)

    history = inventory_history(snapshot, window, start=start, end=end, quality=quality)
    average_value = safe_div(sum((value for _, _, value in history), ZERO_MONEY), len(history))
    turnover = safe_div(profit.costs, average_value) if average_value > 0 else ZERO_MONEY

    upstream = snapshot.upstream_kpis
    unavailable = [name for name in PASS_THROUGH_KPIS if upstream.get(name) is None]
    pending_receipts = upstream.get("pending_receipts_count")

    stock_rows = select_stock(snapshot, window, quality)
    low_stock_count = sum(
        1 for _, status in classify_stock(stock_rows, classifier) if status != StockStatus.NORMAL
    )
    expiring = expiring_batches(snapshot, window, as_of=as_of, classifier=classifier, quality=quality)

    active_products = [
        product
        for product in snapshot.products
        if product.is_active
        and (window.category_id is None or product.category_id == window.category_id)
    ]
    active_stores = [
        store
        for store in snapshot.stores
        if store.is_active and (window.store_id is None or store.id == window.store_id)
    ]

    return ExecutiveDashboardOut(
        summary=DashboardSummaryOut(
            total_revenue=float(to_money(totals.revenue)),
            total_sales=totals.count,
            total_products=len(active_products),
            active_stores=len(active_stores),
            period=window.period,
            start_date=start,
            end_date=end,
        ),
        kpis=DashboardKpisOut(
            average_ticket=float(to_money(totals.average_ticket)),
            profit_margin=float(to_money(profit.margin_pct)),
            margin_health=classifier.margin_health(profit.margin_pct).value,
            inventory_turnover=float(to_money(turnover)),
            conversion_rate=upstream.get("conversion_rate"),
            customer_retention=upstream.get("customer_retention"),
            unavailable_kpis=unavailable,
        ),
        trends=DashboardTrendsOut(
            sales_trend=[TrendPointOut(date=day, value=bucket.count) for day, bucket in daily],
            revenue_trend=[
                TrendPointOut(date=day, value=float(to_money(bucket.revenue))) for day, bucket in daily
            ],
            inventory_trend=[TrendPointOut(date=day, value=units) for day, units, _ in history],
        ),
        alerts=DashboardAlertsOut(
            low_stock_count=low_stock_count,
            expiring_batches_count=sum(
                1 for row in expiring if row.urgency != ExpirationUrgency.EXPIRED.value
            ),
            pending_receipts_count=int(pending_receipts) if pending_receipts is not None else None,
            system_alerts=list(snapshot.system_alerts),
        ),
        warnings=quality.as_list(),
    )
