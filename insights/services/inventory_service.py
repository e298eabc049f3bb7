from datetime import date

from insights.core.money import to_money
from insights.schemas.reports import (
    ExpiringBatchOut,
    InventoryGroupOut,
    InventoryReportOut,
    LowStockProductOut,
    ReportQuery,
    StockAlertsOut,
)
from insights.services.aggregation import (
    InventoryGroup,
    inventory_by_category,
    inventory_by_store,
    inventory_value,
)
from insights.services.classification import (
    Classifier,
    ExpirationUrgency,
    StockStatus,
    days_until_expiration,
    expiration_eligible,
)
from insights.services.filters import StockRow, select_batches, select_stock
from insights.services.quality import QualityLog
from insights.services.snapshot import Snapshot

_STATUS_ORDER = {
    StockStatus.OUT_OF_STOCK: 0,
    StockStatus.CRITICAL: 1,
    StockStatus.LOW: 2,
    StockStatus.NORMAL: 3,
}


def _group_out(group: InventoryGroup) -> InventoryGroupOut:
    return InventoryGroupOut(
        group_id=group.group_id,
        group_name=group.group_name,
        product_count=group.product_count,
        total_stock=group.total_stock,
        total_value=float(to_money(group.total_value)),
    )


def classify_stock(rows: tuple[StockRow, ...], classifier: Classifier) -> list[tuple[StockRow, StockStatus]]:
    return [
        (row, classifier.stock_status(row.stock.current_stock, row.stock.min_stock_level))
        for row in rows
    ]


def expiring_batches(
    snapshot: Snapshot,
    query: ReportQuery,
    *,
    as_of: date,
    classifier: Classifier,
    quality: QualityLog,
) -> list[ExpiringBatchOut]:
    index = snapshot.index
    rows: list[ExpiringBatchOut] = []
    for batch, product in select_batches(snapshot, query, quality):
        if not expiration_eligible(batch):
            continue
        days = days_until_expiration(batch, as_of)
        if days is None:
            continue
        urgency = classifier.expiration_urgency(days)
        if urgency == ExpirationUrgency.NORMAL:
            continue
        rows.append(
            ExpiringBatchOut(
                batch_id=batch.id,
                batch_code=batch.batch_code,
                product_id=product.id,
                product_name=product.name,
                store_id=batch.store_id,
                store_name=index.store_name(batch.store_id),
                expiration_date=batch.expiration_date,
                days_until_expiration=days,
                current_quantity=batch.current_quantity,
                urgency=urgency.value,
            )
        )
    rows.sort(key=lambda row: (row.days_until_expiration, row.batch_code))
    return rows


def build_inventory_report(
    snapshot: Snapshot,
    query: ReportQuery,
    *,
    as_of: date,
    classifier: Classifier,
) -> InventoryReportOut:
    quality = QualityLog(snapshot.parse_warnings)
    rows = select_stock(snapshot, query, quality)
    classified = classify_stock(rows, classifier)

    alerts = [(row, status) for row, status in classified if status != StockStatus.NORMAL]
    alerts.sort(
        key=lambda pair: (
            _STATUS_ORDER[pair[1]],
            pair[0].product.name,
            pair[0].store.name,
        )
    )
    expiring = expiring_batches(snapshot, query, as_of=as_of, classifier=classifier, quality=quality)

    def _count(status: StockStatus) -> int:
        return sum(1 for _, item_status in classified if item_status == status)

    return InventoryReportOut(
        as_of_date=as_of,
        total_products=len({row.product.id for row in rows}),
        total_stock=sum(row.stock.current_stock for row in rows),
        total_value=float(to_money(inventory_value(rows))),
        stock_alerts=StockAlertsOut(
            low_stock=_count(StockStatus.LOW),
            critical=_count(StockStatus.CRITICAL),
            out_of_stock=_count(StockStatus.OUT_OF_STOCK),
            expiring_soon=sum(1 for row in expiring if row.urgency != ExpirationUrgency.EXPIRED.value),
            expired=sum(1 for row in expiring if row.urgency == ExpirationUrgency.EXPIRED.value),
        ),
        inventory_by_store=[_group_out(group) for group in inventory_by_store(rows)],
        inventory_by_category=[
            _group_out(group) for group in inventory_by_category(rows, snapshot.index)
        ],
        low_stock_products=[
            LowStockProductOut(
                product_id=row.product.id,
                product_name=row.product.name,
                product_code=row.product.code,
                store_id=row.store.id,
                store_name=row.store.name,
                current_stock=row.stock.current_stock,
                min_stock_level=row.stock.min_stock_level,
                alert_level=status.value,
            )
            for row, status in alerts
        ],
        expiring_batches=expiring,
        warnings=quality.as_list(),
    )
