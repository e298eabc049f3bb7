from collections import defaultdict
from datetime import date

from insights.core.money import to_money
from insights.models import (
    InventoryMovement,
    MovementReason,
    MovementType,
    ProductBatch,
    SaleLineItem,
)
from insights.schemas.reports import (
    BatchInfoOut,
    BatchMovementOut,
    BatchNotFoundOut,
    BatchSaleOut,
    ProductTraceabilityOut,
    TraceabilityReportOut,
    TraceEventOut,
    TraceSummaryOut,
)
from insights.services.filters import as_day, in_date_range
from insights.services.quality import QualityLog
from insights.services.snapshot import Snapshot, SnapshotIndex

_KIND_ORDER = {"movement": 0, "sale": 1}


def _movement_key(movement: InventoryMovement) -> tuple:
    return (movement.movement_date, movement.id)


def _correlate_sales(
    index: SnapshotIndex,
    batch: ProductBatch,
    movements: list[InventoryMovement],
    snapshot: Snapshot,
) -> list[SaleLineItem]:
    """Match SALE movements of the batch to unbatched line items of its product.

    A line item matches when it sold the same quantity of the same product on
    the same calendar day; each line item is claimed at most once.
    """
    pool: dict[tuple[date, int], list[SaleLineItem]] = defaultdict(list)
    for item in snapshot.sale_items:
        if item.batch_id is not None or item.product_id != batch.product_id:
            continue
        sale = index.sales.get(item.sale_id)
        if sale is None:
            continue
        pool[(as_day(sale.created_at), item.quantity)].append(item)
    for candidates in pool.values():
        candidates.sort(key=lambda item: (index.sales[item.sale_id].created_at, item.id))

    matched: list[SaleLineItem] = []
    for movement in movements:
        if movement.reason != MovementReason.SALE:
            continue
        candidates = pool.get((as_day(movement.movement_date), movement.quantity))
        if candidates:
            matched.append(candidates.pop(0))
    return matched


def trace_batch(
    snapshot: Snapshot,
    batch_code: str,
    *,
    tolerance: int = 0,
) -> TraceabilityReportOut | BatchNotFoundOut:
    """Reconstruct what happened to one lot: produced -> sold/moved -> remaining."""
    index = snapshot.index
    code = batch_code.strip()
    batch = index.batches_by_code.get(code)
    if batch is None:
        return BatchNotFoundOut(batch_code=code, message=f"Batch '{code}' not found")

    quality = QualityLog()
    product = index.products.get(batch.product_id)
    if product is None:
        quality.dangling("batch", batch.id, missing="product", missing_id=batch.product_id)

    movements = sorted(index.movements_by_batch.get(batch.id, []), key=_movement_key)
    linked_items = index.items_by_batch.get(batch.id, [])
    if linked_items:
        sales_linkage = "batch"
        sale_items = list(linked_items)
    else:
        sales_linkage = "movement_correlation"
        sale_items = _correlate_sales(index, batch, movements, snapshot)

    sale_rows: list[BatchSaleOut] = []
    for item in sale_items:
        sale = index.sales.get(item.sale_id)
        if sale is None:
            quality.dangling("sale_item", item.id, missing="sale", missing_id=item.sale_id)
            continue
        sale_rows.append(
            BatchSaleOut(
                sale_id=sale.id,
                sale_number=sale.sale_number,
                line_item_id=item.id,
                quantity=item.quantity,
                unit_price=float(to_money(item.unit_price)),
                subtotal=float(to_money(item.subtotal)),
                sale_date=sale.created_at,
                store_name=index.store_name(sale.store_id),
                client_name=sale.client_name,
            )
        )
    sale_rows.sort(key=lambda row: (row.sale_date, row.sale_id, row.line_item_id))

    movement_rows = [
        BatchMovementOut(
            movement_id=movement.id,
            movement_type=movement.movement_type.value,
            reason=movement.reason.value,
            quantity=movement.quantity,
            from_store=index.store_name(movement.from_store_id),
            to_store=index.store_name(movement.to_store_id),
            movement_date=movement.movement_date,
            user_email=movement.user_email,
        )
        for movement in movements
    ]

    summary = _summarize(batch, movements, sale_rows, sales_linkage, quality, tolerance)
    events = _events(movement_rows, sale_rows)

    return TraceabilityReportOut(
        batch_info=BatchInfoOut(
            batch_id=batch.id,
            batch_code=batch.batch_code,
            product_id=batch.product_id,
            product_name=product.name if product else None,
            product_code=product.code if product else None,
            store_id=batch.store_id,
            store_name=index.store_name(batch.store_id),
            production_date=batch.production_date,
            expiration_date=batch.expiration_date,
            initial_quantity=batch.initial_quantity,
            current_quantity=batch.current_quantity,
            is_active=batch.is_active,
        ),
        sales_linkage=sales_linkage,
        movements=movement_rows,
        sales=sale_rows,
        events=events,
        summary=summary,
        warnings=quality.as_list(),
    )


def _summarize(
    batch: ProductBatch,
    movements: list[InventoryMovement],
    sale_rows: list[BatchSaleOut],
    sales_linkage: str,
    quality: QualityLog,
    tolerance: int,
) -> TraceSummaryOut:
    produced_in = 0
    sold_by_movement = 0
    moved = 0
    damaged_or_expired = 0
    adjusted = 0
    for movement in movements:
        if movement.movement_type == MovementType.TRANSFER:
            moved += movement.quantity
        elif movement.reason == MovementReason.PRODUCTION and movement.movement_type == MovementType.IN:
            produced_in += movement.quantity
        elif movement.reason == MovementReason.SALE and movement.movement_type == MovementType.OUT:
            sold_by_movement += movement.quantity
        elif movement.reason in (MovementReason.DAMAGE, MovementReason.EXPIRED):
            damaged_or_expired += movement.quantity
        elif movement.reason == MovementReason.ADJUSTMENT:
            adjusted -= movement.signed_quantity

    produced = batch.initial_quantity
    if produced_in and produced_in != produced:
        quality.add(
            "production_mismatch",
            f"PRODUCTION movements total {produced_in} but batch initial quantity is {produced}",
            entity="batch",
            entity_id=batch.id,
        )

    if sales_linkage == "batch":
        sold = sum(row.quantity for row in sale_rows)
    else:
        sold = sold_by_movement

    remaining = batch.current_quantity
    if remaining < 0 or remaining > batch.initial_quantity:
        quality.add(
            "quantity_out_of_bounds",
            f"current quantity {remaining} outside 0..{batch.initial_quantity}",
            entity="batch",
            entity_id=batch.id,
        )

    discrepancy = produced - (sold + moved + remaining + damaged_or_expired + adjusted)
    if abs(discrepancy) > tolerance:
        quality.add(
            "conservation_mismatch",
            (
                f"produced {produced} != sold {sold} + moved {moved} + remaining {remaining}"
                f" + damaged/expired {damaged_or_expired} + adjusted {adjusted}"
                f" (discrepancy {discrepancy})"
            ),
            entity="batch",
            entity_id=batch.id,
        )

    return TraceSummaryOut(
        produced=produced,
        sold=sold,
        moved=moved,
        remaining=remaining,
        damaged_or_expired=damaged_or_expired,
        adjusted=adjusted,
        discrepancy=discrepancy,
    )


def _events(movement_rows: list[BatchMovementOut], sale_rows: list[BatchSaleOut]) -> list[TraceEventOut]:
    events = [
        TraceEventOut(
            kind="movement",
            event_type=f"{row.movement_type}:{row.reason}",
            reference_id=row.movement_id,
            occurred_at=row.movement_date,
            quantity=row.quantity,
            from_store=row.from_store,
            to_store=row.to_store,
            actor=row.user_email,
        )
        for row in movement_rows
    ]
    events.extend(
        TraceEventOut(
            kind="sale",
            event_type=f"SALE:{row.sale_number}",
            reference_id=row.sale_id,
            occurred_at=row.sale_date,
            quantity=row.quantity,
            from_store=row.store_name,
            to_store=None,
            actor=row.client_name,
        )
        for row in sale_rows
    )
    events.sort(key=lambda event: (event.occurred_at, _KIND_ORDER[event.kind], event.reference_id))
    return events


def trace_product(
    snapshot: Snapshot,
    product_id: int,
    *,
    start: date | None = None,
    end: date | None = None,
    tolerance: int = 0,
) -> ProductTraceabilityOut:
    index = snapshot.index
    product = index.products.get(product_id)
    batches = [
        batch
        for batch in snapshot.batches
        if batch.product_id == product_id
        and (
            batch.production_date is None
            or in_date_range(batch.production_date, start, end)
        )
    ]
    batches.sort(key=lambda batch: (batch.production_date or date.min, batch.batch_code))

    reports: list[TraceabilityReportOut] = []
    quality = QualityLog()
    for batch in batches:
        result = trace_batch(snapshot, batch.batch_code, tolerance=tolerance)
        if isinstance(result, TraceabilityReportOut):
            reports.append(result)
            quality.extend(result.warnings)
    return ProductTraceabilityOut(
        product_id=product_id,
        product_name=product.name if product else None,
        reports=reports,
        warnings=quality.as_list(),
    )
