from dataclasses import dataclass
from datetime import date, datetime

from insights.core.errors import InvalidQuery
from insights.models import (
    InventoryMovement,
    Product,
    ProductBatch,
    ProductStoreStock,
    Sale,
    SaleLineItem,
    Store,
)
from insights.schemas.reports import ReportQuery
from insights.services.quality import QualityLog
from insights.services.snapshot import Snapshot


@dataclass(frozen=True)
class JoinedLine:
    item: SaleLineItem
    sale: Sale
    product: Product


@dataclass(frozen=True)
class SalesWorkingSet:
    sales: tuple[Sale, ...]
    lines: tuple[JoinedLine, ...]


@dataclass(frozen=True)
class StockRow:
    stock: ProductStoreStock
    product: Product
    store: Store


def validate_query(query: ReportQuery) -> None:
    if query.start_date and query.end_date and query.end_date < query.start_date:
        raise InvalidQuery("end_date cannot be before start_date", field="end_date")
    if query.top_n is not None and query.top_n <= 0:
        raise InvalidQuery("top_n must be a positive integer", field="top_n")
    if query.batch_code is not None and not query.batch_code.strip():
        raise InvalidQuery("batch_code cannot be blank", field="batch_code")


def as_day(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def in_date_range(value: date | datetime, start: date | None, end: date | None) -> bool:
    day = as_day(value)
    return (start is None or day >= start) and (end is None or day <= end)


def _product_matches(product: Product, query: ReportQuery) -> bool:
    if query.category_id is not None and product.category_id != query.category_id:
        return False
    if query.product_id is not None and product.id != query.product_id:
        return False
    return True


def select_sales(snapshot: Snapshot, query: ReportQuery, quality: QualityLog) -> SalesWorkingSet:
    """Filter sales by date/store and inner-join their line items to products.

    With a category or product filter, only sales having at least one matching
    line item are kept, and only the matching line items are returned.
    """
    index = snapshot.index
    candidates: dict[int, Sale] = {}
    for sale in snapshot.sales:
        if not in_date_range(sale.created_at, query.start_date, query.end_date):
            continue
        if query.store_id is not None and sale.store_id != query.store_id:
            continue
        if sale.store_id not in index.stores:
            quality.dangling("sale", sale.id, missing="store", missing_id=sale.store_id)
            continue
        if not sale.amounts_consistent:
            quality.add(
                "sale_amount_mismatch",
                f"sale {sale.sale_number}: total differs from subtotal - discount + tax",
                entity="sale",
                entity_id=sale.id,
            )
        candidates[sale.id] = sale

    lines: list[JoinedLine] = []
    for item in snapshot.sale_items:
        sale = candidates.get(item.sale_id)
        if sale is None:
            if item.sale_id not in index.sales:
                quality.dangling("sale_item", item.id, missing="sale", missing_id=item.sale_id)
            continue
        product = index.products.get(item.product_id)
        if product is None:
            quality.dangling("sale_item", item.id, missing="product", missing_id=item.product_id)
            continue
        if not _product_matches(product, query):
            continue
        lines.append(JoinedLine(item=item, sale=sale, product=product))

    if query.category_id is not None or query.product_id is not None:
        matched = {line.sale.id for line in lines}
        sales = tuple(sale for sale in candidates.values() if sale.id in matched)
    else:
        sales = tuple(candidates.values())
    return SalesWorkingSet(sales=sales, lines=tuple(lines))


def select_stock(snapshot: Snapshot, query: ReportQuery, quality: QualityLog) -> tuple[StockRow, ...]:
    index = snapshot.index
    rows: list[StockRow] = []
    for stock in snapshot.stock:
        if query.store_id is not None and stock.store_id != query.store_id:
            continue
        product = index.products.get(stock.product_id)
        if product is None:
            quality.add(
                "dangling_reference",
                f"stock row for store {stock.store_id} references missing product {stock.product_id}; row skipped",
                entity="stock",
                entity_id=stock.product_id,
            )
            continue
        store = index.stores.get(stock.store_id)
        if store is None:
            quality.add(
                "dangling_reference",
                f"stock row for product {stock.product_id} references missing store {stock.store_id}; row skipped",
                entity="stock",
                entity_id=stock.product_id,
            )
            continue
        if not _product_matches(product, query):
            continue
        rows.append(StockRow(stock=stock, product=product, store=store))
    return tuple(rows)


def select_batches(
    snapshot: Snapshot, query: ReportQuery, quality: QualityLog
) -> tuple[tuple[ProductBatch, Product], ...]:
    """Batches joined to their product; a store filter excludes warehouse batches."""
    index = snapshot.index
    selected: list[tuple[ProductBatch, Product]] = []
    for batch in snapshot.batches:
        if query.store_id is not None and batch.store_id != query.store_id:
            continue
        product = index.products.get(batch.product_id)
        if product is None:
            quality.dangling("batch", batch.id, missing="product", missing_id=batch.product_id)
            continue
        if not _product_matches(product, query):
            continue
        selected.append((batch, product))
    return tuple(selected)


def select_movements(
    snapshot: Snapshot,
    query: ReportQuery,
    *,
    start: date | None = None,
    end: date | None = None,
) -> tuple[InventoryMovement, ...]:
    index = snapshot.index
    selected: list[InventoryMovement] = []
    for movement in snapshot.movements:
        if not in_date_range(movement.movement_date, start, end):
            continue
        if query.store_id is not None and query.store_id not in (
            movement.from_store_id,
            movement.to_store_id,
        ):
            continue
        product = index.products.get(movement.product_id)
        if product is None or not _product_matches(product, query):
            continue
        selected.append(movement)
    return tuple(selected)
