from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Iterable

from insights.core.money import ZERO_MONEY, safe_div
from insights.models import Product, Sale, SaleType
from insights.services.filters import JoinedLine, StockRow, as_day
from insights.services.snapshot import SnapshotIndex


@dataclass
class SalesTotals:
    count: int = 0
    revenue: Decimal = ZERO_MONEY

    def add(self, sale: Sale) -> None:
        self.count += 1
        self.revenue += sale.total_amount

    @property
    def average_ticket(self) -> Decimal:
        return safe_div(self.revenue, self.count)


@dataclass
class StoreSales:
    store_id: int
    store_name: str
    totals: SalesTotals = field(default_factory=SalesTotals)


@dataclass
class ProfitTotals:
    revenue: Decimal = ZERO_MONEY
    costs: Decimal = ZERO_MONEY
    quantity: int = 0

    def add_line(self, line: JoinedLine) -> None:
        self.revenue += line.item.subtotal
        self.costs += line.item.quantity * line.product.production_cost
        self.quantity += line.item.quantity

    def merge(self, other: "ProfitTotals") -> None:
        self.revenue += other.revenue
        self.costs += other.costs
        self.quantity += other.quantity

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.costs

    @property
    def margin_pct(self) -> Decimal:
        return safe_div(self.profit, self.revenue) * 100

    @property
    def average_price(self) -> Decimal:
        return safe_div(self.revenue, self.quantity)


@dataclass
class ProductTotals(ProfitTotals):
    product: Product | None = None
    sale_ids: set[int] = field(default_factory=set)

    def add_line(self, line: JoinedLine) -> None:
        super().add_line(line)
        self.sale_ids.add(line.sale.id)

    @property
    def quantity_sold(self) -> int:
        return self.quantity

    @property
    def sales_count(self) -> int:
        return len(self.sale_ids)


@dataclass
class GroupProfit:
    group_id: int | None
    group_name: str
    totals: ProfitTotals = field(default_factory=ProfitTotals)


@dataclass
class InventoryGroup:
    group_id: int | None
    group_name: str
    product_ids: set[int] = field(default_factory=set)
    total_stock: int = 0
    total_value: Decimal = ZERO_MONEY

    @property
    def product_count(self) -> int:
        return len(self.product_ids)


def sales_totals(sales: Iterable[Sale]) -> SalesTotals:
    totals = SalesTotals()
    for sale in sales:
        totals.add(sale)
    return totals


def sales_by_type(sales: Iterable[Sale]) -> dict[SaleType, SalesTotals]:
    grouped = {sale_type: SalesTotals() for sale_type in SaleType}
    for sale in sales:
        grouped[sale.sale_type].add(sale)
    return grouped


def sales_by_store(sales: Iterable[Sale], index: SnapshotIndex) -> list[StoreSales]:
    grouped: dict[int, StoreSales] = {}
    for sale in sales:
        entry = grouped.get(sale.store_id)
        if entry is None:
            entry = StoreSales(
                store_id=sale.store_id,
                store_name=index.store_name(sale.store_id) or f"Store {sale.store_id}",
            )
            grouped[sale.store_id] = entry
        entry.totals.add(sale)
    return sorted(
        grouped.values(),
        key=lambda row: (-row.totals.revenue, row.store_name, row.store_id),
    )


def sales_by_day(sales: Iterable[Sale]) -> dict[date, SalesTotals]:
    buckets: dict[date, SalesTotals] = defaultdict(SalesTotals)
    for sale in sales:
        buckets[as_day(sale.created_at)].add(sale)
    return dict(sorted(buckets.items()))


def date_span(start: date, end: date) -> list[date]:
    if end < start:
        return []
    return [start + timedelta(days=offset) for offset in range((end - start).days + 1)]


def fill_days(buckets: dict[date, SalesTotals], start: date, end: date) -> list[tuple[date, SalesTotals]]:
    return [(day, buckets.get(day) or SalesTotals()) for day in date_span(start, end)]


def totals_by_product(lines: Iterable[JoinedLine]) -> dict[int, ProductTotals]:
    grouped: dict[int, ProductTotals] = {}
    for line in lines:
        entry = grouped.get(line.product.id)
        if entry is None:
            entry = ProductTotals(product=line.product)
            grouped[line.product.id] = entry
        entry.add_line(line)
    return grouped


def overall_profit(lines: Iterable[JoinedLine]) -> ProfitTotals:
    totals = ProfitTotals()
    for line in lines:
        totals.add_line(line)
    return totals


def _group_profit(
    lines: Iterable[JoinedLine],
    key: Callable[[JoinedLine], tuple[int | None, str]],
) -> list[GroupProfit]:
    grouped: dict[int | None, GroupProfit] = {}
    for line in lines:
        group_id, group_name = key(line)
        entry = grouped.get(group_id)
        if entry is None:
            entry = GroupProfit(group_id=group_id, group_name=group_name)
            grouped[group_id] = entry
        entry.totals.add_line(line)
    return sorted(
        grouped.values(),
        key=lambda row: (-row.totals.revenue, row.group_name, row.group_id or 0),
    )


def profit_by_category(lines: Iterable[JoinedLine], index: SnapshotIndex) -> list[GroupProfit]:
    return _group_profit(
        lines,
        lambda line: (
            line.product.category_id,
            index.category_name(line.product.category_id) or "Uncategorized",
        ),
    )


def profit_by_store(lines: Iterable[JoinedLine], index: SnapshotIndex) -> list[GroupProfit]:
    return _group_profit(
        lines,
        lambda line: (
            line.sale.store_id,
            index.store_name(line.sale.store_id) or f"Store {line.sale.store_id}",
        ),
    )


def stock_value(row: StockRow) -> Decimal:
    return row.stock.current_stock * row.product.production_cost


def inventory_value(rows: Iterable[StockRow]) -> Decimal:
    return sum((stock_value(row) for row in rows), ZERO_MONEY)


def _inventory_groups(
    rows: Iterable[StockRow],
    key: Callable[[StockRow], tuple[int | None, str]],
) -> list[InventoryGroup]:
    grouped: dict[int | None, InventoryGroup] = {}
    for row in rows:
        group_id, group_name = key(row)
        entry = grouped.get(group_id)
        if entry is None:
            entry = InventoryGroup(group_id=group_id, group_name=group_name)
            grouped[group_id] = entry
        entry.product_ids.add(row.product.id)
        entry.total_stock += row.stock.current_stock
        entry.total_value += stock_value(row)
    return sorted(grouped.values(), key=lambda group: (group.group_name, group.group_id or 0))


def inventory_by_store(rows: Iterable[StockRow]) -> list[InventoryGroup]:
    return _inventory_groups(rows, lambda row: (row.store.id, row.store.name))


def inventory_by_category(rows: Iterable[StockRow], index: SnapshotIndex) -> list[InventoryGroup]:
    return _inventory_groups(
        rows,
        lambda row: (
            row.product.category_id,
            index.category_name(row.product.category_id) or "Uncategorized",
        ),
    )
