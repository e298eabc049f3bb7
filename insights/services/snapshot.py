import hashlib
import json
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import cached_property
from typing import Any, Iterable, Mapping, TypeVar

from pydantic import BaseModel, ValidationError

from insights.models import (
    Category,
    InventoryMovement,
    Product,
    ProductBatch,
    ProductStoreStock,
    Sale,
    SaleLineItem,
    Store,
)
from insights.schemas.common import DataQualityWarningOut

EntityT = TypeVar("EntityT", bound=BaseModel)

COLLECTION_MODELS: dict[str, type[BaseModel]] = {
    "categories": Category,
    "products": Product,
    "stores": Store,
    "batches": ProductBatch,
    "stock": ProductStoreStock,
    "movements": InventoryMovement,
    "sales": Sale,
    "sale_items": SaleLineItem,
}


@dataclass(frozen=True)
class Snapshot:
    categories: tuple[Category, ...] = ()
    products: tuple[Product, ...] = ()
    stores: tuple[Store, ...] = ()
    batches: tuple[ProductBatch, ...] = ()
    stock: tuple[ProductStoreStock, ...] = ()
    movements: tuple[InventoryMovement, ...] = ()
    sales: tuple[Sale, ...] = ()
    sale_items: tuple[SaleLineItem, ...] = ()
    upstream_kpis: Mapping[str, float] = field(default_factory=dict)
    system_alerts: tuple[str, ...] = ()
    parse_warnings: tuple[DataQualityWarningOut, ...] = ()
    version: str = ""
    fetched_at: datetime | None = None

    @cached_property
    def index(self) -> "SnapshotIndex":
        return SnapshotIndex(self)


class SnapshotIndex:
    """id -> entity maps built once per snapshot so joins are lookups."""

    def __init__(self, snapshot: Snapshot):
        self.categories = {c.id: c for c in snapshot.categories}
        self.products = {p.id: p for p in snapshot.products}
        self.stores = {s.id: s for s in snapshot.stores}
        self.batches = {b.id: b for b in snapshot.batches}
        self.sales = {s.id: s for s in snapshot.sales}
        self.batches_by_code = {b.batch_code.strip(): b for b in snapshot.batches}

        items_by_sale: dict[int, list[SaleLineItem]] = defaultdict(list)
        items_by_batch: dict[int, list[SaleLineItem]] = defaultdict(list)
        for item in snapshot.sale_items:
            items_by_sale[item.sale_id].append(item)
            if item.batch_id is not None:
                items_by_batch[item.batch_id].append(item)
        self.items_by_sale = dict(items_by_sale)
        self.items_by_batch = dict(items_by_batch)

        movements_by_batch: dict[int, list[InventoryMovement]] = defaultdict(list)
        for movement in snapshot.movements:
            if movement.batch_id is not None:
                movements_by_batch[movement.batch_id].append(movement)
        self.movements_by_batch = dict(movements_by_batch)

    def store_name(self, store_id: int | None) -> str | None:
        if store_id is None:
            return None
        store = self.stores.get(store_id)
        return store.name if store else None

    def category_name(self, category_id: int | None) -> str | None:
        if category_id is None:
            return None
        category = self.categories.get(category_id)
        return category.name if category else None


def _parse_rows(
    collection: str,
    model: type[EntityT],
    rows: Iterable[Any],
    warnings: list[DataQualityWarningOut],
) -> tuple[EntityT, ...]:
    parsed: list[EntityT] = []
    for position, row in enumerate(rows):
        if isinstance(row, model):
            parsed.append(row)
            continue
        try:
            parsed.append(model.model_validate(row))
        except ValidationError as exc:
            row_id = row.get("id") if isinstance(row, dict) else None
            warnings.append(
                DataQualityWarningOut(
                    code="invalid_record",
                    message=f"{collection}[{position}] skipped: {exc.error_count()} invalid field(s)",
                    entity=collection,
                    entity_id=row_id if isinstance(row_id, int) else None,
                )
            )
    return tuple(parsed)


def compute_version(payload: Mapping[str, Any]) -> str:
    def _default(value: Any) -> Any:
        if isinstance(value, BaseModel):
            return value.model_dump(mode="json")
        return str(value)

    canonical = json.dumps(payload, sort_keys=True, default=_default, separators=(",", ":"))
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def build_snapshot(
    collections: Mapping[str, Iterable[Any]],
    *,
    upstream_kpis: Mapping[str, float] | None = None,
    system_alerts: Iterable[str] = (),
    fetched_at: datetime | None = None,
) -> Snapshot:
    """Parse raw backend collections (or ready entities) into a Snapshot."""
    unknown = set(collections) - set(COLLECTION_MODELS)
    if unknown:
        raise ValueError(f"Unknown snapshot collections: {', '.join(sorted(unknown))}")

    raw = {name: list(collections.get(name, ())) for name in COLLECTION_MODELS}
    kpis = dict(upstream_kpis or {})
    alerts = tuple(str(alert) for alert in system_alerts)
    version = compute_version({**raw, "upstream_kpis": kpis, "system_alerts": list(alerts)})

    warnings: list[DataQualityWarningOut] = []
    parsed = {
        name: _parse_rows(name, model, raw[name], warnings)
        for name, model in COLLECTION_MODELS.items()
    }
    return Snapshot(
        **parsed,
        upstream_kpis=kpis,
        system_alerts=alerts,
        parse_warnings=tuple(warnings),
        version=version,
        fetched_at=fetched_at or datetime.now(timezone.utc),
    )
