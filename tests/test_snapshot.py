from datetime import datetime
from decimal import Decimal

import pytest

from insights.models import MovementType, Product, Sale, SaleLineItem, Store, StoreType
from insights.services.snapshot import build_snapshot


def test_backend_rows_parse_with_nested_references(snapshot):
    product = snapshot.index.products[1]
    assert product.name == "Trufa"
    assert product.category_id == 1
    assert product.production_cost == Decimal("2")

    assert snapshot.index.stores[3].type == StoreType.WAREHOUSE
    assert snapshot.index.stores[2].type == StoreType.MOBILE

    sale = snapshot.index.sales[1]
    assert sale.store_id == 1
    assert sale.client_id == 7
    assert sale.client_name == "Ana Perez"
    assert sale.user_email == "ana@example.com"
    assert sale.created_at == datetime(2024, 1, 2, 10, 0)

    transfer = next(m for m in snapshot.movements if m.id == 3)
    assert transfer.movement_type == MovementType.TRANSFER
    assert transfer.from_store_id == 1
    assert transfer.to_store_id == 2
    assert transfer.signed_quantity == 0
    assert transfer.user_email == "luis@example.com"

    assert snapshot.index.batches_by_code["B1"].expiration_date.isoformat() == "2024-03-01"
    assert snapshot.parse_warnings == ()


def test_snake_case_rows_and_explicit_ids_win_over_nested():
    product = Product.model_validate(
        {"id": 9, "name": "Plain", "category_id": 4, "category": {"id": 99}}
    )
    assert product.category_id == 4

    store = Store.model_validate({"id": 1, "name": "Kiosk", "type": "movil"})
    assert store.type == StoreType.MOBILE


def test_line_item_subtotal_defaults_to_quantity_times_price():
    item = SaleLineItem.model_validate({"id": 1, "saleId": 1, "productId": 1, "quantity": 3, "unitPrice": "2.50"})
    assert item.subtotal == Decimal("7.50")


def test_timezone_aware_timestamps_are_normalized_to_utc():
    sale = Sale.model_validate(
        {"id": 1, "saleNumber": "S", "storeId": 1, "createdAt": "2024-01-02T10:00:00-05:00"}
    )
    assert sale.created_at == datetime(2024, 1, 2, 15, 0)
    assert sale.created_at.tzinfo is None


def test_invalid_rows_are_skipped_with_warning(rows):
    rows["sale_items"].append({"id": 50, "sale": {"id": 1}, "product": {"id": 1}, "quantity": 0})
    rows["stock"].append({"product": {"id": 2}, "store": {"id": 2}, "currentStock": -4})

    snapshot = build_snapshot(rows)

    assert len(snapshot.sale_items) == 3
    assert len(snapshot.stock) == 4
    codes = [warning.code for warning in snapshot.parse_warnings]
    assert codes == ["invalid_record", "invalid_record"]
    assert snapshot.parse_warnings[1].entity_id == 50


def test_snapshot_version_tracks_content(rows):
    first = build_snapshot(rows)
    second = build_snapshot(rows)
    assert first.version == second.version

    rows["sales"][0]["totalAmount"] = 101
    changed = build_snapshot(rows)
    assert changed.version != first.version


def test_unknown_collection_is_rejected():
    with pytest.raises(ValueError):
        build_snapshot({"customers": []})


def test_index_groups_related_rows(snapshot):
    index = snapshot.index
    assert [m.id for m in index.movements_by_batch[1]] == [1, 2, 3]
    assert [item.id for item in index.items_by_sale[2]] == [2]
    assert index.items_by_batch.get(1, []) == []
    assert index.store_name(None) is None
    assert index.category_name(2) == "Bebidas"
