import os

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("ENV", "test")

from insights.core.config import settings
from insights.core.deps import get_report_service
from insights.main import app
from insights.services.classification import Classifier
from insights.services.report_cache import ReportCache
from insights.services.report_service import ReportService
from insights.services.snapshot import build_snapshot
from insights.services.snapshot_provider import StaticSnapshotProvider


def backend_rows() -> dict[str, list[dict]]:
    """Collections shaped the way the backend serves them (camelCase, nested refs)."""
    return {
        "categories": [
            {"id": 1, "name": "Chocolates"},
            {"id": 2, "name": "Bebidas"},
        ],
        "products": [
            {
                "id": 1,
                "code": "CH-001",
                "nameProduct": "Trufa",
                "category": {"id": 1, "name": "Chocolates"},
                "productionCost": 2,
                "retailPrice": 10,
                "wholesalePrice": 8,
                "minStockLevel": 5,
                "isActive": True,
            },
            {
                "id": 2,
                "code": "CH-002",
                "nameProduct": "Bombon",
                "category": {"id": 1},
                "productionCost": 1,
                "retailPrice": 5,
                "wholesalePrice": 4,
                "minStockLevel": 5,
                "isActive": True,
            },
            {
                "id": 3,
                "code": "BE-001",
                "nameProduct": "Cacao Drink",
                "category": {"id": 2},
                "productionCost": 3,
                "retailPrice": 6,
                "wholesalePrice": 5,
                "minStockLevel": 5,
                "isActive": True,
            },
        ],
        "stores": [
            {"id": 1, "name": "Centro", "typeStore": "FISICA", "isActive": True},
            {"id": 2, "name": "Movil Norte", "typeStore": "MOVIL", "isActive": True},
            {"id": 3, "name": "Bodega", "typeStore": "BODEGA", "isActive": True},
        ],
        "stock": [
            {"product": {"id": 1}, "store": {"id": 1}, "currentStock": 0, "minStockLevel": 5},
            {"product": {"id": 2}, "store": {"id": 1}, "currentStock": 2, "minStockLevel": 5},
            {"product": {"id": 3}, "store": {"id": 2}, "currentStock": 4, "minStockLevel": 5},
            {"product": {"id": 1}, "store": {"id": 2}, "currentStock": 50, "minStockLevel": 5},
        ],
        "batches": [
            {
                "id": 1,
                "batchCode": "B1",
                "product": {"id": 1},
                "store": {"id": 1},
                "productionDate": "2024-01-01",
                "expirationDate": "2024-03-01T00:00:00",
                "initialQuantity": 100,
                "currentQuantity": 50,
                "isActive": True,
            },
            {
                "id": 2,
                "batchCode": "B2",
                "product": {"id": 2},
                "store": {"id": 3},
                "productionDate": "2024-01-02",
                "expirationDate": "2024-01-15",
                "initialQuantity": 20,
                "currentQuantity": 20,
                "isActive": True,
            },
            {
                "id": 3,
                "batchCode": "B3",
                "product": {"id": 3},
                "store": {"id": 2},
                "productionDate": "2023-12-20",
                "expirationDate": "2024-01-05",
                "initialQuantity": 10,
                "currentQuantity": 5,
                "isActive": True,
            },
        ],
        "movements": [
            {
                "id": 1,
                "movementType": "IN",
                "product": {"id": 1},
                "batch": {"id": 1},
                "toStore": {"id": 1},
                "quantity": 100,
                "reason": "PRODUCTION",
                "movementDate": "2024-01-01T08:00:00",
                "user": {"id": 1, "email": "ana@example.com"},
            },
            {
                "id": 2,
                "movementType": "OUT",
                "product": {"id": 1},
                "batch": {"id": 1},
                "fromStore": {"id": 1},
                "quantity": 30,
                "reason": "SALE",
                "movementDate": "2024-01-02T09:00:00",
                "user": {"id": 1, "email": "ana@example.com"},
            },
            {
                "id": 3,
                "movementType": "TRANSFER",
                "product": {"id": 1},
                "batch": {"id": 1},
                "fromStore": {"id": 1},
                "toStore": {"id": 2},
                "quantity": 20,
                "reason": "TRANSFER",
                "movementDate": "2024-01-03T15:30:00",
                "user": {"id": 2, "email": "luis@example.com"},
            },
        ],
        "sales": [
            {
                "id": 1,
                "saleNumber": "S-001",
                "store": {"id": 1},
                "client": {"id": 7, "nameLastname": "Ana Perez"},
                "user": {"id": 1, "email": "ana@example.com"},
                "saleType": "RETAIL",
                "subtotal": 100,
                "discountAmount": 0,
                "taxAmount": 0,
                "totalAmount": 100,
                "createdAt": "2024-01-02T10:00:00",
            },
            {
                "id": 2,
                "saleNumber": "S-002",
                "store": {"id": 1},
                "user": {"id": 1, "email": "ana@example.com"},
                "saleType": "WHOLESALE",
                "subtotal": 50,
                "discountAmount": 0,
                "taxAmount": 0,
                "totalAmount": 50,
                "createdAt": "2024-01-03T12:00:00",
            },
            {
                "id": 3,
                "saleNumber": "S-003",
                "store": {"id": 2},
                "user": {"id": 2, "email": "luis@example.com"},
                "saleType": "RETAIL",
                "subtotal": 60,
                "discountAmount": 0,
                "taxAmount": 0,
                "totalAmount": 60,
                "createdAt": "2024-01-05T16:45:00",
            },
        ],
        "sale_items": [
            {"id": 1, "sale": {"id": 1}, "product": {"id": 1}, "quantity": 10, "unitPrice": 10, "subtotal": 100},
            {"id": 2, "sale": {"id": 2}, "product": {"id": 2}, "quantity": 10, "unitPrice": 5, "subtotal": 50},
            {"id": 3, "sale": {"id": 3}, "product": {"id": 3}, "quantity": 10, "unitPrice": 6, "subtotal": 60},
        ],
    }


@pytest.fixture()
def rows():
    return backend_rows()


@pytest.fixture()
def snapshot(rows):
    return build_snapshot(rows)


@pytest.fixture()
def classifier():
    return Classifier()


@pytest.fixture()
def report_service(snapshot):
    return ReportService(
        StaticSnapshotProvider(snapshot),
        cache=ReportCache(max_entries=settings.report_cache_max_entries),
        classifier=Classifier(),
    )


@pytest.fixture()
def client(report_service):
    app.dependency_overrides[get_report_service] = lambda: report_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
