from insights.models.catalog import Category, Product, Store, StoreType
from insights.models.inventory import (
    InventoryMovement,
    MovementReason,
    MovementType,
    ProductBatch,
    ProductStoreStock,
)
from insights.models.sales import Sale, SaleLineItem, SaleType

__all__ = [
    "Category",
    "InventoryMovement",
    "MovementReason",
    "MovementType",
    "Product",
    "ProductBatch",
    "ProductStoreStock",
    "Sale",
    "SaleLineItem",
    "SaleType",
    "Store",
    "StoreType",
]
