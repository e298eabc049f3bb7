from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar

from pydantic import Field, field_validator, model_validator

from insights.models.base import Entity, NaiveDatetime


class MovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    TRANSFER = "TRANSFER"


class MovementReason(str, Enum):
    PRODUCTION = "PRODUCTION"
    SALE = "SALE"
    TRANSFER = "TRANSFER"
    ADJUSTMENT = "ADJUSTMENT"
    DAMAGE = "DAMAGE"
    EXPIRED = "EXPIRED"


class ProductBatch(Entity):
    references: ClassVar[dict[str, str]] = {"product": "product_id", "store": "store_id"}

    id: int
    batch_code: str
    product_id: int
    store_id: int | None = None
    production_date: date | None = None
    expiration_date: date | None = None
    initial_quantity: int = 0
    current_quantity: int = 0
    is_active: bool = True

    @field_validator("production_date", "expiration_date", mode="before")
    @classmethod
    def _calendar_day(cls, value: Any) -> Any:
        if isinstance(value, str) and "T" in value:
            return value.split("T", 1)[0]
        if isinstance(value, datetime):
            return value.date()
        return value


class ProductStoreStock(Entity):
    references: ClassVar[dict[str, str]] = {"product": "product_id", "store": "store_id"}

    product_id: int
    store_id: int
    current_stock: int = Field(default=0, ge=0)
    min_stock_level: int = 0
    last_updated: NaiveDatetime | None = None


class InventoryMovement(Entity):
    references: ClassVar[dict[str, str]] = {
        "product": "product_id",
        "batch": "batch_id",
        "fromStore": "from_store_id",
        "toStore": "to_store_id",
        "user": "user_id",
    }

    id: int
    movement_type: MovementType
    product_id: int
    batch_id: int | None = None
    from_store_id: int | None = None
    to_store_id: int | None = None
    quantity: int = Field(gt=0)
    reason: MovementReason
    movement_date: NaiveDatetime
    user_id: int | None = None
    user_email: str | None = None
    notes: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _actor_email(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("user"), dict) and "userEmail" not in data:
            data = {**data, "userEmail": data["user"].get("email")}
        return data

    @property
    def signed_quantity(self) -> int:
        """Network-wide stock delta: transfers only relocate units."""
        if self.movement_type == MovementType.IN:
            return self.quantity
        if self.movement_type == MovementType.OUT:
            return -self.quantity
        return 0
