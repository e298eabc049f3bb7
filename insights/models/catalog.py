from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar

from pydantic import Field, model_validator

from insights.models.base import Entity


class StoreType(str, Enum):
    PHYSICAL = "physical"
    MOBILE = "mobile"
    WAREHOUSE = "warehouse"

    @classmethod
    def _missing_(cls, value: object):
        aliases = {"FISICA": cls.PHYSICAL, "MOVIL": cls.MOBILE, "BODEGA": cls.WAREHOUSE}
        if isinstance(value, str):
            return aliases.get(value.strip().upper()) or cls.__members__.get(value.strip().upper())
        return None


class Category(Entity):
    id: int
    name: str


class Product(Entity):
    references: ClassVar[dict[str, str]] = {"category": "category_id"}

    id: int
    code: str = ""
    name: str
    category_id: int | None = None
    production_cost: Decimal = Field(default=Decimal("0"), ge=0)
    wholesale_price: Decimal = Decimal("0")
    retail_price: Decimal = Decimal("0")
    min_stock_level: int = 0
    is_active: bool = True

    @model_validator(mode="before")
    @classmethod
    def _accept_backend_name(cls, data: Any) -> Any:
        if isinstance(data, dict) and "name" not in data and "nameProduct" in data:
            data = {**data, "name": data["nameProduct"]}
        return data


class Store(Entity):
    id: int
    name: str
    type: StoreType | None = None
    is_active: bool = True

    @model_validator(mode="before")
    @classmethod
    def _accept_backend_type(cls, data: Any) -> Any:
        if isinstance(data, dict) and "type" not in data and "typeStore" in data:
            data = {**data, "type": data["typeStore"]}
        return data
