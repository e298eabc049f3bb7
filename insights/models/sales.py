from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar

from pydantic import Field, model_validator

from insights.models.base import Entity, NaiveDatetime


class SaleType(str, Enum):
    RETAIL = "RETAIL"
    WHOLESALE = "WHOLESALE"


class Sale(Entity):
    references: ClassVar[dict[str, str]] = {
        "store": "store_id",
        "client": "client_id",
        "user": "user_id",
    }

    id: int
    sale_number: str
    store_id: int
    client_id: int | None = None
    client_name: str | None = None
    user_id: int | None = None
    user_email: str | None = None
    sale_type: SaleType = SaleType.RETAIL
    subtotal: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    created_at: NaiveDatetime

    @model_validator(mode="before")
    @classmethod
    def _denormalize_names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        extra: dict[str, Any] = {}
        client = data.get("client")
        if isinstance(client, dict) and "clientName" not in data:
            extra["clientName"] = client.get("nameLastname") or client.get("name")
        user = data.get("user")
        if isinstance(user, dict) and "userEmail" not in data:
            extra["userEmail"] = user.get("email")
        return {**data, **extra} if extra else data

    @property
    def amounts_consistent(self) -> bool:
        expected = self.subtotal - self.discount_amount + self.tax_amount
        return abs(expected - self.total_amount) <= Decimal("0.01")


class SaleLineItem(Entity):
    references: ClassVar[dict[str, str]] = {
        "sale": "sale_id",
        "product": "product_id",
        "batch": "batch_id",
    }

    id: int
    sale_id: int
    product_id: int
    batch_id: int | None = None
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(default=Decimal("0"), ge=0)
    subtotal: Decimal = Decimal("0")

    @model_validator(mode="before")
    @classmethod
    def _default_subtotal(cls, data: Any) -> Any:
        if isinstance(data, dict) and "subtotal" not in data:
            try:
                subtotal = Decimal(str(data.get("quantity", 0))) * Decimal(
                    str(data.get("unitPrice", data.get("unit_price", 0)))
                )
            except ArithmeticError:
                return data
            data = {**data, "subtotal": subtotal}
        return data
