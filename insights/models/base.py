from datetime import datetime, timezone
from typing import Annotated, Any, ClassVar

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, model_validator
from pydantic.alias_generators import to_camel


def naive_timestamp(value: Any) -> Any:
    """Accept bare ISO dates as midnight of that day."""
    if isinstance(value, str) and len(value.strip()) == 10:
        return f"{value.strip()}T00:00:00"
    return value


def utc_naive(value: datetime) -> datetime:
    """Offset timestamps are shifted to UTC and stored naive.

    Date filters then compare the UTC calendar day, so
    ``2024-01-31T23:30-05:00`` belongs to 2024-02-01.
    """
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


NaiveDatetime = Annotated[datetime, BeforeValidator(naive_timestamp), AfterValidator(utc_naive)]


class Entity(BaseModel):
    """Read-only record parsed from a backend collection.

    The backend nests related objects (``{"store": {"id": 3}}``); subclasses
    list those keys in ``references`` and the parser keeps only the id.
    """

    references: ClassVar[dict[str, str]] = {}

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _flatten_references(cls, data: Any) -> Any:
        if not isinstance(data, dict) or not cls.references:
            return data
        flattened = dict(data)
        for nested_key, field_name in cls.references.items():
            nested = flattened.get(nested_key)
            if not isinstance(nested, dict):
                continue
            if field_name not in flattened and to_camel(field_name) not in flattened:
                flattened[field_name] = nested.get("id")
        return flattened
