from typing import Iterable

from insights.schemas.common import DataQualityWarningOut


class QualityLog:
    """Ordered, de-duplicated data-quality warnings for one computation."""

    def __init__(self, initial: Iterable[DataQualityWarningOut] = ()):
        self._items: list[DataQualityWarningOut] = []
        self._seen: set[tuple] = set()
        self.extend(initial)

    def add(
        self,
        code: str,
        message: str,
        *,
        entity: str | None = None,
        entity_id: int | None = None,
    ) -> None:
        self.append(
            DataQualityWarningOut(code=code, message=message, entity=entity, entity_id=entity_id)
        )

    def append(self, warning: DataQualityWarningOut) -> None:
        key = (warning.code, warning.entity, warning.entity_id, warning.message)
        if key in self._seen:
            return
        self._seen.add(key)
        self._items.append(warning)

    def extend(self, warnings: Iterable[DataQualityWarningOut]) -> None:
        for warning in warnings:
            self.append(warning)

    def dangling(self, entity: str, entity_id: int, *, missing: str, missing_id: int | None) -> None:
        self.add(
            "dangling_reference",
            f"{entity} {entity_id} references missing {missing} {missing_id}; row skipped",
            entity=entity,
            entity_id=entity_id,
        )

    def as_list(self) -> list[DataQualityWarningOut]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)
