from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from insights.core.config import Settings, settings
from insights.models import ProductBatch


class StockStatus(str, Enum):
    NORMAL = "NORMAL"
    LOW = "LOW"
    CRITICAL = "CRITICAL"
    OUT_OF_STOCK = "OUT_OF_STOCK"


class ExpirationUrgency(str, Enum):
    EXPIRED = "expired"
    CRITICAL = "critical"
    WARNING = "warning"
    NORMAL = "normal"


class MarginHealth(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    DANGER = "danger"


@dataclass(frozen=True)
class Classifier:
    stock_rule: str = "relative"
    critical_ratio: float = 0.5
    low_flat_threshold: int = 10
    critical_flat_threshold: int = 3
    expiry_critical_days: int = 7
    expiry_warning_days: int = 30
    margin_good_pct: float = 30.0
    margin_warning_pct: float = 15.0

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "Classifier":
        config = config or settings
        return cls(
            stock_rule=config.stock_alert_rule,
            critical_ratio=config.critical_stock_ratio,
            low_flat_threshold=config.low_stock_flat_threshold,
            critical_flat_threshold=config.critical_stock_flat_threshold,
            expiry_critical_days=config.expiry_critical_days,
            expiry_warning_days=config.expiry_warning_days,
            margin_good_pct=config.margin_good_pct,
            margin_warning_pct=config.margin_warning_pct,
        )

    def stock_status(self, current_stock: int, min_stock_level: int) -> StockStatus:
        if current_stock <= 0:
            return StockStatus.OUT_OF_STOCK
        if self.stock_rule == "flat":
            if current_stock <= self.critical_flat_threshold:
                return StockStatus.CRITICAL
            if current_stock < self.low_flat_threshold:
                return StockStatus.LOW
            return StockStatus.NORMAL
        if current_stock <= min_stock_level * self.critical_ratio:
            return StockStatus.CRITICAL
        if current_stock <= min_stock_level:
            return StockStatus.LOW
        return StockStatus.NORMAL

    def expiration_urgency(self, days_until_expiration: int) -> ExpirationUrgency:
        if days_until_expiration <= 0:
            return ExpirationUrgency.EXPIRED
        if days_until_expiration <= self.expiry_critical_days:
            return ExpirationUrgency.CRITICAL
        if days_until_expiration <= self.expiry_warning_days:
            return ExpirationUrgency.WARNING
        return ExpirationUrgency.NORMAL

    def margin_health(self, margin_pct: Decimal | float) -> MarginHealth:
        margin = float(margin_pct)
        if margin >= self.margin_good_pct:
            return MarginHealth.GOOD
        if margin >= self.margin_warning_pct:
            return MarginHealth.WARNING
        return MarginHealth.DANGER


def days_until_expiration(batch: ProductBatch, as_of: date) -> int | None:
    if batch.expiration_date is None:
        return None
    return (batch.expiration_date - as_of).days


def expiration_eligible(batch: ProductBatch) -> bool:
    return batch.is_active and batch.current_quantity > 0
