from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from insights.schemas.common import DataQualityWarningOut


class ReportQuery(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    store_id: int | None = None
    category_id: int | None = None
    product_id: int | None = None
    batch_code: str | None = None
    top_n: int | None = None
    whole_catalog_share: bool = False
    as_of_date: date | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def period(self) -> str:
        start = self.start_date.isoformat() if self.start_date else "*"
        end = self.end_date.isoformat() if self.end_date else "*"
        return f"{start} - {end}"


class ReportOut(BaseModel):
    warnings: list[DataQualityWarningOut] = Field(default_factory=list)


# ---- sales -------------------------------------------------------------


class SalesMetricsOut(BaseModel):
    count: int
    revenue: float
    percentage: float


class SalesByTypeOut(BaseModel):
    retail: SalesMetricsOut
    wholesale: SalesMetricsOut


class SalesByStoreOut(BaseModel):
    store_id: int
    store_name: str
    sales_count: int
    revenue: float
    percentage: float


class TopSellingProductOut(BaseModel):
    rank: int
    product_id: int
    product_name: str
    product_code: str
    quantity_sold: int
    revenue: float


class DailySalesOut(BaseModel):
    date: date
    sales_count: int
    revenue: float


class SalesReportOut(ReportOut):
    period: str
    start_date: date | None = None
    end_date: date | None = None
    total_sales: int
    total_revenue: float
    average_ticket: float
    sales_by_type: SalesByTypeOut
    sales_by_store: list[SalesByStoreOut]
    top_selling_products: list[TopSellingProductOut]
    daily_sales: list[DailySalesOut]


# ---- inventory ---------------------------------------------------------


class StockAlertsOut(BaseModel):
    low_stock: int
    critical: int
    out_of_stock: int
    expiring_soon: int
    expired: int


class InventoryGroupOut(BaseModel):
    group_id: int | None
    group_name: str
    product_count: int
    total_stock: int
    total_value: float


class LowStockProductOut(BaseModel):
    product_id: int
    product_name: str
    product_code: str
    store_id: int
    store_name: str
    current_stock: int
    min_stock_level: int
    alert_level: str


class ExpiringBatchOut(BaseModel):
    batch_id: int
    batch_code: str
    product_id: int
    product_name: str
    store_id: int | None = None
    store_name: str | None = None
    expiration_date: date
    days_until_expiration: int
    current_quantity: int
    urgency: str


class InventoryReportOut(ReportOut):
    as_of_date: date
    total_products: int
    total_stock: int
    total_value: float
    stock_alerts: StockAlertsOut
    inventory_by_store: list[InventoryGroupOut]
    inventory_by_category: list[InventoryGroupOut]
    low_stock_products: list[LowStockProductOut]
    expiring_batches: list[ExpiringBatchOut]


# ---- profitability -----------------------------------------------------


class ProfitLineOut(BaseModel):
    group_id: int | None
    group_name: str
    revenue: float
    costs: float
    profit: float
    profit_margin: float
    margin_health: str


class ProductProfitabilityOut(ProfitLineOut):
    product_code: str
    quantity_sold: int
    average_price: float


class ProfitabilityReportOut(ReportOut):
    period: str
    start_date: date | None = None
    end_date: date | None = None
    total_revenue: float
    total_costs: float
    gross_profit: float
    profit_margin: float
    margin_health: str
    profit_by_product: list[ProductProfitabilityOut]
    profit_by_category: list[ProfitLineOut]
    profit_by_store: list[ProfitLineOut]


# ---- best sellers ------------------------------------------------------


class BestSellingProductOut(BaseModel):
    rank: int
    product_id: int
    product_name: str
    product_code: str
    category_name: str | None = None
    quantity_sold: int
    revenue: float
    average_price: float
    sales_count: int
    market_share: float


class BestSellingProductsReportOut(ReportOut):
    period: str
    start_date: date | None = None
    end_date: date | None = None
    top_n: int
    market_share_basis: Literal["top_n", "catalog"]
    total_products_sold: int
    products: list[BestSellingProductOut]


# ---- traceability ------------------------------------------------------


class BatchInfoOut(BaseModel):
    batch_id: int
    batch_code: str
    product_id: int
    product_name: str | None = None
    product_code: str | None = None
    store_id: int | None = None
    store_name: str | None = None
    production_date: date | None = None
    expiration_date: date | None = None
    initial_quantity: int
    current_quantity: int
    is_active: bool


class BatchMovementOut(BaseModel):
    movement_id: int
    movement_type: str
    reason: str
    quantity: int
    from_store: str | None = None
    to_store: str | None = None
    movement_date: datetime
    user_email: str | None = None


class BatchSaleOut(BaseModel):
    sale_id: int
    sale_number: str
    line_item_id: int
    quantity: int
    unit_price: float
    subtotal: float
    sale_date: datetime
    store_name: str | None = None
    client_name: str | None = None


class TraceEventOut(BaseModel):
    kind: Literal["movement", "sale"]
    event_type: str
    reference_id: int
    occurred_at: datetime
    quantity: int
    from_store: str | None = None
    to_store: str | None = None
    actor: str | None = None


class TraceSummaryOut(BaseModel):
    produced: int
    sold: int
    moved: int
    remaining: int
    damaged_or_expired: int
    adjusted: int
    discrepancy: int


class TraceabilityReportOut(ReportOut):
    status: Literal["ok"] = "ok"
    batch_info: BatchInfoOut
    sales_linkage: Literal["batch", "movement_correlation"]
    movements: list[BatchMovementOut]
    sales: list[BatchSaleOut]
    events: list[TraceEventOut]
    summary: TraceSummaryOut


class BatchNotFoundOut(BaseModel):
    status: Literal["batch_not_found"] = "batch_not_found"
    batch_code: str
    message: str


class ProductTraceabilityOut(ReportOut):
    product_id: int
    product_name: str | None = None
    reports: list[TraceabilityReportOut]


# ---- executive dashboard -----------------------------------------------


class TrendPointOut(BaseModel):
    date: date
    value: float


class DashboardSummaryOut(BaseModel):
    total_revenue: float
    total_sales: int
    total_products: int
    active_stores: int
    period: str
    start_date: date
    end_date: date


class DashboardKpisOut(BaseModel):
    average_ticket: float
    profit_margin: float
    margin_health: str
    inventory_turnover: float
    conversion_rate: float | None = None
    customer_retention: float | None = None
    unavailable_kpis: list[str] = Field(default_factory=list)


class DashboardTrendsOut(BaseModel):
    sales_trend: list[TrendPointOut]
    revenue_trend: list[TrendPointOut]
    inventory_trend: list[TrendPointOut]


class DashboardAlertsOut(BaseModel):
    low_stock_count: int
    expiring_batches_count: int
    pending_receipts_count: int | None = None
    system_alerts: list[str]


class ExecutiveDashboardOut(ReportOut):
    summary: DashboardSummaryOut
    kpis: DashboardKpisOut
    trends: DashboardTrendsOut
    alerts: DashboardAlertsOut
