import json
from typing import List, Literal, Union
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Inventory Insights"
    env: str = "dev"

    # BACKEND SNAPSHOT SOURCE
    backend_base_url: str = "http://localhost:8080/chocorocks/api"
    backend_timeout_seconds: float = Field(default=15.0, gt=0, le=300)
    backend_fetch_workers: int = Field(default=8, ge=1, le=32)
    backend_api_key: str | None = None
    categories_path: str = "/categories"
    products_path: str = "/products"
    stores_path: str = "/stores"
    batches_path: str = "/product-batches"
    stock_path: str = "/product-stores"
    movements_path: str = "/inventory-movements"
    sales_path: str = "/sales"
    sale_items_path: str = "/sale-details"
    upstream_kpis_path: str | None = None

    # REPORTS
    default_top_n: int = Field(default=20, ge=1, le=1000)
    sales_report_top_products: int = Field(default=10, ge=1, le=1000)
    dashboard_default_window_days: int = Field(default=30, ge=1, le=366)
    report_cache_max_entries: int = Field(default=128, ge=0, le=10_000)

    # CLASSIFICATION
    stock_alert_rule: Literal["relative", "flat"] = "relative"
    critical_stock_ratio: float = Field(default=0.5, gt=0, le=1)
    low_stock_flat_threshold: int = Field(default=10, ge=1)
    critical_stock_flat_threshold: int = Field(default=3, ge=0)
    expiry_critical_days: int = Field(default=7, ge=0)
    expiry_warning_days: int = Field(default=30, ge=0)
    margin_good_pct: float = 30.0
    margin_warning_pct: float = 15.0

    # TRACEABILITY
    conservation_tolerance: int = Field(default=0, ge=0)

    # CORS
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    cors_origin_regex: str | None = None

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            if not v.strip():
                return []
            if v.startswith("["):
                parsed = json.loads(v)
                if not isinstance(parsed, list):
                    raise ValueError("CORS_ORIGINS JSON value must be a list")
                return [str(i).strip() for i in parsed if str(i).strip()]
            return [i.strip() for i in v.split(",") if i.strip()]
        if isinstance(v, list):
            return [str(i).strip() for i in v if str(i).strip()]
        raise ValueError(v)

    @field_validator("backend_base_url", mode="before")
    @classmethod
    def normalize_base_url(cls, value: str) -> str:
        cleaned = str(value or "").strip().rstrip("/")
        if not cleaned:
            raise ValueError("BACKEND_BASE_URL is required")
        return cleaned

    @field_validator("backend_api_key", "upstream_kpis_path", "cors_origin_regex", mode="before")
    @classmethod
    def normalize_optional_strings(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = str(value).strip()
        return cleaned or None

    @model_validator(mode="after")
    def validate_thresholds(self) -> "Settings":
        if self.critical_stock_flat_threshold >= self.low_stock_flat_threshold:
            raise ValueError(
                "CRITICAL_STOCK_FLAT_THRESHOLD must be below LOW_STOCK_FLAT_THRESHOLD"
            )
        if self.expiry_critical_days > self.expiry_warning_days:
            raise ValueError("EXPIRY_CRITICAL_DAYS cannot exceed EXPIRY_WARNING_DAYS")
        if self.margin_warning_pct > self.margin_good_pct:
            raise ValueError("MARGIN_WARNING_PCT cannot exceed MARGIN_GOOD_PCT")

        env_value = self.env.lower().strip()
        if env_value in {"prod", "production"} and "*" in self.cors_origins:
            raise ValueError("CORS_ORIGINS cannot contain '*' in production")
        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        enable_decoding=False,
    )


settings = Settings()
