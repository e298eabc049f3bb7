import logging
import time
from datetime import date
from typing import Callable

from pydantic import BaseModel

from insights.core.config import Settings, settings
from insights.core.errors import DataUnavailable
from insights.core.observability import log_event
from insights.schemas.reports import (
    BatchNotFoundOut,
    BestSellingProductsReportOut,
    ExecutiveDashboardOut,
    InventoryReportOut,
    ProductTraceabilityOut,
    ProfitabilityReportOut,
    ReportQuery,
    SalesReportOut,
    TraceabilityReportOut,
)
from insights.services.classification import Classifier
from insights.services.dashboard_service import build_executive_dashboard
from insights.services.filters import validate_query
from insights.services.inventory_service import build_inventory_report
from insights.services.profitability_service import build_profitability_report
from insights.services.report_cache import ReportCache
from insights.services.sales_service import build_best_sellers_report, build_sales_report
from insights.services.snapshot import Snapshot
from insights.services.snapshot_provider import SnapshotProvider
from insights.services.traceability import trace_batch, trace_product


class ReportService:
    """Entry point for every report.

    Each call validates the query, takes one snapshot from the provider and
    computes the report from that snapshot only. Results are memoized per
    snapshot version so identical requests against unchanged data are free.
    """

    def __init__(
        self,
        provider: SnapshotProvider,
        cache: ReportCache | None = None,
        config: Settings | None = None,
        classifier: Classifier | None = None,
    ):
        self.provider = provider
        self.config = config or settings
        self.cache = cache if cache is not None else ReportCache(
            max_entries=self.config.report_cache_max_entries
        )
        self.classifier = classifier or Classifier.from_settings(self.config)

    def _snapshot(self, kind: str, query: ReportQuery) -> Snapshot:
        try:
            return self.provider.fetch(query)
        except DataUnavailable as exc:
            log_event(
                "report_failed",
                level=logging.WARNING,
                report=kind,
                provider=self.provider.name,
                error=exc.message,
            )
            raise

    def _run(self, kind: str, query: ReportQuery, build: Callable[[Snapshot], BaseModel]):
        validate_query(query)
        snapshot = self._snapshot(kind, query)

        cached = self.cache.get(snapshot.version, kind, query)
        if cached is not None:
            log_event("report_served", report=kind, version=snapshot.version[:12], cached=True)
            return cached

        started = time.perf_counter()
        report = build(snapshot)
        self.cache.put(snapshot.version, kind, query, report)
        log_event(
            "report_served",
            report=kind,
            version=snapshot.version[:12],
            cached=False,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
            warnings=len(getattr(report, "warnings", ())),
        )
        return report

    def _with_as_of(self, query: ReportQuery) -> ReportQuery:
        if query.as_of_date is not None:
            return query
        return query.model_copy(update={"as_of_date": date.today()})

    def sales_report(self, query: ReportQuery) -> SalesReportOut:
        top_products = query.top_n or self.config.sales_report_top_products
        return self._run(
            "sales",
            query,
            lambda snapshot: build_sales_report(snapshot, query, top_products=top_products),
        )

    def inventory_report(self, query: ReportQuery) -> InventoryReportOut:
        query = self._with_as_of(query)
        return self._run(
            "inventory",
            query,
            lambda snapshot: build_inventory_report(
                snapshot, query, as_of=query.as_of_date, classifier=self.classifier
            ),
        )

    def profitability_report(self, query: ReportQuery) -> ProfitabilityReportOut:
        return self._run(
            "profitability",
            query,
            lambda snapshot: build_profitability_report(snapshot, query, classifier=self.classifier),
        )

    def best_sellers(self, query: ReportQuery) -> BestSellingProductsReportOut:
        top_n = query.top_n or self.config.default_top_n
        return self._run(
            "best_sellers",
            query,
            lambda snapshot: build_best_sellers_report(snapshot, query, top_n=top_n),
        )

    def traceability(self, batch_code: str) -> TraceabilityReportOut | BatchNotFoundOut:
        query = ReportQuery(batch_code=batch_code)
        return self._run(
            "traceability",
            query,
            lambda snapshot: trace_batch(
                snapshot, batch_code, tolerance=self.config.conservation_tolerance
            ),
        )

    def traceability_by_product(self, product_id: int, query: ReportQuery) -> ProductTraceabilityOut:
        query = query.model_copy(update={"product_id": product_id})
        return self._run(
            "traceability_by_product",
            query,
            lambda snapshot: trace_product(
                snapshot,
                product_id,
                start=query.start_date,
                end=query.end_date,
                tolerance=self.config.conservation_tolerance,
            ),
        )

    def executive_dashboard(self, query: ReportQuery) -> ExecutiveDashboardOut:
        query = self._with_as_of(query)
        return self._run(
            "dashboard",
            query,
            lambda snapshot: build_executive_dashboard(
                snapshot,
                query,
                as_of=query.as_of_date,
                classifier=self.classifier,
                default_days=self.config.dashboard_default_window_days,
            ),
        )
