from datetime import date

from fastapi import APIRouter, Depends, Path, Query

from insights.core.api_docs import error_responses
from insights.core.deps import get_report_service
from insights.core.errors import BatchNotFound
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
from insights.services.report_service import ReportService

router = APIRouter(prefix="/reports", tags=["reports"])


def report_query(
    start_date: date | None = Query(default=None, description="Filter from date (YYYY-MM-DD), inclusive"),
    end_date: date | None = Query(default=None, description="Filter to date (YYYY-MM-DD), inclusive"),
    store_id: int | None = Query(default=None, description="Restrict to one store"),
    category_id: int | None = Query(default=None, description="Restrict to one product category"),
    product_id: int | None = Query(default=None, description="Restrict to one product"),
) -> ReportQuery:
    return ReportQuery(
        start_date=start_date,
        end_date=end_date,
        store_id=store_id,
        category_id=category_id,
        product_id=product_id,
    )


@router.get(
    "/sales",
    response_model=SalesReportOut,
    summary="Sales report",
    responses={
        200: {
            "description": "Sales totals, breakdowns and daily series",
            "content": {
                "application/json": {
                    "example": {
                        "period": "2024-01-01 - 2024-01-31",
                        "start_date": "2024-01-01",
                        "end_date": "2024-01-31",
                        "total_sales": 2,
                        "total_revenue": 150.0,
                        "average_ticket": 75.0,
                        "sales_by_type": {
                            "retail": {"count": 1, "revenue": 100.0, "percentage": 66.67},
                            "wholesale": {"count": 1, "revenue": 50.0, "percentage": 33.33},
                        },
                        "sales_by_store": [],
                        "top_selling_products": [],
                        "daily_sales": [],
                        "warnings": [],
                    }
                }
            },
        },
        **error_responses(400, 422, 500, 503),
    },
)
def sales_report(
    query: ReportQuery = Depends(report_query),
    top_n: int | None = Query(
        default=None,
        description="How many top products to list; must be at least 1 (0 or less is rejected with 400)",
    ),
    service: ReportService = Depends(get_report_service),
):
    return service.sales_report(query.model_copy(update={"top_n": top_n}))


@router.get(
    "/inventory",
    response_model=InventoryReportOut,
    summary="Inventory report",
    responses=error_responses(400, 422, 500, 503),
)
def inventory_report(
    query: ReportQuery = Depends(report_query),
    as_of_date: date | None = Query(default=None, description="Reference day for expiry checks (defaults to today)"),
    service: ReportService = Depends(get_report_service),
):
    return service.inventory_report(query.model_copy(update={"as_of_date": as_of_date}))


@router.get(
    "/profitability",
    response_model=ProfitabilityReportOut,
    summary="Profitability report",
    responses=error_responses(400, 422, 500, 503),
)
def profitability_report(
    query: ReportQuery = Depends(report_query),
    service: ReportService = Depends(get_report_service),
):
    return service.profitability_report(query)


@router.get(
    "/best-sellers",
    response_model=BestSellingProductsReportOut,
    summary="Best-selling products",
    responses=error_responses(400, 422, 500, 503),
)
def best_sellers(
    query: ReportQuery = Depends(report_query),
    top_n: int | None = Query(
        default=None,
        description="Number of ranked products to return; must be at least 1 (0 or less is rejected with 400)",
    ),
    whole_catalog_share: bool = Query(
        default=False,
        description="Compute market share against every product sold instead of the returned top N",
    ),
    service: ReportService = Depends(get_report_service),
):
    return service.best_sellers(
        query.model_copy(update={"top_n": top_n, "whole_catalog_share": whole_catalog_share})
    )


@router.get(
    "/traceability/product/{product_id}",
    response_model=ProductTraceabilityOut,
    summary="Traceability for every batch of a product",
    responses=error_responses(400, 422, 500, 503),
)
def product_traceability(
    product_id: int = Path(description="Product id"),
    start_date: date | None = Query(default=None, description="Batches produced from (YYYY-MM-DD)"),
    end_date: date | None = Query(default=None, description="Batches produced until (YYYY-MM-DD)"),
    service: ReportService = Depends(get_report_service),
):
    return service.traceability_by_product(
        product_id, ReportQuery(start_date=start_date, end_date=end_date)
    )


@router.get(
    "/traceability/{batch_code}",
    response_model=TraceabilityReportOut,
    summary="Batch traceability",
    responses=error_responses(400, 404, 422, 500, 503),
)
def batch_traceability(
    batch_code: str = Path(description="Batch (lot) code"),
    service: ReportService = Depends(get_report_service),
):
    result = service.traceability(batch_code)
    if isinstance(result, BatchNotFoundOut):
        raise BatchNotFound(result.batch_code)
    return result


@router.get(
    "/dashboard",
    response_model=ExecutiveDashboardOut,
    summary="Executive dashboard",
    responses=error_responses(400, 422, 500, 503),
)
def executive_dashboard(
    query: ReportQuery = Depends(report_query),
    as_of_date: date | None = Query(default=None, description="Window end when end_date is omitted (defaults to today)"),
    service: ReportService = Depends(get_report_service),
):
    return service.executive_dashboard(query.model_copy(update={"as_of_date": as_of_date}))
