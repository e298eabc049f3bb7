from insights.core.money import pct, to_money
from insights.models import SaleType
from insights.schemas.reports import (
    BestSellingProductOut,
    BestSellingProductsReportOut,
    DailySalesOut,
    ReportQuery,
    SalesByStoreOut,
    SalesByTypeOut,
    SalesMetricsOut,
    SalesReportOut,
    TopSellingProductOut,
)
from insights.services.aggregation import (
    SalesTotals,
    sales_by_day,
    sales_by_store,
    sales_by_type,
    sales_totals,
    totals_by_product,
)
from insights.services.filters import select_sales
from insights.services.quality import QualityLog
from insights.services.ranking import rank_products
from insights.services.snapshot import Snapshot


def _metrics(totals: SalesTotals, overall: SalesTotals) -> SalesMetricsOut:
    return SalesMetricsOut(
        count=totals.count,
        revenue=float(to_money(totals.revenue)),
        percentage=pct(totals.revenue, overall.revenue),
    )


def build_sales_report(snapshot: Snapshot, query: ReportQuery, *, top_products: int) -> SalesReportOut:
    quality = QualityLog(snapshot.parse_warnings)
    working = select_sales(snapshot, query, quality)
    overall = sales_totals(working.sales)
    by_type = sales_by_type(working.sales)

    ranked = rank_products(totals_by_product(working.lines).values(), top_n=top_products)

    return SalesReportOut(
        period=query.period,
        start_date=query.start_date,
        end_date=query.end_date,
        total_sales=overall.count,
        total_revenue=float(to_money(overall.revenue)),
        average_ticket=float(to_money(overall.average_ticket)),
        sales_by_type=SalesByTypeOut(
            retail=_metrics(by_type[SaleType.RETAIL], overall),
            wholesale=_metrics(by_type[SaleType.WHOLESALE], overall),
        ),
        sales_by_store=[
            SalesByStoreOut(
                store_id=row.store_id,
                store_name=row.store_name,
                sales_count=row.totals.count,
                revenue=float(to_money(row.totals.revenue)),
                percentage=pct(row.totals.revenue, overall.revenue),
            )
            for row in sales_by_store(working.sales, snapshot.index)
        ],
        top_selling_products=[
            TopSellingProductOut(
                rank=entry.rank,
                product_id=entry.totals.product.id,
                product_name=entry.totals.product.name,
                product_code=entry.totals.product.code,
                quantity_sold=entry.totals.quantity_sold,
                revenue=float(to_money(entry.totals.revenue)),
            )
            for entry in ranked
        ],
        daily_sales=[
            DailySalesOut(
                date=day,
                sales_count=totals.count,
                revenue=float(to_money(totals.revenue)),
            )
            for day, totals in sales_by_day(working.sales).items()
        ],
        warnings=quality.as_list(),
    )


def build_best_sellers_report(
    snapshot: Snapshot,
    query: ReportQuery,
    *,
    top_n: int,
) -> BestSellingProductsReportOut:
    quality = QualityLog(snapshot.parse_warnings)
    working = select_sales(snapshot, query, quality)
    product_totals = totals_by_product(working.lines)
    ranked = rank_products(
        product_totals.values(),
        top_n=top_n,
        whole_catalog_share=query.whole_catalog_share,
    )
    index = snapshot.index

    return BestSellingProductsReportOut(
        period=query.period,
        start_date=query.start_date,
        end_date=query.end_date,
        top_n=top_n,
        market_share_basis="catalog" if query.whole_catalog_share else "top_n",
        total_products_sold=sum(row.quantity_sold for row in product_totals.values()),
        products=[
            BestSellingProductOut(
                rank=entry.rank,
                product_id=entry.totals.product.id,
                product_name=entry.totals.product.name,
                product_code=entry.totals.product.code,
                category_name=index.category_name(entry.totals.product.category_id),
                quantity_sold=entry.totals.quantity_sold,
                revenue=float(to_money(entry.totals.revenue)),
                average_price=float(to_money(entry.totals.average_price)),
                sales_count=entry.totals.sales_count,
                market_share=float(to_money(entry.market_share)),
            )
            for entry in ranked
        ],
        warnings=quality.as_list(),
    )
