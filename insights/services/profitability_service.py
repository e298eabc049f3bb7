from insights.core.money import to_money
from insights.schemas.reports import (
    ProductProfitabilityOut,
    ProfitabilityReportOut,
    ProfitLineOut,
    ReportQuery,
)
from insights.services.aggregation import (
    GroupProfit,
    overall_profit,
    profit_by_category,
    profit_by_store,
    totals_by_product,
)
from insights.services.classification import Classifier
from insights.services.filters import select_sales
from insights.services.quality import QualityLog
from insights.services.snapshot import Snapshot


def _profit_line(group: GroupProfit, classifier: Classifier) -> ProfitLineOut:
    totals = group.totals
    return ProfitLineOut(
        group_id=group.group_id,
        group_name=group.group_name,
        revenue=float(to_money(totals.revenue)),
        costs=float(to_money(totals.costs)),
        profit=float(to_money(totals.profit)),
        profit_margin=float(to_money(totals.margin_pct)),
        margin_health=classifier.margin_health(totals.margin_pct).value,
    )


def build_profitability_report(
    snapshot: Snapshot,
    query: ReportQuery,
    *,
    classifier: Classifier,
) -> ProfitabilityReportOut:
    quality = QualityLog(snapshot.parse_warnings)
    working = select_sales(snapshot, query, quality)
    overall = overall_profit(working.lines)

    products = sorted(
        totals_by_product(working.lines).values(),
        key=lambda row: (-row.revenue, row.product.name, row.product.id),
    )

    return ProfitabilityReportOut(
        period=query.period,
        start_date=query.start_date,
        end_date=query.end_date,
        total_revenue=float(to_money(overall.revenue)),
        total_costs=float(to_money(overall.costs)),
        gross_profit=float(to_money(overall.profit)),
        profit_margin=float(to_money(overall.margin_pct)),
        margin_health=classifier.margin_health(overall.margin_pct).value,
        profit_by_product=[
            ProductProfitabilityOut(
                group_id=row.product.id,
                group_name=row.product.name,
                product_code=row.product.code,
                quantity_sold=row.quantity_sold,
                average_price=float(to_money(row.average_price)),
                revenue=float(to_money(row.revenue)),
                costs=float(to_money(row.costs)),
                profit=float(to_money(row.profit)),
                profit_margin=float(to_money(row.margin_pct)),
                margin_health=classifier.margin_health(row.margin_pct).value,
            )
            for row in products
        ],
        profit_by_category=[
            _profit_line(group, classifier)
            for group in profit_by_category(working.lines, snapshot.index)
        ],
        profit_by_store=[
            _profit_line(group, classifier)
            for group in profit_by_store(working.lines, snapshot.index)
        ],
        warnings=quality.as_list(),
    )
