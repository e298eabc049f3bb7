import os
import sys

import requests

base_url = os.getenv("INSIGHTS_BASE_URL", "http://localhost:8000").rstrip("/")
start_date = os.getenv("INSIGHTS_START_DATE")
end_date = os.getenv("INSIGHTS_END_DATE")


def _get(path: str, **params):
    response = requests.get(
        f"{base_url}{path}",
        params={key: value for key, value in params.items() if value is not None},
        timeout=30,
    )
    response.raise_for_status()
    return response.json()


def main() -> int:
    window = {"start_date": start_date, "end_date": end_date}
    sales = _get("/reports/sales", **window)
    inventory = _get("/reports/inventory")
    best = _get("/reports/best-sellers", top_n=5, **window)
    dashboard = _get("/reports/dashboard", **window)

    print(f"Period: {sales['period']}")
    print(f"Sales: {sales['total_sales']} totalling {sales['total_revenue']:.2f}")
    print(f"Stock alerts: {inventory['stock_alerts']}")
    for product in best["products"]:
        print(f"  #{product['rank']} {product['product_name']}: {product['quantity_sold']} units")
    print(f"Inventory turnover: {dashboard['kpis']['inventory_turnover']}")
    if dashboard["kpis"]["unavailable_kpis"]:
        print(f"Unavailable KPIs: {', '.join(dashboard['kpis']['unavailable_kpis'])}")
    return 0


if __name__ == "__main__":
    try:
        raise SystemExit(main())
    except requests.RequestException as exc:
        print(f"Report probe failed: {exc}", file=sys.stderr)
        raise SystemExit(1)
