from insights.schemas.common import DataQualityWarningOut
from insights.schemas.reports import ReportQuery
from insights.services.report_cache import ReportCache
from insights.services.report_service import ReportService
from insights.services.snapshot import build_snapshot
from insights.services.snapshot_provider import static_provider_from_rows


def _report(label: str) -> DataQualityWarningOut:
    return DataQualityWarningOut(code="marker", message=label)


def test_cache_hits_only_for_same_version_kind_and_query():
    cache = ReportCache(max_entries=8)
    query = ReportQuery(store_id=1)
    cache.put("v1", "sales", query, _report("a"))

    assert cache.get("v1", "sales", ReportQuery(store_id=1)).message == "a"
    assert cache.get("v1", "inventory", query) is None
    assert cache.get("v1", "sales", ReportQuery(store_id=2)) is None
    assert cache.hits == 1
    assert cache.misses == 2


def test_new_snapshot_version_evicts_older_reports():
    cache = ReportCache(max_entries=8)
    cache.put("v1", "sales", ReportQuery(), _report("old"))

    assert cache.get("v2", "sales", ReportQuery()) is None
    assert len(cache) == 0
    assert cache.get("v1", "sales", ReportQuery()) is None


def test_least_recently_used_entry_is_dropped():
    cache = ReportCache(max_entries=2)
    cache.put("v1", "sales", ReportQuery(store_id=1), _report("1"))
    cache.put("v1", "sales", ReportQuery(store_id=2), _report("2"))
    cache.get("v1", "sales", ReportQuery(store_id=1))
    cache.put("v1", "sales", ReportQuery(store_id=3), _report("3"))

    assert cache.get("v1", "sales", ReportQuery(store_id=2)) is None
    assert cache.get("v1", "sales", ReportQuery(store_id=1)) is not None
    assert len(cache) == 2


def test_disabled_cache_stores_nothing():
    cache = ReportCache(max_entries=0)
    cache.put("v1", "sales", ReportQuery(), _report("x"))
    assert len(cache) == 0


def test_service_recomputes_after_data_changes(rows):
    provider = static_provider_from_rows(rows)
    service = ReportService(provider, cache=ReportCache(max_entries=8))

    before = service.sales_report(ReportQuery())
    assert service.sales_report(ReportQuery()) is before

    rows["sales"][2]["totalAmount"] = 90
    rows["sales"][2]["subtotal"] = 90
    provider.replace(build_snapshot(rows))
    after = service.sales_report(ReportQuery())

    assert before.total_revenue == 210.0
    assert after.total_revenue == 240.0
