import json
from pathlib import Path

from insights.main import app


def test_openapi_paths_snapshot():
    snapshot_path = Path(__file__).parent / "snapshots" / "openapi_paths_snapshot.json"
    expected_paths = json.loads(snapshot_path.read_text(encoding="utf-8"))
    actual_paths = sorted(app.openapi()["paths"].keys())
    assert actual_paths == expected_paths


def test_report_routes_document_error_envelope():
    paths = app.openapi()["paths"]
    sales = paths["/reports/sales"]["get"]["responses"]
    assert {"400", "422", "500", "503"} <= set(sales)
    assert "404" in paths["/reports/traceability/{batch_code}"]["get"]["responses"]


def test_top_n_documents_the_positive_bound():
    paths = app.openapi()["paths"]
    for path in ("/reports/sales", "/reports/best-sellers"):
        params = {param["name"]: param for param in paths[path]["get"]["parameters"]}
        assert "at least 1" in params["top_n"]["description"]
