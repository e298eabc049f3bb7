from functools import lru_cache

from insights.core.config import settings
from insights.services.report_service import ReportService
from insights.services.snapshot_provider import BackendSnapshotProvider


@lru_cache(maxsize=1)
def get_report_service() -> ReportService:
    return ReportService(BackendSnapshotProvider(settings))
