import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, Mapping, Protocol

import requests

from insights.core.config import Settings, settings
from insights.core.errors import DataUnavailable
from insights.core.observability import log_event
from insights.schemas.reports import ReportQuery
from insights.services.snapshot import COLLECTION_MODELS, Snapshot, build_snapshot

_UPSTREAM_KPI_KEYS = {
    "conversionRate": "conversion_rate",
    "conversion_rate": "conversion_rate",
    "customerRetention": "customer_retention",
    "customer_retention": "customer_retention",
    "pendingReceiptsCount": "pending_receipts_count",
    "pending_receipts_count": "pending_receipts_count",
}


class SnapshotProvider(Protocol):
    name: str

    def fetch(self, query: ReportQuery) -> Snapshot:
        ...


class StaticSnapshotProvider:
    """Serves a snapshot the caller already holds."""

    name = "static"

    def __init__(self, snapshot: Snapshot):
        self._snapshot = snapshot

    def replace(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot

    def fetch(self, query: ReportQuery) -> Snapshot:
        return self._snapshot


class BackendSnapshotProvider:
    """Reads every collection from the REST backend, one request per collection.

    Requests run concurrently; parsing starts only after all of them return.
    Failures raise DataUnavailable and are never retried here.
    """

    name = "backend"

    def __init__(self, config: Settings | None = None, session: requests.Session | None = None):
        self.config = config or settings
        self.session = session or requests.Session()
        if self.config.backend_api_key:
            self.session.headers["Authorization"] = f"Bearer {self.config.backend_api_key}"

    def collection_paths(self) -> dict[str, str]:
        return {
            "categories": self.config.categories_path,
            "products": self.config.products_path,
            "stores": self.config.stores_path,
            "batches": self.config.batches_path,
            "stock": self.config.stock_path,
            "movements": self.config.movements_path,
            "sales": self.config.sales_path,
            "sale_items": self.config.sale_items_path,
        }

    def _url(self, path: str) -> str:
        return f"{self.config.backend_base_url}/{path.lstrip('/')}"

    def _get_json(self, collection: str, path: str) -> Any:
        url = self._url(path)
        try:
            response = self.session.get(url, timeout=self.config.backend_timeout_seconds)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise DataUnavailable(
                f"Could not load {collection} from backend: {exc}",
                collection=collection,
            ) from exc
        except ValueError as exc:
            raise DataUnavailable(
                f"Backend returned a non-JSON body for {collection}",
                collection=collection,
            ) from exc

    def _fetch_collection(self, collection: str, path: str) -> list[Any]:
        payload = self._get_json(collection, path)
        if isinstance(payload, dict) and isinstance(payload.get("content"), list):
            payload = payload["content"]
        if not isinstance(payload, list):
            raise DataUnavailable(
                f"Backend payload for {collection} is not a list",
                collection=collection,
            )
        return payload

    def _fetch_upstream(self) -> tuple[dict[str, float], list[str]]:
        path = self.config.upstream_kpis_path
        if not path:
            return {}, []
        try:
            payload = self._get_json("upstream_kpis", path)
        except DataUnavailable as exc:
            log_event("upstream_kpis_unavailable", level=logging.WARNING, error=exc.message)
            return {}, []
        if not isinstance(payload, dict):
            log_event("upstream_kpis_unavailable", level=logging.WARNING, error="payload is not an object")
            return {}, []
        return normalize_upstream_kpis(payload), upstream_system_alerts(payload)

    def fetch(self, query: ReportQuery) -> Snapshot:
        paths = self.collection_paths()
        with ThreadPoolExecutor(max_workers=self.config.backend_fetch_workers) as pool:
            futures = {
                name: pool.submit(self._fetch_collection, name, path)
                for name, path in paths.items()
            }
            upstream_future = pool.submit(self._fetch_upstream)
            collections: dict[str, list[Any]] = {}
            for name, future in futures.items():
                try:
                    collections[name] = future.result()
                except DataUnavailable as exc:
                    log_event(
                        "snapshot_fetch_failed",
                        level=logging.WARNING,
                        collection=name,
                        error=exc.message,
                    )
                    raise
            upstream_kpis, system_alerts = upstream_future.result()

        snapshot = build_snapshot(
            collections,
            upstream_kpis=upstream_kpis,
            system_alerts=system_alerts,
        )
        log_event(
            "snapshot_fetched",
            provider=self.name,
            version=snapshot.version[:12],
            counts={name: len(getattr(snapshot, name)) for name in COLLECTION_MODELS},
            skipped_rows=len(snapshot.parse_warnings),
        )
        return snapshot


def normalize_upstream_kpis(payload: Mapping[str, Any]) -> dict[str, float]:
    source: Mapping[str, Any] = payload.get("kpis") if isinstance(payload.get("kpis"), dict) else payload
    merged: dict[str, Any] = {**source}
    alerts = payload.get("alerts")
    if isinstance(alerts, dict):
        merged.update(alerts)

    kpis: dict[str, float] = {}
    for raw_key, value in merged.items():
        key = _UPSTREAM_KPI_KEYS.get(raw_key)
        if key is None or value is None or isinstance(value, bool):
            continue
        try:
            kpis[key] = float(value)
        except (TypeError, ValueError):
            continue
    return kpis


def upstream_system_alerts(payload: Mapping[str, Any]) -> list[str]:
    alerts = payload.get("systemAlerts")
    nested = payload.get("alerts")
    if alerts is None and isinstance(nested, dict):
        alerts = nested.get("systemAlerts")
    if not isinstance(alerts, list):
        return []
    return [str(alert) for alert in alerts]


def static_provider_from_rows(
    collections: Mapping[str, Iterable[Any]],
    *,
    upstream_kpis: Mapping[str, float] | None = None,
    system_alerts: Iterable[str] = (),
) -> StaticSnapshotProvider:
    return StaticSnapshotProvider(
        build_snapshot(collections, upstream_kpis=upstream_kpis, system_alerts=system_alerts)
    )
