from collections import OrderedDict
from threading import Lock
from typing import Hashable

from pydantic import BaseModel


class ReportCache:
    """LRU of finished reports keyed by (snapshot version, report kind, query).

    Seeing a new snapshot version evicts everything computed from older ones.
    """

    def __init__(self, *, max_entries: int):
        self.max_entries = max_entries
        self._entries: OrderedDict[tuple, BaseModel] = OrderedDict()
        self._version: str | None = None
        self._lock = Lock()
        self.hits = 0
        self.misses = 0

    def get(self, version: str, kind: str, query: Hashable) -> BaseModel | None:
        key = (version, kind, query)
        with self._lock:
            self._observe_version(version)
            report = self._entries.get(key)
            if report is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return report

    def put(self, version: str, kind: str, query: Hashable, report: BaseModel) -> None:
        if self.max_entries <= 0:
            return
        with self._lock:
            self._observe_version(version)
            if version != self._version:
                return
            self._entries[(version, kind, query)] = report
            self._entries.move_to_end((version, kind, query))
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._version = None
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _observe_version(self, version: str) -> None:
        if version == self._version:
            return
        self._entries.clear()
        self._version = version
