"""In-memory counters describing the exporter's own refresh activity.

These are reported on the health endpoint, not in the Prometheus exposition.
"""

from __future__ import annotations

import threading
from collections import Counter
from typing import Dict


class MetricsRegistry:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: Counter[str] = Counter()

    def increment(self, name: str, value: int = 1) -> None:
        with self._lock:
            self._counters[name] += value

    def get(self, name: str) -> int:
        with self._lock:
            return self._counters[name]

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._counters)
