"""Rolling metrics for gateway requests and panel backend calls.

Names are dotted: `api.<path>` for HTTP requests handled by the gateway and
`remote.<operation>` for calls made to the panel file API.
"""
from __future__ import annotations

from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
import time
from typing import Deque, Dict, Iterator, Optional

# Transfers legitimately take minutes; everything else should be quick.
SLOW_OPERATIONS = {
    "remote.upload": 600_000,
    "remote.download": 600_000,
    "remote.archive": 600_000,
}


@dataclass(frozen=True)
class Sample:
    ok: bool
    duration_ms: int
    at: float


class MetricsCollector:
    """Keeps the last `window_size` samples per name."""

    def __init__(self, window_size: int = 200) -> None:
        self._window_size = window_size
        self._samples: Dict[str, Deque[Sample]] = {}
        self._last_alert: Dict[str, float] = {}

    def record(self, name: str, *, ok: bool, duration_ms: int) -> None:
        window = self._samples.get(name)
        if window is None:
            window = self._samples[name] = deque(maxlen=self._window_size)
        window.append(Sample(ok=ok, duration_ms=max(0, duration_ms), at=time.time()))

    @contextmanager
    def timed(self, name: str) -> Iterator[None]:
        """Time the block; leaving it with an exception records a failure."""
        start = time.perf_counter()
        ok = False
        try:
            yield
            ok = True
        finally:
            self.record(name, ok=ok, duration_ms=int((time.perf_counter() - start) * 1000))

    def reset(self) -> None:
        self._samples.clear()
        self._last_alert.clear()

    @staticmethod
    def _summarize(window: Deque[Sample]) -> dict:
        durations = sorted(sample.duration_ms for sample in window)
        total = len(durations)
        errors = sum(1 for sample in window if not sample.ok)
        last_error: Optional[float] = None
        for sample in reversed(window):
            if not sample.ok:
                last_error = sample.at
                break
        return {
            "count": total,
            "errors": errors,
            "error_rate": round(errors / total, 3),
            "avg_ms": int(sum(durations) / total),
            "p95_ms": durations[min(total - 1, int(total * 0.95))],
            "last_error_at": last_error,
        }

    def snapshot(self, prefix: str = "") -> dict:
        return {
            name: self._summarize(window)
            for name, window in sorted(self._samples.items())
            if window and name.startswith(prefix)
        }

    def should_alert(
        self,
        name: str,
        *,
        error_rate: float = 0.2,
        avg_ms: Optional[int] = None,
        min_interval_s: int = 60,
    ) -> bool:
        """True at most once per interval when a window is failing or slow."""
        window = self._samples.get(name)
        if not window or len(window) < 5:
            return False
        summary = self._summarize(window)
        limit = avg_ms if avg_ms is not None else SLOW_OPERATIONS.get(name, 2000)
        if summary["error_rate"] < error_rate and summary["avg_ms"] < limit:
            return False
        now = time.time()
        if now - self._last_alert.get(name, 0.0) < min_interval_s:
            return False
        self._last_alert[name] = now
        return True


metrics = MetricsCollector()
