"""Zero-impact in-memory service metrics.

All counters are plain Python integers manipulated inside the single-threaded
async event loop: no locks, no I/O, no external dependencies.

``time.perf_counter_ns()`` is used for timing (monotonic, nanosecond
resolution, near-zero overhead).
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field


@dataclass
class ExtractionStats:
    """Accumulated statistics for browser extraction sessions."""

    runs: int = 0
    found: int = 0
    not_found: int = 0
    failed: int = 0
    total_duration_ns: int = 0

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable summary."""
        avg_ms = (
            round(self.total_duration_ns / self.runs / 1_000_000, 1)
            if self.runs
            else 0.0
        )
        return {
            "runs": self.runs,
            "found": self.found,
            "not_found": self.not_found,
            "failed": self.failed,
            "avg_duration_ms": avg_ms,
        }


@dataclass
class CacheStats:
    """Manifest cache lookups."""

    hits: int = 0
    misses: int = 0

    def snapshot(self) -> dict[str, object]:
        lookups = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_ratio": round(self.hits / lookups, 3) if lookups else 0.0,
        }


@dataclass
class MetricsCollector:
    """Central in-memory metrics collector.

    Thread-safety is not required; the async event loop is
    single-threaded, so plain integer increments are atomic enough.
    """

    _extraction: ExtractionStats = field(default_factory=ExtractionStats)
    _cache: CacheStats = field(default_factory=CacheStats)
    _coalesced: int = 0
    _start_ns: int = field(default_factory=time.perf_counter_ns)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_cache_hit(self) -> None:
        self._cache.hits += 1

    def record_cache_miss(self) -> None:
        self._cache.misses += 1

    def record_coalesced(self) -> None:
        """Record a request that joined an already running extraction."""
        self._coalesced += 1

    def record_extraction(self, outcome: str, duration_ns: int) -> None:
        """Record one finished extraction (found / not_found / failed)."""
        stats = self._extraction
        stats.runs += 1
        stats.total_duration_ns += duration_ns
        if outcome == "found":
            stats.found += 1
        elif outcome == "not_found":
            stats.not_found += 1
        else:
            stats.failed += 1

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self) -> dict[str, object]:
        """Return a JSON-serializable snapshot of all metrics."""
        uptime_ns = time.perf_counter_ns() - self._start_ns
        uptime_s = round(uptime_ns / 1_000_000_000, 1)

        return {
            "uptime_seconds": uptime_s,
            "cache": self._cache.snapshot(),
            "extraction": self._extraction.snapshot(),
            "coalesced_requests": self._coalesced,
        }
