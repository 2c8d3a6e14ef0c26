"""
Prometheus metrics exporter for the tracker.

Only low-cardinality labels are exported: the loop name. Per-asset values
(asset id, symbol) are never used as labels.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from prometheus_client import Counter, Gauge
from prometheus_client.registry import CollectorRegistry

if TYPE_CHECKING:
    from alphatrack.connectors.backoff import CircuitBreaker
    from alphatrack.finalization.machine import FinalizerMetrics

# Labels that would cause cardinality explosion
FORBIDDEN_LABELS = frozenset({"asset_id", "symbol", "url", "path", "ip", "api_key"})


class TrackerExporter:
    """
    Prometheus metrics for loop health, finalization and tracked state.

    Usage:
        exporter = TrackerExporter(registry=CollectorRegistry())
        exporter.record_loop("realtime", ok=True)
        exporter.update(finalizer_metrics=m, circuit_breaker=cb, active=3)
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry or CollectorRegistry()

        self._loop_runs = Counter(
            "alphatrack_loop_runs",
            "Scheduled loop iterations",
            ["loop"],
            registry=self._registry,
        )
        self._loop_failures = Counter(
            "alphatrack_loop_failures",
            "Scheduled loop iterations that failed or timed out",
            ["loop"],
            registry=self._registry,
        )
        self._finalizations = Counter(
            "alphatrack_finalizations",
            "Competitions transitioned to FINALIZED",
            registry=self._registry,
        )
        self._archive_write_failures = Counter(
            "alphatrack_archive_write_failures",
            "Failed writes of the finalized-competitions archive",
            registry=self._registry,
        )
        self._cb_transitions_to_open = Counter(
            "alphatrack_cb_transitions_to_open",
            "Times the upstream circuit breaker opened",
            registry=self._registry,
        )
        self._active_competitions = Gauge(
            "alphatrack_active_competitions",
            "Competitions currently LIVE",
            registry=self._registry,
        )
        self._tracked_assets = Gauge(
            "alphatrack_tracked_assets",
            "Assets in the latest ticker snapshot",
            registry=self._registry,
        )
        self._tail_tables = Gauge(
            "alphatrack_tail_tables",
            "Assets holding a tail table for the current day",
            registry=self._registry,
        )

        # Last seen totals, counters are incremented by delta
        self._last_transitions = 0
        self._last_write_failures = 0
        self._last_cb_transitions = 0

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def record_loop(self, loop: str, ok: bool) -> None:
        """Count one loop iteration."""
        self._loop_runs.labels(loop=loop).inc()
        if not ok:
            self._loop_failures.labels(loop=loop).inc()

    def update(
        self,
        finalizer_metrics: FinalizerMetrics | None = None,
        circuit_breaker: CircuitBreaker | None = None,
        *,
        active: int | None = None,
        tracked: int | None = None,
        tails: int | None = None,
    ) -> None:
        """Sync component counters and state gauges."""
        if finalizer_metrics is not None:
            delta = finalizer_metrics.transitions - self._last_transitions
            if delta > 0:
                self._finalizations.inc(delta)
            self._last_transitions = finalizer_metrics.transitions

            delta = finalizer_metrics.archive_write_failures - self._last_write_failures
            if delta > 0:
                self._archive_write_failures.inc(delta)
            self._last_write_failures = finalizer_metrics.archive_write_failures

        if circuit_breaker is not None:
            delta = circuit_breaker.transitions_to_open - self._last_cb_transitions
            if delta > 0:
                self._cb_transitions_to_open.inc(delta)
            self._last_cb_transitions = circuit_breaker.transitions_to_open

        if active is not None:
            self._active_competitions.set(active)
        if tracked is not None:
            self._tracked_assets.set(tracked)
        if tails is not None:
            self._tail_tables.set(tails)


# Counters are exported with the _total suffix
REQUIRED_METRIC_NAMES: frozenset[str] = frozenset(
    {
        "alphatrack_loop_runs_total",
        "alphatrack_loop_failures_total",
        "alphatrack_finalizations_total",
        "alphatrack_archive_write_failures_total",
        "alphatrack_cb_transitions_to_open_total",
        "alphatrack_active_competitions",
        "alphatrack_tracked_assets",
        "alphatrack_tail_tables",
    }
)
