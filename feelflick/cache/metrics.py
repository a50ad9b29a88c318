"""Prometheus counters for the recommendation cache.

Each cache instance owns its own CollectorRegistry, so tests (and several caches
in one process) never collide on metric registration.
"""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest

EVENTS_METRIC = "feelflick_cache_events"
ENTRIES_METRIC = "feelflick_cache_entries"
IN_FLIGHT_METRIC = "feelflick_cache_in_flight"


class CacheMetrics:
    """Hit / miss / expired / dedup / fetch / eviction counters for one cache."""

    def __init__(self, cache_name: str, registry: CollectorRegistry | None = None):
        self.cache_name = cache_name
        self.registry = registry or CollectorRegistry()
        self._events = Counter(
            EVENTS_METRIC,
            "Cache events by type",
            ["cache_name", "event"],
            registry=self.registry,
        )
        self._entries = Gauge(
            ENTRIES_METRIC,
            "Current number of cached entries",
            ["cache_name"],
            registry=self.registry,
        )
        self._in_flight = Gauge(
            IN_FLIGHT_METRIC,
            "Current number of fetches in flight",
            ["cache_name"],
            registry=self.registry,
        )

    def record(self, event: str, amount: int = 1) -> None:
        self._events.labels(cache_name=self.cache_name, event=event).inc(amount)

    def set_sizes(self, entries: int, in_flight: int) -> None:
        self._entries.labels(cache_name=self.cache_name).set(entries)
        self._in_flight.labels(cache_name=self.cache_name).set(in_flight)

    def count(self, event: str) -> float:
        value = self.registry.get_sample_value(
            f"{EVENTS_METRIC}_total",
            {"cache_name": self.cache_name, "event": event},
        )
        return value or 0.0

    def exposition(self) -> bytes:
        """Prometheus text format for this registry."""
        return generate_latest(self.registry)
