"""Prometheus metrics for change watchers."""

from prometheus_client import Counter, Histogram, start_http_server

# Public exports
__all__ = [
    "POLL_LATENCY",
    "RELOADS_TOTAL",
    "RELOADS_SKIPPED_TOTAL",
    "WATCH_EVENTS_TOTAL",
    "start_metrics_server",
]

# Histogram tracking how long a single poll takes, reload included.
POLL_LATENCY = Histogram(
    "change_watcher_poll_seconds",
    "Time spent draining events in one poll",
)

RELOADS_TOTAL = Counter(
    "change_watcher_reloads_total",
    "Total number of reloads fired",
)

RELOADS_SKIPPED_TOTAL = Counter(
    "change_watcher_reloads_skipped_total",
    "Polls whose modifications arrived before the debounce interval elapsed",
)

WATCH_EVENTS_TOTAL = Counter(
    "change_watcher_events_total",
    "Filesystem events accepted by the extension filter",
    ["kind"],
)


def start_metrics_server(port: int = 8000) -> None:
    """Start an HTTP server to expose Prometheus metrics."""
    start_http_server(port)
