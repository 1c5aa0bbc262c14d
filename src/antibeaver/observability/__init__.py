"""
antibeaver Observability Layer

In-memory latency telemetry feeding the buffering decision.
"""

from .tracker import LatencyTracker, LatencySample

__all__ = [
    "LatencyTracker",
    "LatencySample",
]
