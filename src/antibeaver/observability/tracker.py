"""
Rolling-window latency tracker.

Keeps the most recent N latency observations in memory and answers
windowed aggregate queries (average, max) for the buffering decision.

The window is a transient signal: it is not persisted and is rebuilt from
the durable latency history when a Governor starts. Safe for concurrent
use from multiple threads; every operation holds one lock for a bounded,
non-blocking critical section.
"""

import threading
import time
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional

from ..governance.validators import normalize_latency

DEFAULT_MAX_SAMPLES = 100


@dataclass(frozen=True)
class LatencySample:
    """Single latency observation."""
    latency_ms: int
    timestamp: float = field(default_factory=time.time)


class LatencyTracker:
    """Bounded FIFO of latency samples with windowed aggregates."""

    def __init__(self, max_samples: int = DEFAULT_MAX_SAMPLES) -> None:
        if max_samples <= 0:
            max_samples = 1  # A tracker always holds at least one sample
        self.max_samples = max_samples
        self.logger = logging.getLogger("Tracker")
        self._lock = threading.Lock()
        # deque(maxlen) evicts exactly the oldest sample on overflow
        self._samples: Deque[LatencySample] = deque(maxlen=max_samples)

    def record(self, latency_ms: int, timestamp: Optional[float] = None) -> LatencySample:
        """Record a sample. Negative latency is clamped to zero, never rejected."""
        sample = LatencySample(
            latency_ms=normalize_latency(latency_ms),
            timestamp=time.time() if timestamp is None else timestamp,
        )
        with self._lock:
            self._samples.append(sample)
        self.logger.debug("Recorded latency %dms", sample.latency_ms)
        return sample

    def average(self, window_s: float, fallback: int) -> int:
        """Mean latency of samples newer than now - window_s, or fallback if none."""
        values = self._window(window_s)
        if not values:
            return fallback
        # Integer division: samples are non-negative, so this truncates toward zero
        return sum(values) // len(values)

    def max(self, window_s: float, fallback: int) -> int:
        """Worst latency of samples newer than now - window_s, or fallback if none."""
        values = self._window(window_s)
        if not values:
            return fallback
        return max(values)

    def count(self) -> int:
        with self._lock:
            return len(self._samples)

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()

    def status(self, window_s: float = 60.0) -> dict:
        """Snapshot for dashboards and `antibeaver status --json`."""
        return {
            "count": self.count(),
            "avg_ms": self.average(window_s, 0),
            "max_ms": self.max(window_s, 0),
            "max_samples": self.max_samples,
        }

    def _window(self, window_s: float) -> list:
        cutoff = time.time() - window_s
        with self._lock:
            return [s.latency_ms for s in self._samples if s.timestamp > cutoff]
