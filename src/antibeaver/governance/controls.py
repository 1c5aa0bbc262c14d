"""
Manual controls: operator levers over the buffering decision.

  - halt():      buffer everything, overriding all other signals
  - force():     buffer regardless of measured latency (manual override)
  - simulate():  inject a latency value, for drills and demos
  - resume():    clear halt, forced buffering and simulated latency at once

State lives in the ThoughtStore so it survives across CLI invocations;
each command runs in its own short-lived process.
"""

import logging
from dataclasses import dataclass

from ..storage.store import ThoughtStore
from .validators import normalize_latency


@dataclass
class ControlState:
    """Current operator control flags."""
    halted: bool = False
    forced: bool = False
    simulated_ms: int = 0


class ManualControls:
    """Persistent halt / force / simulate switches."""

    def __init__(self, store: ThoughtStore) -> None:
        self.store = store
        self.logger = logging.getLogger("ManualControls")

    def halt(self) -> None:
        """Halt the system. Idempotent."""
        self.store.set_halted(True)
        self.logger.critical("System HALTED: all messages will be buffered until resume")

    def force(self) -> None:
        """Force buffering on until resume."""
        self.store.set_forced(True)
        self.logger.warning("Forced buffering ENABLED")

    def simulate(self, latency_ms: int) -> int:
        """Set simulated latency; 0 clears it. Returns the stored value."""
        latency_ms = normalize_latency(latency_ms)
        self.store.set_simulated_latency(latency_ms)
        if latency_ms:
            self.logger.warning("Simulated latency set to %dms", latency_ms)
        else:
            self.logger.info("Simulated latency cleared")
        return latency_ms

    def resume(self) -> None:
        """Clear every manual control."""
        was = self.state
        self.store.set_halted(False)
        self.store.set_forced(False)
        self.store.set_simulated_latency(0)
        self.logger.info(
            "System RESUMED (was halted=%s, forced=%s, simulated=%dms)",
            was.halted, was.forced, was.simulated_ms,
        )

    @property
    def state(self) -> ControlState:
        return ControlState(
            halted=self.store.is_halted(),
            forced=self.store.is_forced(),
            simulated_ms=self.store.simulated_latency(),
        )
