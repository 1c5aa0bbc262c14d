"""
Governor: wires the tracker, the decision engine, the synthesis formatter
and the thought store into the operations the CLI exposes.

Responsibilities:
  - Rebuild the in-memory latency window from durable history on startup
  - Build a SignalSnapshot from tracker + control state and evaluate it
  - Validate and persist buffered thoughts
  - Flush backlogs: render the synthesis prompt, then mark the thoughts
    synthesized and write the synthesis event
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from ..observability.tracker import LatencyTracker
from ..storage.store import ThoughtStore
from .controls import ManualControls
from .decision import SignalSnapshot, Verdict, evaluate
from .policy import GovernancePolicy
from .priority import Priority
from .synthesis import BufferedThought, render
from .validators import normalize_content, normalize_latency, normalize_priority


@dataclass
class FlushResult:
    """Outcome of flushing one agent's backlog."""
    agent_id: str
    prompt: str
    thoughts: List[BufferedThought] = field(default_factory=list)
    synthesized: int = 0

    def to_dict(self) -> dict:
        return {
            "agent_id": self.agent_id,
            "synthesized": self.synthesized,
            "prompt": self.prompt,
        }


class Governor:
    """Central traffic-governance controller for one local process."""

    def __init__(
        self,
        policy: GovernancePolicy,
        store: Optional[ThoughtStore] = None,
        tracker: Optional[LatencyTracker] = None,
    ) -> None:
        self.policy = policy
        self.logger = logging.getLogger("Governor")
        self.store = store or ThoughtStore(policy.resolved_db_path)
        self.tracker = tracker or LatencyTracker(policy.tracker_capacity)
        self.controls = ManualControls(self.store)
        self._warm_tracker()

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "Governor":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _warm_tracker(self) -> None:
        """Seed the tracker with durable samples still inside the policy window."""
        samples = self.store.recent_latencies(self.policy.latency_window_s)
        for timestamp, latency_ms in samples[-self.tracker.max_samples:]:
            self.tracker.record(latency_ms, timestamp=timestamp)
        if samples:
            self.logger.debug("Warmed tracker with %d latency samples", len(samples))

    # --- Decision ---

    def snapshot(self) -> SignalSnapshot:
        window = self.policy.latency_window_s
        state = self.controls.state
        return SignalSnapshot(
            avg_latency_ms=self.tracker.average(window, 0),
            max_latency_ms=self.tracker.max(window, 0),
            threshold_ms=self.policy.threshold_ms,
            forced=state.forced,
            simulated_ms=state.simulated_ms,
            halted=state.halted,
        )

    def evaluate(self) -> Verdict:
        verdict = evaluate(self.snapshot())
        if verdict.buffering:
            self.logger.warning("Buffering active: %s", verdict.reason)
        return verdict

    def status(self) -> dict:
        """Full governance status for `antibeaver status`."""
        snapshot = self.snapshot()
        verdict = evaluate(snapshot)
        return {
            "pending": self.store.pending_count(),
            "halted": snapshot.halted,
            "forced_buffering": snapshot.forced,
            "simulated_ms": snapshot.simulated_ms,
            "buffering": verdict.buffering,
            "reason": verdict.reason,
            "latency_ms": verdict.latency_ms,
            "avg_latency_ms": snapshot.avg_latency_ms,
            "max_latency_ms": snapshot.max_latency_ms,
            "threshold_ms": snapshot.threshold_ms,
            "tracker": self.tracker.status(self.policy.latency_window_s),
        }

    # --- Latency ---

    def record_latency(self, latency_ms: int) -> int:
        """Persist a latency sample and feed it to the live window."""
        latency_ms = normalize_latency(latency_ms)
        self.store.record_latency(latency_ms)
        self.tracker.record(latency_ms)
        if latency_ms > self.policy.threshold_ms:
            self.logger.warning(
                "Latency %dms above threshold %dms", latency_ms, self.policy.threshold_ms,
            )
        return latency_ms

    # --- Thoughts ---

    def buffer(
        self,
        content: str,
        priority: Union[Priority, str, None] = None,
        agent_id: Optional[str] = None,
        channel: Optional[str] = None,
        target: str = "",
    ) -> BufferedThought:
        """Validate and persist a thought. Raises ValidationError on bad input."""
        content = normalize_content(content, self.policy.max_content_bytes)
        tier = normalize_priority(priority)
        agent_id = agent_id or self.policy.default_agent
        channel = channel or self.policy.default_channel

        thought_id = self.store.insert_thought(agent_id, channel, target, content, tier)
        self.logger.info(
            "Buffered thought %d (priority %s, agent %s)", thought_id, tier.value, agent_id,
        )
        return self.store.get_thought(thought_id)

    def flush(self, agent_id: Optional[str] = None) -> FlushResult:
        """Synthesize one agent's backlog.

        An empty backlog yields the empty-backlog notice and writes nothing.
        """
        agent_id = agent_id or self.policy.default_agent
        thoughts = self.store.pending_thoughts(agent_id)
        prompt = render(thoughts)
        if not thoughts:
            return FlushResult(agent_id=agent_id, prompt=prompt)

        synthesized = self.store.mark_synthesized(
            agent_id, [t.id for t in thoughts], prompt,
        )
        return FlushResult(
            agent_id=agent_id,
            prompt=prompt,
            thoughts=thoughts,
            synthesized=synthesized,
        )

    def flush_all(self) -> List[FlushResult]:
        """Flush every agent with a pending backlog, in agent-id order."""
        return [self.flush(agent_id) for agent_id in self.store.pending_agents()]

    def history(self, agent_id: Optional[str] = None, limit: Optional[int] = None) -> List[dict]:
        return self.store.synthesis_events(
            agent_id or self.policy.default_agent,
            limit if limit is not None else self.policy.history_limit,
        )
