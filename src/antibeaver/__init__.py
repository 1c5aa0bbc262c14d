"""
antibeaver: traffic governance for multi-agent systems.

When outbound latency rises, agent messages ("thoughts") are buffered
instead of sent; once the network recovers the backlog is synthesized
into one coherent message.
"""

__version__ = "0.3.0"

# governance must load before observability/storage, which import from it
from .governance import (
    Governor,
    GovernancePolicy,
    Priority,
    SignalSnapshot,
    Verdict,
    evaluate,
    render,
)
from .observability import LatencyTracker
from .storage import ThoughtStore

__all__ = [
    "__version__",
    "Governor",
    "GovernancePolicy",
    "Priority",
    "SignalSnapshot",
    "Verdict",
    "evaluate",
    "render",
    "LatencyTracker",
    "ThoughtStore",
]
