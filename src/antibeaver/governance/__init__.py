"""
antibeaver Governance Layer

Buffering decisions, synthesis prompt generation, priority tiers,
input validation and operator controls.

Usage:
    from antibeaver.governance import Governor, GovernancePolicy

    governor = Governor(GovernancePolicy.load("config/governance.yaml"))
    if governor.evaluate().buffering:
        governor.buffer("Deploy finished, all green", priority="P1")
    print(governor.flush().prompt)
"""

from .priority import Priority, PRIORITY_TOKENS
from .validators import (
    GovernanceError,
    ValidationError,
    InvalidPriorityError,
    EmptyContentError,
    FlushConflictError,
    MAX_CONTENT_BYTES,
    normalize_priority,
    normalize_content,
    normalize_latency,
)
from .decision import SignalSnapshot, Verdict, evaluate
from .synthesis import BufferedThought, render, escape_content, unescape_content
from .policy import GovernancePolicy
from .controls import ManualControls, ControlState
from .engine import Governor, FlushResult

__all__ = [
    # Tiers & validation
    "Priority",
    "PRIORITY_TOKENS",
    "GovernanceError",
    "ValidationError",
    "InvalidPriorityError",
    "EmptyContentError",
    "FlushConflictError",
    "MAX_CONTENT_BYTES",
    "normalize_priority",
    "normalize_content",
    "normalize_latency",
    # Decision
    "SignalSnapshot",
    "Verdict",
    "evaluate",
    # Synthesis
    "BufferedThought",
    "render",
    "escape_content",
    "unescape_content",
    # Runtime
    "GovernancePolicy",
    "ManualControls",
    "ControlState",
    "Governor",
    "FlushResult",
]
