"""
Priority tiers for buffered thoughts.

Three fixed tiers govern both storage ordering and synthesis ranking:
  - CRITICAL (P0): must survive synthesis unless clearly obsolete
  - NORMAL   (P1): default tier
  - LOW      (P2): first candidates for discarding

The wire token (P0/P1/P2) is the enum value, so records and CLI flags
round-trip through Priority(token) without a lookup table.
"""

from enum import Enum


class Priority(Enum):
    CRITICAL = "P0"
    NORMAL = "P1"
    LOW = "P2"

    @property
    def rank(self) -> int:
        """Sort key: lower ranks are synthesized first."""
        return PRIORITY_RANKS[self]

    @property
    def tag(self) -> str:
        """Marker placed before the content in a synthesis prompt."""
        return PRIORITY_TAGS[self]


PRIORITY_RANKS = {
    Priority.CRITICAL: 0,
    Priority.NORMAL: 1,
    Priority.LOW: 2,
}

PRIORITY_TAGS = {
    Priority.CRITICAL: " [CRITICAL]",
    Priority.NORMAL: "",
    Priority.LOW: " [low]",
}

# Accepted tokens, in rank order. Case-sensitive.
PRIORITY_TOKENS = tuple(p.value for p in Priority)
