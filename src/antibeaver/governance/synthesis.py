"""
Synthesis prompt generation.

Once the network recovers, an agent's backlog of buffered thoughts is
folded into one prompt that asks the agent to reconcile the backlog
against current channel state and send ONE coherent message.

Guarantees:
  - Deterministic: output depends on the set of thoughts, not their input order
  - Ranked: CRITICAL before NORMAL before LOW, oldest first within a tier
  - Safe quoting: backslash, double quote and newline are escaped, in that order
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from .priority import Priority

STATUS_PENDING = "pending"
STATUS_SYNTHESIZED = "synthesized"

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

EMPTY_BACKLOG_NOTICE = "**SYSTEM: No buffered thoughts to synthesize.**"

HEADER = "**SYSTEM: NETWORK RECOVERED**"

CLOSING_INSTRUCTIONS = (
    "**TASK:** Review against current channel state.\n"
    "- Discard obsolete/superseded thoughts\n"
    "- Synthesize remaining into ONE coherent message\n"
    "- Do not apologize or mention delays"
)


def utcnow() -> datetime:
    """Naive UTC timestamp, the form SQLite hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(dt: datetime) -> datetime:
    """Aware datetimes are converted to UTC; naive ones are taken as UTC already."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass
class BufferedThought:
    """A message an agent drafted while congested.

    created_at is UTC. Naive values are taken as UTC; aware values are
    converted when sorted or rendered.
    """
    content: str
    priority: Priority = Priority.NORMAL
    created_at: datetime = field(default_factory=utcnow)
    agent_id: str = "main"
    channel: str = "cli"
    target: str = ""
    status: str = STATUS_PENDING
    id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "channel": self.channel,
            "target": self.target,
            "content": self.content,
            "priority": self.priority.value,
            "created_at": as_naive_utc(self.created_at).strftime(TIMESTAMP_FORMAT),
            "status": self.status,
        }


def escape_content(content: str) -> str:
    """Quote content for a double-quoted prompt line.

    Backslashes go first so the escapes added afterwards are not doubled.
    """
    content = content.replace("\\", "\\\\")
    content = content.replace('"', '\\"')
    content = content.replace("\n", "\\n")
    return content


def unescape_content(escaped: str) -> str:
    """Inverse of escape_content, scanning left to right so escapes never overlap."""
    result = []
    i = 0
    while i < len(escaped):
        ch = escaped[i]
        if ch == "\\" and i + 1 < len(escaped):
            nxt = escaped[i + 1]
            if nxt == "n":
                result.append("\n")
                i += 2
                continue
            if nxt in ('"', "\\"):
                result.append(nxt)
                i += 2
                continue
        result.append(ch)
        i += 1
    return "".join(result)


def sort_thoughts(thoughts: Iterable[BufferedThought]) -> List[BufferedThought]:
    """Return a new list ranked by tier, then creation time.

    id and content break remaining ties so the order is total.
    """
    return sorted(
        thoughts,
        key=lambda t: (t.priority.rank, as_naive_utc(t.created_at), t.id if t.id is not None else -1, t.content),
    )


def render(thoughts: Iterable[BufferedThought]) -> str:
    """Render the synthesis prompt for a backlog of buffered thoughts."""
    ranked = sort_thoughts(thoughts)
    if not ranked:
        return EMPTY_BACKLOG_NOTICE

    lines = [
        f'{i}. [{as_naive_utc(t.created_at).strftime(TIMESTAMP_FORMAT)}]{t.priority.tag} "{escape_content(t.content)}"'
        for i, t in enumerate(ranked, 1)
    ]

    count = len(ranked)
    noun = "message" if count == 1 else "messages"

    critical = sum(1 for t in ranked if t.priority is Priority.CRITICAL)
    critical_note = ""
    if critical:
        critical_note = (
            f"\n\n**Note:** {critical} CRITICAL thought(s) — "
            "preserve unless clearly obsolete."
        )

    return (
        f"{HEADER}\n\n"
        f"While congested, you drafted {count} {noun}:\n\n"
        + "\n".join(lines)
        + critical_note
        + "\n\n"
        + CLOSING_INSTRUCTIONS
    )
