"""
Input normalization shared by the CLI, the governor and the store.

Rules:
  - Priority: empty defaults to NORMAL, known tokens pass, anything else fails
  - Content: must contain non-whitespace; over-long text is truncated, not rejected
  - Latency: negative readings are measurement artifacts and clamp to zero;
    non-numeric text is rejected
"""

from typing import Optional, Union

from .priority import Priority, PRIORITY_TOKENS

MAX_CONTENT_BYTES = 50_000


class GovernanceError(Exception):
    """Base class for errors raised by antibeaver."""


class ValidationError(GovernanceError, ValueError):
    """Caller supplied a value that cannot be buffered."""


class InvalidPriorityError(ValidationError):
    def __init__(self, token: str) -> None:
        super().__init__(
            f"invalid priority: {token} (must be {', '.join(PRIORITY_TOKENS[:-1])}, "
            f"or {PRIORITY_TOKENS[-1]})"
        )
        self.token = token


class EmptyContentError(ValidationError):
    def __init__(self) -> None:
        super().__init__("thought content cannot be empty")


class FlushConflictError(GovernanceError):
    """A backlog changed underneath a flush (another flush got there first)."""

    def __init__(self, agent_id: str, expected: int, updated: int) -> None:
        super().__init__(
            f"concurrent flush detected for agent {agent_id}: "
            f"expected {expected} pending thoughts, {updated} still pending"
        )
        self.agent_id = agent_id
        self.expected = expected
        self.updated = updated


def normalize_priority(token: Union[str, Priority, None]) -> Priority:
    """Map a priority token to its tier. Lowercase variants are rejected."""
    if isinstance(token, Priority):
        return token
    if not token:
        return Priority.NORMAL
    if token not in PRIORITY_TOKENS:
        raise InvalidPriorityError(token)
    return Priority(token)


def normalize_content(content: Optional[str], max_bytes: int = MAX_CONTENT_BYTES) -> str:
    """Reject blank content and cap the rest at max_bytes of UTF-8.

    The returned text is the caller's original, untrimmed; stripping is only
    used for the emptiness check.
    """
    if content is None or not content.strip():
        raise EmptyContentError()

    encoded = content.encode("utf-8")
    if len(encoded) <= max_bytes:
        return content
    # Drop a trailing partial code point rather than emit invalid UTF-8
    return encoded[:max_bytes].decode("utf-8", errors="ignore")


def normalize_latency(latency_ms: int) -> int:
    if latency_ms < 0:
        return 0
    return latency_ms


def parse_latency(raw: Union[str, int]) -> int:
    """Parse a latency given as text (CLI argument) and clamp it."""
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"invalid latency value: {raw}") from None
    return normalize_latency(value)
