"""
antibeaver Storage Layer

SQLite persistence for buffered thoughts, synthesis events,
latency history and operator controls.
"""

from .store import ThoughtStore

__all__ = [
    "ThoughtStore",
]
