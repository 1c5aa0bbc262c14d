"""
Database models for buffered thoughts, synthesis events, latency history
and operator control state
"""
from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

from ..governance.priority import PRIORITY_TOKENS, Priority
from ..governance.synthesis import STATUS_PENDING, BufferedThought, utcnow

Base = declarative_base()


class ThoughtRecord(Base):
    """A buffered thought. Never deleted; flushes move it to 'synthesized'."""
    __tablename__ = "buffered_thoughts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    agent_id = Column(String(255), nullable=False)
    channel = Column(String(255), nullable=False)
    target = Column(String(255), nullable=False, default="")
    content = Column(Text, nullable=False)
    priority = Column(String(2), nullable=False, default=Priority.NORMAL.value)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    status = Column(String(16), nullable=False, default=STATUS_PENDING)

    __table_args__ = (
        CheckConstraint(
            "priority IN (%s)" % ", ".join(f"'{token}'" for token in PRIORITY_TOKENS),
            name="ck_thought_priority",
        ),
        Index("idx_pending", "agent_id", "status"),
    )

    def to_thought(self) -> BufferedThought:
        return BufferedThought(
            id=self.id,
            agent_id=self.agent_id,
            channel=self.channel,
            target=self.target,
            content=self.content,
            priority=Priority(self.priority),
            created_at=self.created_at,
            status=self.status,
        )


class SynthesisEventRecord(Base):
    """Append-only record of one flush"""
    __tablename__ = "synthesis_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    agent_id = Column(String(255), nullable=False, index=True)
    thoughts_count = Column(Integer, nullable=False)
    final_output = Column(Text, nullable=True)
    triggered_at = Column(DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "thoughts_count": self.thoughts_count,
            "final_output": self.final_output or "",
            "triggered_at": self.triggered_at.isoformat(sep=" ", timespec="seconds"),
        }


class LatencyMetricRecord(Base):
    """Durable latency history (the tracker window is rebuilt from this)"""
    __tablename__ = "network_metrics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    latency_ms = Column(Integer, nullable=False)
    queue_depth = Column(Integer, nullable=True)
    recorded_at = Column(DateTime, nullable=False, default=utcnow, index=True)


class ControlStateRecord(Base):
    """Key/value operator controls: halted, forced_buffering, simulated_ms"""
    __tablename__ = "state"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=True)
