"""
ThoughtStore: SQLite persistence for antibeaver.

Owns the lifecycle of buffered thoughts (pending → synthesized), the
synthesis audit trail, durable latency history, and the operator control
flags. One store per process; SQLite serializes writers across processes.

Flushes are guarded: mark_synthesized() only transitions thoughts that are
still pending, inside one transaction, and refuses to commit if another
flush already claimed part of the backlog.
"""

import os
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple, Union

from sqlalchemy import create_engine, event, func, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..governance.priority import Priority
from ..governance.synthesis import STATUS_PENDING, STATUS_SYNTHESIZED, BufferedThought, utcnow
from ..governance.validators import FlushConflictError, normalize_priority
from .models import (
    Base,
    ControlStateRecord,
    LatencyMetricRecord,
    SynthesisEventRecord,
    ThoughtRecord,
)

MEMORY_PATH = ":memory:"

KEY_HALTED = "halted"
KEY_FORCED = "forced_buffering"
KEY_SIMULATED = "simulated_ms"


def _enable_wal(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def to_epoch(dt: datetime) -> float:
    """Epoch seconds for a naive-UTC datetime from the database."""
    return dt.replace(tzinfo=timezone.utc).timestamp()


class ThoughtStore:
    """Persistence collaborator for thoughts, synthesis events and control state."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.logger = logging.getLogger("ThoughtStore")

        if path == MEMORY_PATH:
            # One shared connection, otherwise every checkout sees an empty database
            self.engine = create_engine(
                "sqlite://",
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
            self.engine = create_engine(f"sqlite:///{path}")
            event.listen(self.engine, "connect", _enable_wal)

        Base.metadata.create_all(bind=self.engine)
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
        self.logger.debug("Opened thought store at %s", path)

    def close(self) -> None:
        self.engine.dispose()

    def __enter__(self) -> "ThoughtStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def session(self) -> Session:
        return self._sessions()

    def journal_mode(self) -> str:
        with self.engine.connect() as conn:
            return conn.execute(text("PRAGMA journal_mode")).scalar()

    # --- Thoughts ---

    def insert_thought(
        self,
        agent_id: str,
        channel: str,
        target: str,
        content: str,
        priority: Union[Priority, str],
    ) -> int:
        """Insert a pending thought and return its id. Unknown tiers are rejected."""
        tier = normalize_priority(priority)
        record = ThoughtRecord(
            agent_id=agent_id,
            channel=channel,
            target=target or "",
            content=content,
            priority=tier.value,
            created_at=utcnow(),
            status=STATUS_PENDING,
        )
        with self.session() as session, session.begin():
            session.add(record)
            session.flush()
            thought_id = record.id
        self.logger.debug(
            "Inserted thought %d for agent %s (%s)", thought_id, agent_id, tier.value,
        )
        return thought_id

    def get_thought(self, thought_id: int) -> Optional[BufferedThought]:
        with self.session() as session:
            record = session.get(ThoughtRecord, thought_id)
            return record.to_thought() if record else None

    def pending_thoughts(self, agent_id: str) -> List[BufferedThought]:
        """Pending thoughts for an agent, CRITICAL first, oldest first within a tier."""
        with self.session() as session:
            records = (
                session.query(ThoughtRecord)
                .filter(ThoughtRecord.agent_id == agent_id)
                .filter(ThoughtRecord.status == STATUS_PENDING)
                .order_by(ThoughtRecord.priority, ThoughtRecord.created_at, ThoughtRecord.id)
                .all()
            )
            return [r.to_thought() for r in records]

    def pending_count(self, agent_id: Optional[str] = None) -> int:
        """Pending thoughts for one agent, or for all agents when agent_id is empty."""
        with self.session() as session:
            query = session.query(func.count(ThoughtRecord.id)).filter(
                ThoughtRecord.status == STATUS_PENDING
            )
            if agent_id:
                query = query.filter(ThoughtRecord.agent_id == agent_id)
            return query.scalar() or 0

    def pending_agents(self) -> List[str]:
        with self.session() as session:
            rows = (
                session.query(ThoughtRecord.agent_id)
                .filter(ThoughtRecord.status == STATUS_PENDING)
                .distinct()
                .order_by(ThoughtRecord.agent_id)
                .all()
            )
            return [row[0] for row in rows]

    def mark_synthesized(
        self,
        agent_id: str,
        thought_ids: Sequence[int],
        output: str,
    ) -> int:
        """Move the given pending thoughts to 'synthesized' and log one event.

        Returns the number of thoughts transitioned (0 means nothing to do and
        no event is written). Raises FlushConflictError, with nothing
        committed, if any of the ids is no longer pending.
        """
        ids = list(thought_ids)
        if not ids:
            return 0

        with self.session() as session, session.begin():
            updated = (
                session.query(ThoughtRecord)
                .filter(ThoughtRecord.id.in_(ids))
                .filter(ThoughtRecord.agent_id == agent_id)
                .filter(ThoughtRecord.status == STATUS_PENDING)
                .update({ThoughtRecord.status: STATUS_SYNTHESIZED}, synchronize_session=False)
            )
            if updated != len(ids):
                # Raising inside begin() rolls the update back
                raise FlushConflictError(agent_id, expected=len(ids), updated=updated)

            session.add(SynthesisEventRecord(
                agent_id=agent_id,
                thoughts_count=updated,
                final_output=output,
                triggered_at=utcnow(),
            ))

        self.logger.info("Synthesized %d thoughts for agent %s", updated, agent_id)
        return updated

    def synthesis_events(self, agent_id: str, limit: int = 10) -> List[dict]:
        """Most recent synthesis events for an agent, newest first."""
        with self.session() as session:
            records = (
                session.query(SynthesisEventRecord)
                .filter(SynthesisEventRecord.agent_id == agent_id)
                .order_by(SynthesisEventRecord.triggered_at.desc(), SynthesisEventRecord.id.desc())
                .limit(limit)
                .all()
            )
            return [r.to_dict() for r in records]

    # --- Latency history ---

    def record_latency(self, latency_ms: int, queue_depth: Optional[int] = None) -> None:
        with self.session() as session, session.begin():
            session.add(LatencyMetricRecord(
                latency_ms=latency_ms,
                queue_depth=queue_depth,
                recorded_at=utcnow(),
            ))

    def recent_latencies(self, window_s: float) -> List[Tuple[float, int]]:
        """(epoch timestamp, latency_ms) pairs recorded within the window, oldest first."""
        cutoff = utcnow() - timedelta(seconds=window_s)
        with self.session() as session:
            rows = (
                session.query(LatencyMetricRecord.recorded_at, LatencyMetricRecord.latency_ms)
                .filter(LatencyMetricRecord.recorded_at > cutoff)
                .order_by(LatencyMetricRecord.recorded_at, LatencyMetricRecord.id)
                .all()
            )
            return [(to_epoch(recorded_at), latency_ms) for recorded_at, latency_ms in rows]

    def average_latency(self, window_s: float) -> int:
        cutoff = utcnow() - timedelta(seconds=window_s)
        with self.session() as session:
            avg = (
                session.query(func.avg(LatencyMetricRecord.latency_ms))
                .filter(LatencyMetricRecord.recorded_at > cutoff)
                .scalar()
            )
            return int(avg) if avg is not None else 0

    def max_latency(self, window_s: float) -> int:
        cutoff = utcnow() - timedelta(seconds=window_s)
        with self.session() as session:
            worst = (
                session.query(func.max(LatencyMetricRecord.latency_ms))
                .filter(LatencyMetricRecord.recorded_at > cutoff)
                .scalar()
            )
            return int(worst) if worst is not None else 0

    # --- Control state ---

    def get_state(self, key: str) -> str:
        with self.session() as session:
            record = session.get(ControlStateRecord, key)
            if record is None:
                return ""
            return record.value or ""

    def set_state(self, key: str, value: str) -> None:
        with self.session() as session, session.begin():
            session.merge(ControlStateRecord(key=key, value=value))

    def is_halted(self) -> bool:
        return self.get_state(KEY_HALTED) == "true"

    def set_halted(self, halted: bool) -> None:
        self.set_state(KEY_HALTED, "true" if halted else "false")

    def is_forced(self) -> bool:
        return self.get_state(KEY_FORCED) == "true"

    def set_forced(self, forced: bool) -> None:
        self.set_state(KEY_FORCED, "true" if forced else "false")

    def simulated_latency(self) -> int:
        raw = self.get_state(KEY_SIMULATED)
        try:
            return int(raw) if raw else 0
        except ValueError:
            self.logger.error("Corrupt simulated latency value %r, treating as 0", raw)
            return 0

    def set_simulated_latency(self, latency_ms: int) -> None:
        self.set_state(KEY_SIMULATED, str(latency_ms))
