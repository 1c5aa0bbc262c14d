from pathlib import Path

import pytest

from antibeaver.governance.priority import Priority
from antibeaver.governance.synthesis import STATUS_SYNTHESIZED
from antibeaver.governance.validators import FlushConflictError, InvalidPriorityError
from antibeaver.storage.store import ThoughtStore


def test_creates_parent_directories(tmp_path: Path) -> None:
    path = tmp_path / "a" / "b" / "governance.db"
    with ThoughtStore(str(path)):
        pass
    assert path.exists()


def test_uses_wal_mode(store: ThoughtStore) -> None:
    assert store.journal_mode().lower() == "wal"


def test_in_memory_store() -> None:
    with ThoughtStore(":memory:") as s:
        s.insert_thought("main", "cli", "", "hello", "P1")
        assert s.pending_count() == 1


def test_reopen_keeps_data(db_path: str) -> None:
    with ThoughtStore(db_path) as s:
        s.insert_thought("main", "cli", "", "persisted", "P0")
        s.set_halted(True)
    with ThoughtStore(db_path) as s:
        assert s.pending_count("main") == 1
        assert s.is_halted() is True


def test_insert_assigns_increasing_ids(store: ThoughtStore) -> None:
    first = store.insert_thought("main", "cli", "", "one", "P1")
    second = store.insert_thought("main", "cli", "", "two", "P1")
    assert second > first


def test_insert_rejects_invalid_priority(store: ThoughtStore) -> None:
    with pytest.raises(InvalidPriorityError):
        store.insert_thought("main", "cli", "", "x", "P5")
    assert store.pending_count() == 0


def test_insert_round_trips_special_content(store: ThoughtStore) -> None:
    content = 'quotes " backslash \\ newline \n unicode 🦫'
    thought_id = store.insert_thought("main", "slack", "#ops", content, Priority.LOW)
    thought = store.get_thought(thought_id)
    assert thought.content == content
    assert thought.priority is Priority.LOW
    assert thought.channel == "slack"
    assert thought.target == "#ops"
    assert thought.status == "pending"


def test_pending_thoughts_filtered_by_agent_and_ordered(store: ThoughtStore) -> None:
    store.insert_thought("main", "cli", "", "low", "P2")
    store.insert_thought("main", "cli", "", "normal", "P1")
    store.insert_thought("other", "cli", "", "elsewhere", "P0")
    store.insert_thought("main", "cli", "", "critical", "P0")

    thoughts = store.pending_thoughts("main")
    assert [t.content for t in thoughts] == ["critical", "normal", "low"]
    assert store.pending_thoughts("nobody") == []


def test_pending_count_and_agents(store: ThoughtStore) -> None:
    assert store.pending_count() == 0
    assert store.pending_agents() == []
    store.insert_thought("b", "cli", "", "1", "P1")
    store.insert_thought("a", "cli", "", "2", "P1")
    store.insert_thought("a", "cli", "", "3", "P1")
    assert store.pending_count() == 3
    assert store.pending_count("a") == 2
    assert store.pending_agents() == ["a", "b"]


def test_mark_synthesized_transitions_and_logs_event(store: ThoughtStore) -> None:
    ids = [
        store.insert_thought("main", "cli", "", "one", "P1"),
        store.insert_thought("main", "cli", "", "two", "P0"),
    ]
    other = store.insert_thought("other", "cli", "", "untouched", "P1")

    assert store.mark_synthesized("main", ids, "PROMPT") == 2
    assert store.pending_count("main") == 0
    assert store.pending_count("other") == 1
    assert store.get_thought(ids[0]).status == STATUS_SYNTHESIZED
    assert store.get_thought(other).status == "pending"

    events = store.synthesis_events("main")
    assert len(events) == 1
    assert events[0]["thoughts_count"] == 2
    assert events[0]["final_output"] == "PROMPT"


def test_mark_synthesized_with_nothing_writes_no_event(store: ThoughtStore) -> None:
    assert store.mark_synthesized("main", [], "PROMPT") == 0
    assert store.synthesis_events("main") == []


def test_second_flush_of_same_backlog_conflicts(store: ThoughtStore) -> None:
    ids = [store.insert_thought("main", "cli", "", "one", "P1")]
    late = store.insert_thought("main", "cli", "", "two", "P1")

    assert store.mark_synthesized("main", ids, "first") == 1
    with pytest.raises(FlushConflictError):
        store.mark_synthesized("main", ids + [late], "second")

    # The failed flush rolled back entirely
    assert store.get_thought(late).status == "pending"
    assert len(store.synthesis_events("main")) == 1


def test_synthesis_events_newest_first_with_limit(store: ThoughtStore) -> None:
    for n in range(3):
        thought_id = store.insert_thought("main", "cli", "", f"t{n}", "P1")
        store.mark_synthesized("main", [thought_id], f"prompt {n}")
    events = store.synthesis_events("main", limit=2)
    assert [e["final_output"] for e in events] == ["prompt 2", "prompt 1"]


def test_latency_history(store: ThoughtStore) -> None:
    assert store.average_latency(60) == 0
    assert store.max_latency(60) == 0
    assert store.recent_latencies(60) == []

    for ms in (100, 200, 301):
        store.record_latency(ms)
    assert store.average_latency(60) == 200
    assert store.max_latency(60) == 301
    assert [ms for _, ms in store.recent_latencies(60)] == [100, 200, 301]


def test_control_state(store: ThoughtStore) -> None:
    assert store.is_halted() is False
    assert store.is_forced() is False
    assert store.simulated_latency() == 0

    store.set_halted(True)
    store.set_forced(True)
    store.set_simulated_latency(8000)
    assert store.is_halted() is True
    assert store.is_forced() is True
    assert store.simulated_latency() == 8000

    store.set_halted(False)
    assert store.is_halted() is False


def test_corrupt_simulated_value_reads_as_zero(store: ThoughtStore) -> None:
    store.set_state("simulated_ms", "not-a-number")
    assert store.simulated_latency() == 0
