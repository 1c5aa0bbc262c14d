import threading
import time

from antibeaver.observability.tracker import LatencyTracker


def test_non_positive_capacity_is_coerced_to_one() -> None:
    for capacity in (0, -5):
        tracker = LatencyTracker(capacity)
        assert tracker.max_samples == 1
        tracker.record(10)
        tracker.record(20)
        assert tracker.count() == 1
        assert tracker.max(60, -1) == 20


def test_negative_latency_is_stored_as_zero() -> None:
    tracker = LatencyTracker()
    sample = tracker.record(-500)
    assert sample.latency_ms == 0
    assert tracker.max(60, -1) == 0
    assert tracker.average(60, -1) == 0


def test_capacity_evicts_oldest_first() -> None:
    tracker = LatencyTracker(3)
    for latency in (9000, 10, 20, 30, 40):
        tracker.record(latency)
    assert tracker.count() == 3
    # 9000 and 10 were evicted
    assert tracker.max(60, -1) == 40
    assert tracker.average(60, -1) == 30


def test_average_truncates_toward_zero() -> None:
    tracker = LatencyTracker()
    tracker.record(1)
    tracker.record(2)
    assert tracker.average(60, 0) == 1


def test_average_is_exact_beyond_float_precision() -> None:
    tracker = LatencyTracker()
    huge = 2**53 + 3
    tracker.record(huge)
    assert tracker.average(60, 0) == huge
    assert tracker.max(60, 0) == huge

    tracker.record(huge + 1)
    assert tracker.average(60, 0) == huge
    assert tracker.average(60, 0) <= tracker.max(60, 0)


def test_empty_tracker_returns_fallback_unchanged() -> None:
    tracker = LatencyTracker()
    assert tracker.average(60, 0) == 0
    assert tracker.average(60, 1234) == 1234
    assert tracker.max(60, -7) == -7


def test_expired_samples_are_excluded_from_window() -> None:
    tracker = LatencyTracker()
    now = time.time()
    tracker.record(7000, timestamp=now - 120)
    assert tracker.count() == 1
    assert tracker.average(60, 42) == 42
    assert tracker.max(60, 42) == 42

    tracker.record(100, timestamp=now)
    assert tracker.average(60, 42) == 100
    assert tracker.max(300, 0) == 7000


def test_window_boundary_is_exclusive() -> None:
    tracker = LatencyTracker()
    # A sample older than the cutoff by any margin is out
    tracker.record(500, timestamp=time.time() - 10.5)
    assert tracker.max(10, -1) == -1
    assert tracker.max(11, -1) == 500


def test_clear_is_idempotent() -> None:
    tracker = LatencyTracker()
    tracker.record(10)
    tracker.clear()
    tracker.clear()
    assert tracker.count() == 0
    assert tracker.average(60, 5) == 5


def test_status_snapshot() -> None:
    tracker = LatencyTracker(10)
    tracker.record(100)
    tracker.record(300)
    assert tracker.status() == {"count": 2, "avg_ms": 200, "max_ms": 300, "max_samples": 10}


def test_concurrent_record_and_read() -> None:
    tracker = LatencyTracker(1000)
    errors = []

    def writer(offset: int) -> None:
        for i in range(200):
            tracker.record(offset + i)

    def reader() -> None:
        for _ in range(200):
            try:
                avg = tracker.average(60, 0)
                worst = tracker.max(60, 0)
                assert avg <= worst
            except AssertionError as e:
                errors.append(e)

    threads = [threading.Thread(target=writer, args=(n * 1000,)) for n in range(5)]
    threads += [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert not errors
    assert tracker.count() == 1000
    assert tracker.max(60, 0) == 4199
