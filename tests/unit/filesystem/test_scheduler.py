"""Unit tests for ScanScheduler.

Uses a counting fake scan function so the tests exercise debounce and
single-flight behavior without touching the filesystem.
"""

import threading
import time
from collections.abc import Callable, Iterator
from concurrent.futures import CancelledError

import pytest
from treesweep.filesystem.models import Entry, EntryKind, ScanMode, ScanRequest, TreeNode
from treesweep.filesystem.scheduler import ScanScheduler

DEBOUNCE = 0.1


def _result(request: ScanRequest) -> TreeNode:
    entry = Entry(
        name="root",
        path=request.path,
        relative_path=".",
        kind=EntryKind.DIRECTORY,
        size_bytes=request.max_depth,
        modified_at="2026-01-01T00:00:00+00:00",
        category="directory",
    )
    return TreeNode(entry=entry, expanded=True)


def _wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class CountingScan:
    """Fake scan recording every request; optionally blocks until released."""

    def __init__(self, block: bool = False) -> None:
        self.requests: list[ScanRequest] = []
        self.started = threading.Event()
        self.release = threading.Event()
        if not block:
            self.release.set()
        self._lock = threading.Lock()

    def __call__(self, request: ScanRequest) -> TreeNode:
        with self._lock:
            self.requests.append(request)
        self.started.set()
        self.release.wait(5)
        return _result(request)


@pytest.fixture
def scan() -> CountingScan:
    return CountingScan()


@pytest.fixture
def scheduler(scan: CountingScan) -> Iterator[ScanScheduler]:
    with ScanScheduler(scan, debounce=DEBOUNCE) as s:
        yield s


class TestDebounce:
    """Requests inside the quiet window collapse into one scan."""

    def test_burst_runs_once(self, scheduler: ScanScheduler, scan: CountingScan) -> None:
        futures = [scheduler.request(ScanRequest(path="/a", max_depth=d)) for d in range(5)]

        result = futures[-1].result(timeout=5)

        assert len(scan.requests) == 1
        assert all(f is futures[0] for f in futures)
        # Latest request in the window wins
        assert scan.requests[0].max_depth == 4
        assert result.size_bytes == 4

    def test_distinct_keys_scan_separately(
        self, scheduler: ScanScheduler, scan: CountingScan
    ) -> None:
        tree = scheduler.request(ScanRequest(path="/a", max_depth=1))
        flat = scheduler.request(ScanRequest(path="/a", max_depth=1, mode=ScanMode.FLAT))
        other = scheduler.request(ScanRequest(path="/b", max_depth=1))

        for future in (tree, flat, other):
            future.result(timeout=5)

        assert len(scan.requests) == 3
        assert tree is not flat

    def test_request_does_not_block(self) -> None:
        """request() returns before the scan completes."""
        blocking = CountingScan(block=True)
        with ScanScheduler(blocking, debounce=0) as scheduler:
            future = scheduler.request(ScanRequest(path="/a", max_depth=1))
            assert blocking.started.wait(5)
            assert not future.done()
            blocking.release.set()
            future.result(timeout=5)


class TestSingleFlight:
    """A request during a running scan causes exactly one rerun."""

    def test_rerun_after_running_scan(self) -> None:
        blocking = CountingScan(block=True)
        with ScanScheduler(blocking, debounce=DEBOUNCE) as scheduler:
            first = scheduler.request(ScanRequest(path="/a", max_depth=1))
            assert blocking.started.wait(5)

            second = scheduler.request(ScanRequest(path="/a", max_depth=2))
            third = scheduler.request(ScanRequest(path="/a", max_depth=3))
            assert second is first
            assert third is first

            blocking.release.set()
            first.result(timeout=5)

            assert _wait_for(lambda: len(blocking.requests) == 2)
            assert _wait_for(lambda: not scheduler.pending_keys())

        assert [r.max_depth for r in blocking.requests] == [1, 3]

    def test_failed_scan_sets_exception(self) -> None:
        def failing(request: ScanRequest) -> TreeNode:
            raise OSError("disk gone")

        with ScanScheduler(failing, debounce=0) as scheduler:
            future = scheduler.request(ScanRequest(path="/a", max_depth=1))

            with pytest.raises(OSError, match="disk gone"):
                future.result(timeout=5)

            # The key is free again after a failure
            assert _wait_for(lambda: not scheduler.pending_keys())


class TestListenersAndNotify:
    """Tests for listeners and change notifications."""

    def test_listener_receives_result(self, scheduler: ScanScheduler) -> None:
        received: list[tuple[ScanRequest, TreeNode]] = []
        done = threading.Event()

        def listener(request: ScanRequest, result: TreeNode) -> None:
            received.append((request, result))
            done.set()

        scheduler.add_listener(listener)
        scheduler.request(ScanRequest(path="/a", max_depth=1)).result(timeout=5)

        assert done.wait(5)
        assert received[0][0].path == "/a"

    def test_failing_listener_does_not_break_scan(self, scheduler: ScanScheduler) -> None:
        def listener(request: ScanRequest, result: TreeNode) -> None:
            raise RuntimeError("listener bug")

        scheduler.add_listener(listener)
        result = scheduler.request(ScanRequest(path="/a", max_depth=1)).result(timeout=5)

        assert result.entry.path == "/a"

    def test_remove_listener(self, scheduler: ScanScheduler) -> None:
        calls: list[ScanRequest] = []

        def listener(request: ScanRequest, result: TreeNode) -> None:
            calls.append(request)

        scheduler.add_listener(listener)
        scheduler.remove_listener(listener)
        scheduler.request(ScanRequest(path="/a", max_depth=1)).result(timeout=5)

        assert calls == []

    def test_notify_changed_rescans_known_path(
        self, scheduler: ScanScheduler, scan: CountingScan
    ) -> None:
        scheduler.request(ScanRequest(path="/a", max_depth=2)).result(timeout=5)
        assert _wait_for(lambda: not scheduler.pending_keys())

        issued = scheduler.notify_changed("/a")

        assert issued == 1
        assert _wait_for(lambda: len(scan.requests) == 2)
        assert scan.requests[1].max_depth == 2

    def test_notify_changed_unknown_path(self, scheduler: ScanScheduler) -> None:
        assert scheduler.notify_changed("/never-scanned") == 0

    def test_forget_drops_remembered_requests(self, scheduler: ScanScheduler) -> None:
        scheduler.request(ScanRequest(path="/a", max_depth=2)).result(timeout=5)
        scheduler.request(ScanRequest(path="/a", max_depth=2, mode=ScanMode.FLAT)).result(
            timeout=5
        )
        scheduler.request(ScanRequest(path="/b", max_depth=1)).result(timeout=5)

        assert scheduler.forget("/a") == 2
        assert scheduler.notify_changed("/a") == 0
        assert scheduler.forget("/a") == 0
        assert scheduler.notify_changed("/b") == 1


class TestClose:
    """Tests for shutdown behavior."""

    def test_close_cancels_pending(self, scan: CountingScan) -> None:
        scheduler = ScanScheduler(scan, debounce=10)
        future = scheduler.request(ScanRequest(path="/a", max_depth=1))

        scheduler.close()

        assert future.cancelled()
        with pytest.raises(CancelledError):
            future.result(timeout=1)
        assert scan.requests == []

    def test_request_after_close(self, scan: CountingScan) -> None:
        scheduler = ScanScheduler(scan, debounce=0)
        scheduler.close()

        with pytest.raises(RuntimeError, match="closed"):
            scheduler.request(ScanRequest(path="/a", max_depth=1))
