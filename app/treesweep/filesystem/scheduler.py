"""Debounced, single-flight scan scheduler.

Requests are keyed by ``(path, mode)``. Within a key:

- requests arriving during the debounce window reset the window and all
  share one pending future; the scan runs once the window stays quiet;
- a request arriving while the scan runs attaches to the running scan's
  future, and one fresh scan is scheduled after it completes.

Scans run on a worker pool, so ``request()`` never blocks the caller.
Results are immutable snapshots and are handed to futures and listeners
without copying.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass

from treesweep.filesystem.models import FlatScanResult, ScanMode, ScanRequest, TreeNode
from treesweep.filesystem.scanner import DirectoryScanner

logger = logging.getLogger(__name__)

ScanResultType = TreeNode | FlatScanResult
ScanFunction = Callable[[ScanRequest], ScanResultType]
ScanListener = Callable[[ScanRequest, ScanResultType], None]

DEFAULT_DEBOUNCE_SECONDS = 0.25
DEFAULT_MAX_CONCURRENT_SCANS = 4


@dataclass(slots=True)
class _KeyState:
    """Scheduling state for one (path, mode) key."""

    request: ScanRequest
    future: "Future[ScanResultType]"
    timer: threading.Timer | None = None
    running: bool = False
    rerun: ScanRequest | None = None


def scanner_function(scanner: DirectoryScanner) -> ScanFunction:
    """Adapt a DirectoryScanner to the scheduler's scan callable."""

    def run(request: ScanRequest) -> ScanResultType:
        if request.mode == ScanMode.FLAT:
            return scanner.scan_flat(request.path, request.max_depth)
        return scanner.scan_tree(request.path, request.max_depth)

    return run


class ScanScheduler:
    """Runs scans off the caller's thread with per-key debouncing.

    Args:
        scan: Callable performing one scan for a request.
        debounce: Quiet window in seconds before a pending scan starts.
        max_concurrent_scans: Worker threads; distinct keys run in parallel.
    """

    def __init__(
        self,
        scan: ScanFunction,
        *,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        max_concurrent_scans: int = DEFAULT_MAX_CONCURRENT_SCANS,
    ) -> None:
        self._scan = scan
        self._debounce = debounce
        self._executor = ThreadPoolExecutor(
            max_workers=max_concurrent_scans,
            thread_name_prefix="treesweep-scan",
        )
        self._lock = threading.Lock()
        self._states: dict[tuple[str, ScanMode], _KeyState] = {}
        self._last_requests: dict[tuple[str, ScanMode], ScanRequest] = {}
        self._listeners: list[ScanListener] = []
        self._closed = False

    # ------------------------------------------------------------------
    # Public API

    def request(self, request: ScanRequest) -> "Future[ScanResultType]":
        """Submit a scan request.

        Args:
            request: What to scan.

        Returns:
            Future resolved with the scan result serving this request.

        Raises:
            RuntimeError: If the scheduler has been closed.
        """
        key = request.key
        with self._lock:
            if self._closed:
                msg = "Scan scheduler is closed"
                raise RuntimeError(msg)
            self._last_requests[key] = request

            state = self._states.get(key)
            if state is None:
                state = _KeyState(request=request, future=Future())
                self._states[key] = state
                self._arm_timer(key, state)
                return state.future

            if state.running:
                logger.debug("Scan in flight for %s, deferring rerun", key)
                state.rerun = request
                return state.future

            # Still inside the debounce window: latest request wins, window restarts.
            state.request = request
            self._arm_timer(key, state)
            return state.future

    def notify_changed(self, path: str) -> int:
        """Re-request every mode previously scanned for ``path``.

        Used by directory watches; goes through the same debounce as
        manual requests.

        Returns:
            Number of requests issued.
        """
        with self._lock:
            requests = [req for key, req in self._last_requests.items() if key[0] == path]
        for req in requests:
            self.request(req)
        return len(requests)

    def forget(self, path: str) -> int:
        """Drop the remembered requests for ``path`` so notify_changed() ignores it.

        Returns:
            Number of requests forgotten.
        """
        with self._lock:
            keys = [key for key in self._last_requests if key[0] == path]
            for key in keys:
                del self._last_requests[key]
        return len(keys)

    def add_listener(self, listener: ScanListener) -> None:
        """Register a callback invoked on a worker thread after each scan."""
        with self._lock:
            self._listeners.append(listener)

    def remove_listener(self, listener: ScanListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def pending_keys(self) -> list[tuple[str, ScanMode]]:
        """Keys with a pending or running scan."""
        with self._lock:
            return list(self._states)

    def close(self, wait: bool = True) -> None:
        """Cancel pending scans and stop the worker pool."""
        with self._lock:
            self._closed = True
            pending = [s for s in self._states.values() if not s.running]
            for state in pending:
                if state.timer is not None:
                    state.timer.cancel()
                state.future.cancel()
                del self._states[state.request.key]
            for state in self._states.values():
                state.rerun = None
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "ScanScheduler":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals (called with or without the lock as noted)

    def _arm_timer(self, key: tuple[str, ScanMode], state: _KeyState) -> None:
        """(Re)start the debounce timer. Caller holds the lock."""
        if state.timer is not None:
            state.timer.cancel()
        timer = threading.Timer(self._debounce, self._launch, args=(key, state))
        timer.daemon = True
        state.timer = timer
        timer.start()

    def _launch(self, key: tuple[str, ScanMode], state: _KeyState) -> None:
        """Debounce window elapsed: hand the scan to the worker pool."""
        with self._lock:
            # A reset timer may still fire; only the state's current timer counts.
            if self._states.get(key) is not state or state.running or self._closed:
                return
            if state.timer is not threading.current_thread():
                return
            state.timer = None
            state.running = True
            request = state.request
        try:
            self._executor.submit(self._run, key, state, request)
        except RuntimeError:
            # Pool shut down between the check above and the submit.
            state.future.cancel()
            with self._lock:
                self._states.pop(key, None)

    def _run(self, key: tuple[str, ScanMode], state: _KeyState, request: ScanRequest) -> None:
        future = state.future
        if future.set_running_or_notify_cancel():
            try:
                result = self._scan(request)
            except Exception as e:
                logger.warning("Scan of %s failed: %s", request.path, e)
                future.set_exception(e)
            else:
                future.set_result(result)
                self._notify(request, result)

        with self._lock:
            rerun = state.rerun
            del self._states[key]
            if rerun is not None and not self._closed:
                next_state = _KeyState(request=rerun, future=Future())
                self._states[key] = next_state
                self._arm_timer(key, next_state)

    def _notify(self, request: ScanRequest, result: ScanResultType) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(request, result)
            except Exception:
                logger.exception("Scan listener failed for %s", request.path)
