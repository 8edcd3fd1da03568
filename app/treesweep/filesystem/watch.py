"""Directory change subscriptions and the bridge to the scan scheduler.

Changes are detected by polling a cheap digest over a directory's own
stat data and the stat data of its immediate children. A subscription
is a lazy, potentially infinite iterator of change events that ends as
soon as it is closed; use it as a context manager to release it.
"""

import hashlib
import logging
import os
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from treesweep.filesystem.scheduler import ScanScheduler

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.5

ChangeCallback = Callable[["ChangeEvent"], None]


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A detected change in a watched directory.

    Attributes:
        path: Watched directory.
        signature: Digest of the directory state after the change.
        observed_at: When the change was noticed (ISO 8601, UTC).
    """

    path: str
    signature: str
    observed_at: str


def _update_digest(digest, token: str) -> None:
    """Append a token plus separator byte to a hash digest."""
    digest.update(token.encode("utf-8", errors="surrogateescape"))
    digest.update(b"\0")


def directory_signature(directory: Path) -> str:
    """Build a digest of a directory's state.

    Covers the directory's own stat data plus name, type, size and mtime
    of every immediate child. Missing or unreadable directories hash to
    a stable marker so their appearance or disappearance is a change.
    """
    digest = hashlib.blake2b(digest_size=20)
    _update_digest(digest, f"dir:{directory}")
    try:
        st = directory.stat()
    except FileNotFoundError:
        _update_digest(digest, "missing")
        return digest.hexdigest()
    except OSError:
        _update_digest(digest, "error")
        return digest.hexdigest()
    _update_digest(digest, f"self:{st.st_mtime_ns}:{st.st_mode}")

    children: list[tuple[str, int, int, int]] = []
    try:
        with os.scandir(directory) as entries:
            for child in entries:
                try:
                    child_st = child.stat(follow_symlinks=False)
                except OSError:
                    children.append((child.name, 0, 0, 0))
                    continue
                children.append(
                    (child.name, child_st.st_mode, child_st.st_size, child_st.st_mtime_ns)
                )
    except OSError:
        _update_digest(digest, "children:error")
        return digest.hexdigest()

    for name, mode, size, mtime_ns in sorted(children):
        _update_digest(digest, f"child:{name}:{mode}:{size}:{mtime_ns}")
    return digest.hexdigest()


class Subscription:
    """Iterator of change events for one directory.

    Iteration blocks between polls and stops once close() is called.

    Args:
        path: Directory to watch.
        interval: Seconds between polls.
    """

    def __init__(self, path: Path, interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self.path = path
        self._interval = interval
        self._stop = threading.Event()
        self._last = directory_signature(path)

    @property
    def closed(self) -> bool:
        return self._stop.is_set()

    def close(self) -> None:
        """Release the subscription; pending iteration ends promptly."""
        self._stop.set()

    def __iter__(self) -> Iterator[ChangeEvent]:
        return self

    def __next__(self) -> ChangeEvent:
        while not self._stop.wait(self._interval):
            signature = directory_signature(self.path)
            if signature != self._last:
                self._last = signature
                return ChangeEvent(
                    path=str(self.path),
                    signature=signature,
                    observed_at=datetime.now(UTC).isoformat(),
                )
        raise StopIteration

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def watch(path: Path, interval: float = DEFAULT_POLL_INTERVAL) -> Subscription:
    """Subscribe to changes of ``path``.

    Example:
        with watch(Path("/tmp/work")) as events:
            for event in events:
                ...
    """
    return Subscription(path, interval)


@dataclass(slots=True)
class _Watch:
    subscription: Subscription
    thread: threading.Thread
    callbacks: list[ChangeCallback]


class WatchBridge:
    """Forwards directory changes to the scan scheduler.

    Each watched directory gets one background thread draining its
    subscription. Every change event calls ``scheduler.notify_changed``,
    whose debounce collapses bursts of churn into a single rescan.

    Args:
        scheduler: Scheduler receiving "directory changed" signals.
        interval: Poll interval in seconds.
    """

    def __init__(self, scheduler: ScanScheduler, interval: float = DEFAULT_POLL_INTERVAL) -> None:
        self._scheduler = scheduler
        self._interval = interval
        self._lock = threading.Lock()
        self._watches: dict[str, _Watch] = {}
        self._callbacks: list[ChangeCallback] = []

    def add_callback(self, callback: ChangeCallback) -> None:
        """Register a callback invoked for change events of every watch."""
        with self._lock:
            self._callbacks.append(callback)

    def watch_directory(self, path: Path, callback: ChangeCallback | None = None) -> Subscription:
        """Start watching ``path``.

        Watching an already watched path reuses its subscription. A
        ``callback`` only receives events for this path and is dropped
        by unwatch().
        """
        key = str(path)
        with self._lock:
            existing = self._watches.get(key)
            if existing is not None:
                if callback is not None:
                    existing.callbacks.append(callback)
                return existing.subscription
            subscription = Subscription(path, self._interval)
            thread = threading.Thread(
                target=self._drain,
                args=(subscription,),
                name=f"treesweep-watch:{path.name}",
                daemon=True,
            )
            callbacks = [callback] if callback is not None else []
            self._watches[key] = _Watch(subscription, thread, callbacks)
        thread.start()
        logger.debug("Watching %s", key)
        return subscription

    def unwatch(self, path: Path) -> bool:
        """Stop watching ``path``. Returns False if it was not watched."""
        with self._lock:
            watched = self._watches.pop(str(path), None)
        if watched is None:
            return False
        watched.subscription.close()
        if watched.thread is not threading.current_thread():
            watched.thread.join()
        self._scheduler.forget(str(path))
        return True

    def watched_paths(self) -> list[str]:
        with self._lock:
            return list(self._watches)

    def close(self) -> None:
        """Stop every watch and wait for the drain threads."""
        for key in self.watched_paths():
            self.unwatch(Path(key))

    def _drain(self, subscription: Subscription) -> None:
        for event in subscription:
            logger.debug("Change detected in %s", event.path)
            with self._lock:
                watched = self._watches.get(event.path)
                if watched is None or watched.subscription is not subscription:
                    break
                callbacks = [*self._callbacks, *watched.callbacks]
            for callback in callbacks:
                try:
                    callback(event)
                except Exception:
                    logger.exception("Watch callback failed for %s", event.path)
            try:
                self._scheduler.notify_changed(event.path)
            except RuntimeError:
                # Scheduler closed underneath us
                subscription.close()
