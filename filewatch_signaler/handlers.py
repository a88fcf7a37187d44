import os
import logging
import threading
from dataclasses import dataclass
from typing import Callable, FrozenSet, Iterable, List, Optional, Tuple

from watchdog.events import FileSystemEvent, FileSystemEventHandler


@dataclass(frozen=True)
class ChangeEvent:
    """One coalesced burst of raw filesystem events."""

    events: Tuple[FileSystemEvent, ...]

    @property
    def paths(self) -> List[str]:
        seen = []
        for event in self.events:
            for path in (event.src_path, getattr(event, "dest_path", "")):
                if path and path not in seen:
                    seen.append(path)
        return seen

    def __len__(self) -> int:
        return len(self.events)


class Debouncer:
    """Collect raw events and emit them as one ChangeEvent once the window
    has elapsed without any new event arriving.
    """

    def __init__(self, window: float, sink: Callable[[ChangeEvent], None]) -> None:
        self.window = window
        self.sink = sink
        self._lock = threading.Lock()
        self._pending: List[FileSystemEvent] = []
        self._timer: Optional[threading.Timer] = None

    def add(self, event: FileSystemEvent) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending.append(event)
            self._timer = threading.Timer(self.window, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def _fire(self) -> None:
        # A timer that lost the race against add() finds nothing or a newer timer
        with self._lock:
            if self._timer is not threading.current_thread():
                return
            batch = self._take()
        if batch is not None:
            self.sink(batch)

    def _take(self) -> Optional[ChangeEvent]:
        self._timer = None
        if not self._pending:
            return None
        batch = ChangeEvent(tuple(self._pending))
        self._pending = []
        return batch

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = []


# Reads of the watched file are not changes
IGNORED_EVENT_TYPES = frozenset({"opened", "closed_no_write"})


class ChangeHandler(FileSystemEventHandler):
    """Forward raw events to the debouncer.

    When ``targets`` is given (a single watched file: its own path, the path it
    resolves to and any symlink traversed on the way), only events touching one
    of those paths are forwarded.
    """

    def __init__(self, debouncer: Debouncer, targets: Optional[Iterable[str]] = None) -> None:
        super().__init__()
        self.debouncer = debouncer
        self.targets: Optional[FrozenSet[str]] = None
        if targets is not None:
            self.set_targets(targets)

    def set_targets(self, targets: Iterable[str]) -> None:
        self.targets = frozenset(str(t) for t in targets)

    def _touches_target(self, event: FileSystemEvent) -> bool:
        targets = self.targets
        if targets is None:
            return True
        paths = (event.src_path, getattr(event, "dest_path", ""))
        return any(p and os.fsdecode(p) in targets for p in paths)

    def dispatch(self, event: FileSystemEvent) -> None:
        if event.event_type in IGNORED_EVENT_TYPES or not self._touches_target(event):
            return
        try:
            logging.debug(f"Watch event {event!r}")
            self.debouncer.add(event)
        except Exception as e:
            logging.error(f"Error in watch event {event!r}: {e}")
