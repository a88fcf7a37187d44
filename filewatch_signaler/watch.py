import os
import queue
import logging
import threading
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch
from watchdog.observers.polling import PollingObserver

from .handlers import ChangeEvent, ChangeHandler, Debouncer

# Seconds of quiet before a burst of raw events is emitted as one ChangeEvent
DEBOUNCE_WINDOW = 2.0

# How often an idle consumer checks that the observer is still alive
_LIVENESS_INTERVAL = 1.0

_MAX_SYMLINKS = 40


class WatchError(Exception):
    pass


def resolution_chain(path: Path) -> List[Path]:
    """Return ``path``, every symlink traversed while resolving it, and the
    fully resolved path, in that order and without duplicates.

    For a ConfigMap-style layout (``conf.toml -> ..data/conf.toml`` with
    ``..data -> ..2024_01``) this yields the link, ``..data`` and the real file.
    """
    chain = [path]
    current = path
    for _ in range(_MAX_SYMLINKS):
        for i in range(1, len(current.parts) + 1):
            prefix = Path(*current.parts[:i])
            if prefix.is_symlink():
                chain.append(prefix)
                target = Path(os.readlink(prefix))
                if not target.is_absolute():
                    target = prefix.parent / target
                current = Path(os.path.normpath(target.joinpath(*current.parts[i:])))
                break
        else:
            break
    chain.append(path.resolve())

    seen = []
    for p in chain:
        if p not in seen:
            seen.append(p)
    return seen


class FileWatcher:
    """Owns the OS watch subscription for one path.

    Use as a context manager so the observer is stopped on every exit path:

        with FileWatcher(path) as watcher:
            for batch in watcher.batches():
                ...

    A directory is watched recursively. A single file is watched through the
    directories holding it, its symlinks and its resolved target; replace-by-
    rename swaps the inode a direct watch would be bound to.
    """

    def __init__(
        self,
        path: Union[str, Path],
        debounce_window: float = DEBOUNCE_WINDOW,
        use_polling: bool = False,
    ) -> None:
        self.path = Path(path).expanduser().absolute()
        self.use_polling = use_polling
        self._queue: "queue.Queue[ChangeEvent]" = queue.Queue()
        self.debouncer = Debouncer(debounce_window, self._emit)
        self.handler = ChangeHandler(self.debouncer)
        self._observer: Optional[BaseObserver] = None
        self._watches: Dict[Path, ObservedWatch] = {}
        self._lock = threading.Lock()

    def start(self) -> None:
        if self._observer is not None:
            return
        if not self.path.exists():
            raise WatchError(f"Cannot watch {self.path}: no such file or directory")

        observer = PollingObserver() if self.use_polling else Observer()
        try:
            if self.path.is_dir():
                observer.schedule(self.handler, str(self.path), recursive=True)
            else:
                self._observer = observer
                self._retarget()
            observer.start()
        except OSError as e:
            self._observer = None
            self._watches.clear()
            raise WatchError(f"Cannot watch {self.path}: {e}") from e
        self._observer = observer
        logging.debug(f"Observer: {type(observer).__name__}")

    def _retarget(self) -> None:
        """Follow the file's symlinks again and watch the directories involved."""
        chain = resolution_chain(self.path)
        self.handler.set_targets(str(p) for p in chain)

        wanted = []
        for p in chain:
            if p.parent not in wanted:
                wanted.append(p.parent)
        for directory in list(self._watches):
            if directory not in wanted:
                self._observer.unschedule(self._watches.pop(directory))
        for directory in wanted:
            if directory not in self._watches:
                self._watches[directory] = self._observer.schedule(
                    self.handler, str(directory), recursive=False
                )
        logging.debug(f"Watching {[str(d) for d in wanted]} for {[str(p) for p in chain]}")

    def _emit(self, batch: ChangeEvent) -> None:
        # A swapped symlink may point somewhere new
        if self.handler.targets is not None:
            with self._lock:
                if self._observer is not None and self.path.exists():
                    try:
                        self._retarget()
                    except (OSError, KeyError) as e:
                        logging.warning(f"Could not re-resolve {self.path}: {e}")
        self._queue.put(batch)

    def stop(self) -> None:
        self.debouncer.cancel()
        with self._lock:
            observer, self._observer = self._observer, None
            self._watches.clear()
        if observer is None:
            return
        observer.stop()
        if observer.is_alive():
            observer.join()

    @property
    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def batches(self) -> Iterator[ChangeEvent]:
        """Yield ChangeEvents in arrival order until the subscription fails."""
        if self._observer is None:
            raise WatchError("Watcher is not started")
        while True:
            try:
                yield self._queue.get(timeout=_LIVENESS_INTERVAL)
            except queue.Empty:
                if not self.is_running:
                    raise WatchError(f"Watch on {self.path} stopped unexpectedly")

    def __enter__(self) -> "FileWatcher":
        try:
            self.start()
        except BaseException:
            self.stop()
            raise
        return self

    def __exit__(self, *args) -> None:
        self.stop()
