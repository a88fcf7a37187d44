"""Filewatch signaler: send SIGHUP to a named process when a watched file changes.

Exports:
- app, main, serve: Typer CLI entrypoints and change loop (from filewatch_signaler.cli)
- FileWatcher, WatchError, DEBOUNCE_WINDOW, resolution_chain: owned watchdog subscription (from filewatch_signaler.watch)
- ChangeEvent, Debouncer, ChangeHandler: event coalescing (from filewatch_signaler.handlers)
- find_process, send_sighup, signal_process, check_process: process lookup and signalling
- parse_duration, configure_logging: helpers (from filewatch_signaler.utils)
"""

from .cli import app, main, serve  # noqa: F401
from .handlers import ChangeEvent, ChangeHandler, Debouncer  # noqa: F401
from .process import (  # noqa: F401
    SignalDeliveryError,
    check_process,
    find_process,
    send_sighup,
    signal_process,
)
from .utils import configure_logging, parse_duration  # noqa: F401
from .watch import DEBOUNCE_WINDOW, FileWatcher, WatchError, resolution_chain  # noqa: F401

__all__ = [
    "app",
    "main",
    "serve",
    "ChangeEvent",
    "ChangeHandler",
    "Debouncer",
    "SignalDeliveryError",
    "check_process",
    "find_process",
    "send_sighup",
    "signal_process",
    "configure_logging",
    "parse_duration",
    "DEBOUNCE_WINDOW",
    "FileWatcher",
    "WatchError",
    "resolution_chain",
]
