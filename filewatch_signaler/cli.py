import time
import logging
from pathlib import Path
from typing import Callable, Iterable

import typer

from .handlers import ChangeEvent
from .process import check_process, signal_process
from .utils import configure_logging, parse_duration
from .watch import FileWatcher, WatchError


# Options may all come from the environment, so an empty command line is valid
app = typer.Typer(add_completion=False)


def _process_name_callback(value: str) -> str:
    # An empty filter matches every process, starting with pid 1
    if not value or not value.strip():
        raise typer.BadParameter("process name must not be empty")
    return value


def _wait_time_callback(value: str) -> float:
    try:
        return parse_duration(value)
    except ValueError as e:
        raise typer.BadParameter(str(e))


def serve(
    batches: Iterable[ChangeEvent],
    process_name: str,
    wait_time: float,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Handle each debounced batch in order: settle, then signal the target.

    Returns the number of batches handled once ``batches`` is exhausted.
    """
    handled = 0
    for batch in batches:
        logging.debug(f"Change batch of {len(batch)} event(s): {batch.paths}")
        if wait_time > 0:
            sleep(wait_time)
        logging.info("File changed. Sending signal.")
        signal_process(process_name)
        handled += 1
    return handled


@app.command()
def main(
    process_name: str = typer.Option(
        ...,
        "--process-name",
        "-p",
        callback=_process_name_callback,
        help="Process name that should receive the SIGHUP signal",
        envvar="PROCESS_NAME",
    ),
    watch_file: Path = typer.Option(
        ...,
        "--watch-file",
        "-w",
        help="Path to the file that should be watched for changes",
        envvar="WATCH_FILE",
    ),
    wait_time: str = typer.Option(
        "500ms",
        "--wait-time",
        callback=_wait_time_callback,
        help="Time to wait once the file was changed before sending the signal (e.g. 500ms, 2s)",
        envvar="WAIT_TIME",
    ),
    use_polling: bool = typer.Option(
        False,
        "--poll/--no-poll",
        help="Use a polling observer instead of native notifications (network mounts)",
        envvar="WATCH_POLL",
    ),
    loglevel: str = typer.Option(
        "INFO",
        "--loglevel",
        help="Logging level: DEBUG, INFO, WARNING, ERROR",
        envvar="LOG_LEVEL",
    ),
):
    """Watch a file and send SIGHUP to a named process when it changes.

    - Bursts of filesystem events are coalesced over a short debounce window.
    - The target process is looked up by name on every change, so restarts are tolerated.
    """
    configure_logging(loglevel)

    logging.info(
        f"Starting filewatch signaler for process: {process_name!r}, "
        f"watching file {str(watch_file)!r} and duration {wait_time}s"
    )
    check_process(process_name)

    try:
        with FileWatcher(watch_file, use_polling=use_polling) as watcher:
            serve(watcher.batches(), process_name, wait_time)
    except WatchError as e:
        logging.error(f"Error watching file: {e}")
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        logging.info("Stopping watcher...")


if __name__ == "__main__":
    app()
