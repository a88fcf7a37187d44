import os
import signal
import logging
from typing import Optional

import psutil


class SignalDeliveryError(Exception):
    def __init__(self, pid: int, error: OSError) -> None:
        super().__init__(f"Failed to send SIGHUP to pid {pid}: {error}")
        self.pid = pid
        self.error = error


def find_process(name_filter: str) -> Optional[int]:
    """Return the pid of the first running process whose name contains
    ``name_filter`` (case-insensitive), or None.

    The process table is scanned fresh on every call; the target may have
    been restarted under a new pid since the last lookup.
    """
    needle = name_filter.lower()
    for p in psutil.process_iter(attrs=["name"]):
        try:
            name = p.info.get("name")
            if name and needle in str(name).lower():
                logging.debug(f"Process: {name} PID: {p.pid}")
                return p.pid
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return None


def send_sighup(pid: int) -> None:
    logging.info(f"Sending SIGHUP to process {pid}")
    try:
        os.kill(pid, signal.SIGHUP)
    except OSError as e:
        raise SignalDeliveryError(pid, e) from e


def signal_process(name_filter: str) -> bool:
    """Look up the target process and send it SIGHUP.

    Returns True when the signal was delivered. A missing process or a failed
    delivery is logged and reported as False; the caller keeps watching.
    """
    pid = find_process(name_filter)
    if pid is None:
        logging.error(f"Could not find process with name: {name_filter}")
        return False

    logging.debug(f"Found {name_filter} process with pid: {pid}")
    try:
        send_sighup(pid)
    except SignalDeliveryError as e:
        logging.error(str(e))
        return False
    return True


def check_process(name_filter: str) -> bool:
    """Startup diagnostic: warn early if the target is not running. Never signals."""
    if find_process(name_filter) is None:
        logging.warning(f"Could not find process with name: {name_filter}")
        return False
    return True
