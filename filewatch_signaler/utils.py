import re
import logging

_UNITS = {
    "ns": 1e-9,
    "nsec": 1e-9,
    "nanos": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "usec": 1e-6,
    "micros": 1e-6,
    "ms": 1e-3,
    "msec": 1e-3,
    "millis": 1e-3,
    "s": 1.0,
    "sec": 1.0,
    "secs": 1.0,
    "second": 1.0,
    "seconds": 1.0,
    "m": 60.0,
    "min": 60.0,
    "mins": 60.0,
    "minute": 60.0,
    "minutes": 60.0,
    "h": 3600.0,
    "hr": 3600.0,
    "hrs": 3600.0,
    "hour": 3600.0,
    "hours": 3600.0,
    "d": 86400.0,
    "day": 86400.0,
    "days": 86400.0,
    "w": 604800.0,
    "week": 604800.0,
    "weeks": 604800.0,
}

_TERM = re.compile(r"\s*(\d+(?:\.\d+)?)\s*([a-zµ]+)\s*")


def parse_duration(text: str) -> float:
    """Parse a human-readable duration ("500ms", "2s", "1m 30s") into seconds."""
    value = (text or "").strip().lower()
    if not value:
        raise ValueError("empty duration")
    if value == "0":
        return 0.0

    total = 0.0
    pos = 0
    while pos < len(value):
        match = _TERM.match(value, pos)
        if match is None:
            raise ValueError(f"invalid duration: {text!r}")
        number, unit = match.groups()
        if unit not in _UNITS:
            raise ValueError(f"unknown time unit {unit!r} in duration {text!r}")
        total += float(number) * _UNITS[unit]
        pos = match.end()
    return total


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    # watchdog logs every emitter at DEBUG
    logging.getLogger("watchdog").setLevel(logging.WARNING)
