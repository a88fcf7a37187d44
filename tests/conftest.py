"""
Filewatch Signaler Test Configuration.

Pytest fixtures shared across test modules.
"""

from pathlib import Path
from typing import List

import pytest

from filewatch_signaler.handlers import ChangeEvent


class FakeProcess:
    """Stand-in for psutil.Process as yielded by process_iter(attrs=[...])."""

    def __init__(self, pid: int, name: str) -> None:
        self.pid = pid
        self.info = {"name": name}


@pytest.fixture
def watch_file(tmp_path: Path) -> Path:
    """A config file inside an otherwise empty directory."""
    path = tmp_path / "conf.toml"
    path.write_text("key = 1\n")
    return path


@pytest.fixture
def batches() -> List[ChangeEvent]:
    """Collector usable as a Debouncer sink."""
    return []
