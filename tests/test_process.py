"""
Tests for process lookup and SIGHUP delivery.
"""

import logging
import signal
import subprocess
import sys
from unittest.mock import patch

import psutil
import pytest

from filewatch_signaler.process import (
    SignalDeliveryError,
    check_process,
    find_process,
    send_sighup,
    signal_process,
)
from tests.conftest import FakeProcess


class VanishedProcess:
    """A process that exits while the table is being enumerated."""

    pid = 99

    @property
    def info(self):
        raise psutil.NoSuchProcess(self.pid)


class TestFindProcess:
    """Test cases for find_process."""

    def test_substring_match(self):
        """A filter matches any process whose name contains it."""
        table = [FakeProcess(1, "init"), FakeProcess(42, "mydaemon")]
        with patch("psutil.process_iter", return_value=table):
            assert find_process("myd") == 42

    def test_case_insensitive(self):
        """Names and filters are compared case-insensitively."""
        table = [FakeProcess(7, "MyDaemon")]
        with patch("psutil.process_iter", return_value=table):
            assert find_process("mydaemon") == 7
            assert find_process("MYD") == 7

    def test_first_match_wins(self):
        """With several matches, the first one enumerated is returned."""
        table = [FakeProcess(10, "mosquitto"), FakeProcess(11, "mosquitto")]
        with patch("psutil.process_iter", return_value=table):
            assert find_process("mosq") == 10

    def test_not_found(self):
        """No matching name gives None, not an error."""
        table = [FakeProcess(1, "init"), FakeProcess(2, "sshd")]
        with patch("psutil.process_iter", return_value=table):
            assert find_process("myd") is None

    def test_skips_vanished_and_nameless(self):
        """Processes that disappear or have no name are skipped."""
        table = [VanishedProcess(), FakeProcess(3, None), FakeProcess(4, "mydaemon")]
        with patch("psutil.process_iter", return_value=table):
            assert find_process("myd") == 4

    def test_rescans_every_call(self):
        """The table is enumerated afresh on each lookup, so restarts are seen."""
        tables = [[FakeProcess(100, "mydaemon")], [FakeProcess(200, "mydaemon")]]
        with patch("psutil.process_iter", side_effect=tables) as process_iter:
            assert find_process("myd") == 100
            assert find_process("myd") == 200
            assert process_iter.call_count == 2

    def test_finds_current_process(self):
        """Against the live table, the returned process really matches."""
        name = psutil.Process().name()
        pid = find_process(name)
        assert pid is not None
        assert name.lower() in psutil.Process(pid).name().lower()


class TestSendSighup:
    """Test cases for send_sighup."""

    def test_sends_sighup(self):
        """The hang-up signal goes to the given pid."""
        with patch("os.kill") as mock_kill:
            send_sighup(12345)
            mock_kill.assert_called_once_with(12345, signal.SIGHUP)

    @pytest.mark.parametrize("error", [ProcessLookupError("No such process"), PermissionError("denied")])
    def test_failure_is_surfaced(self, error: OSError):
        """Delivery failures are raised as SignalDeliveryError."""
        with patch("os.kill", side_effect=error):
            with pytest.raises(SignalDeliveryError) as excinfo:
                send_sighup(12345)
        assert excinfo.value.pid == 12345
        assert excinfo.value.error is error

    def test_real_process_receives_signal(self):
        """A live child process runs its SIGHUP handler."""
        code = (
            "import signal, sys, time\n"
            "signal.signal(signal.SIGHUP, lambda *a: sys.exit(3))\n"
            "print('ready', flush=True)\n"
            "time.sleep(30)\n"
        )
        child = subprocess.Popen([sys.executable, "-c", code], stdout=subprocess.PIPE, text=True)
        try:
            assert child.stdout.readline().strip() == "ready"
            send_sighup(child.pid)
            assert child.wait(timeout=10) == 3
        finally:
            if child.poll() is None:
                child.kill()
            child.stdout.close()


class TestSignalProcess:
    """Test cases for signal_process and check_process."""

    def test_signals_match(self):
        """A matching process receives exactly one SIGHUP."""
        with patch("psutil.process_iter", return_value=[FakeProcess(42, "mydaemon")]):
            with patch("os.kill") as mock_kill:
                assert signal_process("myd") is True
                mock_kill.assert_called_once_with(42, signal.SIGHUP)

    def test_not_found_is_idempotent(self, caplog):
        """Two failed lookups in a row send nothing and log each time."""
        with patch("psutil.process_iter", return_value=[FakeProcess(1, "init")]):
            with patch("os.kill") as mock_kill:
                with caplog.at_level(logging.ERROR):
                    assert signal_process("myd") is False
                    assert signal_process("myd") is False
                mock_kill.assert_not_called()
        assert caplog.text.count("Could not find process with name: myd") == 2

    def test_delivery_failure_is_not_fatal(self, caplog):
        """A process vanishing between lookup and kill is logged, not raised."""
        with patch("psutil.process_iter", return_value=[FakeProcess(42, "mydaemon")]):
            with patch("os.kill", side_effect=ProcessLookupError("No such process")):
                with caplog.at_level(logging.ERROR):
                    assert signal_process("myd") is False
        assert "Failed to send SIGHUP to pid 42" in caplog.text

    def test_check_process_never_signals(self, caplog):
        """The startup diagnostic only looks, and warns when absent."""
        with patch("os.kill") as mock_kill:
            with patch("psutil.process_iter", return_value=[FakeProcess(42, "mydaemon")]):
                assert check_process("myd") is True
            with patch("psutil.process_iter", return_value=[]):
                with caplog.at_level(logging.WARNING):
                    assert check_process("myd") is False
            mock_kill.assert_not_called()
        assert "Could not find process with name: myd" in caplog.text
