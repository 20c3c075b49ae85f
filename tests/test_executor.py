"""Unit tests for executor module."""

import os
import signal
import sys
import tempfile
from unittest.mock import patch

import pytest

from sbcli.executor import (
    CommandError,
    CommandExecutor,
    CommandInterrupted,
    SubprocessExecutor,
    get_executor,
    is_interrupt_returncode,
    set_executor,
)


class TestSubprocessExecutor:
    """Test cases for SubprocessExecutor."""

    def test_capture_combines_output(self):
        """capture returns stdout and stderr together."""
        output = SubprocessExecutor().capture(
            [sys.executable, "-c", "import sys; print('out'); print('err', file=sys.stderr)"]
        )
        assert "out" in output
        assert "err" in output

    def test_capture_runs_in_cwd(self):
        """capture runs the command in the given directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            output = SubprocessExecutor().capture(
                [sys.executable, "-c", "import os; print(os.getcwd())"], cwd=tmpdir
            )
            assert os.path.samefile(output.strip(), tmpdir)

    def test_capture_non_zero_exit(self):
        """A non-zero exit raises CommandError with code and output."""
        with pytest.raises(CommandError) as exc_info:
            SubprocessExecutor().capture(
                [sys.executable, "-c", "print('boom'); raise SystemExit(3)"]
            )
        assert exc_info.value.returncode == 3
        assert "boom" in exc_info.value.output

    def test_capture_killed_by_sigterm(self):
        """A process terminated by SIGTERM counts as interrupted."""
        with pytest.raises(CommandInterrupted):
            SubprocessExecutor().capture(
                [sys.executable, "-c", "import os, signal; os.kill(os.getpid(), signal.SIGTERM)"]
            )

    def test_capture_killed_by_other_signal(self):
        """A process killed by any other signal is a command failure."""
        with pytest.raises(CommandError) as exc_info:
            SubprocessExecutor().capture(
                [sys.executable, "-c", "import os, signal; os.kill(os.getpid(), signal.SIGKILL)"]
            )
        assert exc_info.value.returncode == -signal.SIGKILL
        assert "killed by signal" in str(exc_info.value)

    def test_capture_missing_binary(self):
        """A binary that cannot start raises CommandError."""
        with pytest.raises(CommandError, match="Failed to run"):
            SubprocessExecutor().capture(["/nonexistent/ansible-playbook"])

    def test_capture_keyboard_interrupt(self):
        """A user interrupt becomes CommandInterrupted."""
        with patch("sbcli.executor.subprocess.run", side_effect=KeyboardInterrupt):
            with pytest.raises(CommandInterrupted):
                SubprocessExecutor().capture(["ansible-playbook"])

    def test_stream_returns_code(self):
        """stream returns the process return code."""
        code = SubprocessExecutor().stream([sys.executable, "-c", "raise SystemExit(2)"])
        assert code == 2

    def test_stream_keyboard_interrupt(self):
        """A user interrupt while streaming becomes CommandInterrupted."""
        with patch("sbcli.executor.subprocess.run", side_effect=KeyboardInterrupt):
            with pytest.raises(CommandInterrupted):
                SubprocessExecutor().stream(["ansible-playbook"])

    def test_stream_missing_binary(self):
        """A binary that cannot start raises CommandError."""
        with pytest.raises(CommandError):
            SubprocessExecutor().stream(["/nonexistent/ansible-playbook"])


class TestDefaultExecutor:
    """Test cases for the process-wide executor."""

    def test_default_is_subprocess(self):
        """The default executor runs real subprocesses."""
        assert isinstance(get_executor(), SubprocessExecutor)

    def test_set_executor_returns_previous(self):
        """set_executor swaps the executor and returns the old one."""

        class NullExecutor(CommandExecutor):
            def capture(self, command, cwd=None):
                return ""

            def stream(self, command, cwd=None):
                return 0

        replacement = NullExecutor()
        previous = set_executor(replacement)
        try:
            assert get_executor() is replacement
        finally:
            set_executor(previous)
        assert get_executor() is previous


class TestIsInterruptReturncode:
    """Test cases for is_interrupt_returncode."""

    def test_interrupt_signals(self):
        assert is_interrupt_returncode(-signal.SIGINT)
        assert is_interrupt_returncode(-signal.SIGTERM)

    def test_other_codes(self):
        assert not is_interrupt_returncode(0)
        assert not is_interrupt_returncode(2)
        assert not is_interrupt_returncode(-signal.SIGKILL)
        assert not is_interrupt_returncode(-signal.SIGSEGV)
