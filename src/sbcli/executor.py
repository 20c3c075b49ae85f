"""External command execution for sbcli.

This module provides the capability interface the tag oracle and the
playbook dispatcher use to run external programs. A process-wide default
executor can be swapped out (tests install a stub with ``set_executor``).
"""

import signal
import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional

# Return codes of processes killed by these signals count as user interrupts.
INTERRUPT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def is_interrupt_returncode(returncode: int) -> bool:
    """Check whether a return code means the process was interrupted."""
    return returncode < 0 and -returncode in INTERRUPT_SIGNALS


class CommandError(Exception):
    """Raised when an external command fails to start or exits non-zero."""

    def __init__(self, message: str, returncode: Optional[int] = None, output: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.output = output


class CommandInterrupted(Exception):
    """Raised when an external command was interrupted by the user."""

    pass


class CommandExecutor(ABC):
    """Abstract base class for running external commands."""

    @abstractmethod
    def capture(self, command: List[str], cwd: Optional[str] = None) -> str:
        """Run a command and return its combined stdout/stderr.

        Args:
            command: Program and arguments.
            cwd: Working directory for the command. Optional.

        Returns:
            The combined output decoded as text.

        Raises:
            CommandError: If the command cannot start or exits non-zero.
            CommandInterrupted: If the command was interrupted.
        """
        pass

    @abstractmethod
    def stream(self, command: List[str], cwd: Optional[str] = None) -> int:
        """Run a command with stdio attached to the current terminal.

        Args:
            command: Program and arguments.
            cwd: Working directory for the command. Optional.

        Returns:
            The process return code (negative when killed by a signal).

        Raises:
            CommandError: If the command cannot start.
            CommandInterrupted: If the user interrupted the command.
        """
        pass


class SubprocessExecutor(CommandExecutor):
    """Runs commands with the ``subprocess`` module."""

    def capture(self, command: List[str], cwd: Optional[str] = None) -> str:
        try:
            result = subprocess.run(
                command,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                check=False,
            )
        except KeyboardInterrupt:
            raise CommandInterrupted(f"Command interrupted by user: {command[0]}")
        except OSError as e:
            raise CommandError(f"Failed to run '{command[0]}': {e}")

        output = result.stdout.decode("utf-8", errors="replace")
        if is_interrupt_returncode(result.returncode):
            raise CommandInterrupted(
                f"Command '{command[0]}' terminated by signal {-result.returncode}"
            )
        if result.returncode < 0:
            raise CommandError(
                f"Command '{command[0]}' killed by signal {-result.returncode}",
                returncode=result.returncode,
                output=output,
            )
        if result.returncode != 0:
            raise CommandError(
                f"Command '{command[0]}' exited with code {result.returncode}",
                returncode=result.returncode,
                output=output,
            )
        return output

    def stream(self, command: List[str], cwd: Optional[str] = None) -> int:
        try:
            return subprocess.run(command, cwd=cwd, check=False).returncode
        except KeyboardInterrupt:
            raise CommandInterrupted(f"Command interrupted by user: {command[0]}")
        except OSError as e:
            raise CommandError(f"Failed to run '{command[0]}': {e}")


_default_executor: CommandExecutor = SubprocessExecutor()


def get_executor() -> CommandExecutor:
    """Return the process-wide command executor."""
    return _default_executor


def set_executor(executor: CommandExecutor) -> CommandExecutor:
    """Replace the process-wide command executor.

    Args:
        executor: The executor to install.

    Returns:
        The previously installed executor, so callers can restore it.
    """
    global _default_executor
    previous = _default_executor
    _default_executor = executor
    return previous
