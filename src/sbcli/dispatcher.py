"""Playbook dispatch for sbcli.

This module turns a validated tag group into an ``ansible-playbook``
invocation and runs it with output streamed to the terminal.
"""

import logging
import shlex
from typing import List, Optional, Sequence

import click

from sbcli.executor import (
    CommandError,
    CommandExecutor,
    CommandInterrupted,
    get_executor,
    is_interrupt_returncode,
)

logger = logging.getLogger(__name__)


class PlaybookError(Exception):
    """Raised when a playbook run fails."""

    def __init__(self, message: str, returncode: Optional[int] = None):
        super().__init__(message)
        self.returncode = returncode


class PlaybookInterrupted(Exception):
    """Raised when the user interrupted a playbook run."""

    pass


def build_args(
    tags: Sequence[str],
    extra_vars: Sequence[str] = (),
    skip_tags: Sequence[str] = (),
    extra_args: Sequence[str] = (),
) -> List[str]:
    """Assemble the playbook arguments for one tag group.

    Args:
        tags: Bare tags to run.
        extra_vars: Values passed one per ``--extra-vars`` flag, in order.
        skip_tags: Tags to skip; omitted entirely when empty.
        extra_args: Pass-through flags appended last (e.g. ``-vv``).

    Returns:
        The argument vector, starting with ``--tags``.
    """
    args = ["--tags", ",".join(tags)]
    for extra_var in extra_vars:
        args.extend(["--extra-vars", extra_var])
    if skip_tags:
        args.extend(["--skip-tags", ",".join(skip_tags)])
    args.extend(extra_args)
    return args


def verbosity_args(verbosity: int) -> List[str]:
    """Translate a verbosity count into ansible's ``-v`` flag."""
    if verbosity <= 0:
        return []
    return ["-" + "v" * verbosity]


class PlaybookDispatcher:
    """Runs ansible-playbook for validated tag groups."""

    def __init__(
        self,
        ansible_playbook_binary: str = "ansible-playbook",
        executor: Optional[CommandExecutor] = None,
    ):
        self.ansible_playbook_binary = ansible_playbook_binary
        self._executor = executor

    @property
    def executor(self) -> CommandExecutor:
        return self._executor or get_executor()

    def generate_command(self, playbook_path: str, args: Sequence[str]) -> List[str]:
        """Generate the full command line for a playbook run."""
        return [self.ansible_playbook_binary, playbook_path, "--become"] + list(args)

    def generate_command_string(self, playbook_path: str, args: Sequence[str]) -> str:
        """Generate the command as a shell-escaped string."""
        command = self.generate_command(playbook_path, args)
        return " ".join(shlex.quote(arg) for arg in command)

    def run(self, repo_path: str, playbook_path: str, args: Sequence[str]) -> None:
        """Run a playbook with output streamed live.

        Args:
            repo_path: Repository directory to run in.
            playbook_path: Playbook to execute.
            args: Arguments from ``build_args``.

        Raises:
            PlaybookInterrupted: If the user interrupted the run.
            PlaybookError: If the run could not start or failed.
        """
        command = self.generate_command(playbook_path, args)
        logger.debug(
            f"Executing Ansible playbook with command: "
            f"{self.generate_command_string(playbook_path, args)}"
        )

        try:
            returncode = self.executor.stream(command, cwd=repo_path)
        except CommandInterrupted:
            raise PlaybookInterrupted("Playbook execution interrupted by user")
        except CommandError as e:
            raise PlaybookError(f"Playbook {playbook_path} run failed: {e}")

        if is_interrupt_returncode(returncode):
            raise PlaybookInterrupted("Playbook execution interrupted by user")
        if returncode != 0:
            raise PlaybookError(
                f"Playbook {playbook_path} run failed, scroll up to the failed task "
                f"to review.\nExit code: {returncode}",
                returncode=returncode,
            )

        click.echo(f"\nPlaybook {playbook_path} executed successfully.")
