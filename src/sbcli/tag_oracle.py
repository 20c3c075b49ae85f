"""Declared tag discovery for sbcli.

This module runs ``ansible-playbook --list-tags`` against a playbook and
extracts the tags from the ``TASK TAGS: [...]`` line of its output.
"""

import logging
import re
from typing import List, Optional

from sbcli.executor import CommandError, CommandExecutor, get_executor

logger = logging.getLogger(__name__)

TASK_TAGS_MARKER = "TASK TAGS:"

_TASK_TAGS_RE = re.compile(r"\[(.*?)\]")


class TagOracleError(Exception):
    """Raised when the tag listing command fails."""

    pass


def parse_task_tags(output: str) -> List[str]:
    """Extract the declared tags from ``--list-tags`` output.

    Only the first line containing the ``TASK TAGS:`` marker is considered.
    A missing marker yields an empty list rather than an error.

    Args:
        output: Raw output of the tag listing command.

    Returns:
        Tags in the order listed, whitespace-trimmed, without empty entries.
    """
    for line in output.splitlines():
        if TASK_TAGS_MARKER not in line:
            continue
        after_marker = line.split(TASK_TAGS_MARKER, 1)[1]
        match = _TASK_TAGS_RE.search(after_marker)
        if not match:
            return []
        return [tag.strip() for tag in match.group(1).split(",") if tag.strip()]
    return []


def build_list_tags_args(playbook_path: str, extra_skip_tags: str = "") -> List[str]:
    """Build the arguments for a tags-only playbook run.

    ``always`` tagged tasks are skipped so they are not reported as
    selectable tags.
    """
    skip_tags = "always"
    if extra_skip_tags:
        skip_tags = f"{skip_tags},{extra_skip_tags}"
    return [playbook_path, "--become", "--list-tags", f"--skip-tags={skip_tags}"]


class AnsibleTagOracle:
    """Lists the tags a playbook declares."""

    def __init__(
        self,
        ansible_playbook_binary: str = "ansible-playbook",
        executor: Optional[CommandExecutor] = None,
    ):
        """Initialize the tag oracle.

        Args:
            ansible_playbook_binary: Path to the ansible-playbook executable.
            executor: Command executor. If None, the process-wide executor is
                looked up on every call.
        """
        self.ansible_playbook_binary = ansible_playbook_binary
        self._executor = executor

    @property
    def executor(self) -> CommandExecutor:
        return self._executor or get_executor()

    def declared_tags(
        self, repo_path: str, playbook_path: str, extra_skip_tags: str = ""
    ) -> List[str]:
        """Get the tags declared by a playbook.

        Args:
            repo_path: Repository directory to run the command in.
            playbook_path: Path to the playbook.
            extra_skip_tags: Comma-separated tags to skip besides ``always``.

        Returns:
            The declared tags (possibly empty).

        Raises:
            TagOracleError: If ansible-playbook fails.
            CommandInterrupted: If the listing was interrupted.
        """
        command = [self.ansible_playbook_binary] + build_list_tags_args(
            playbook_path, extra_skip_tags
        )
        logger.debug(f"Listing tags in {repo_path}: {' '.join(command)}")

        try:
            output = self.executor.capture(command, cwd=repo_path)
        except CommandError as e:
            detail = f"\n{e.output.strip()}" if e.output.strip() else ""
            raise TagOracleError(f"ansible-playbook failed: {e}{detail}")

        tags = parse_task_tags(output)
        if not tags and TASK_TAGS_MARKER not in output:
            logger.debug(
                f"'{TASK_TAGS_MARKER}' not found in the output for '{playbook_path}'"
            )
        return tags
