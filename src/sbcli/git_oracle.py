"""Git commit lookup for sbcli.

The commit of a repository working tree is the key the tag cache is
invalidated on.
"""

import os
from abc import ABC, abstractmethod
from pathlib import Path

from git import Repo, InvalidGitRepositoryError, GitCommandError, NoSuchPathError
from git.exc import GitError


class CommitOracleError(Exception):
    """Base exception for commit lookup errors."""

    pass


class CommitOracle(ABC):
    """Abstract base class for commit lookups."""

    @abstractmethod
    def current_commit(self, repo_path: str) -> str:
        """Get the commit a repository working tree is at.

        Raises:
            CommitOracleError: If the commit cannot be determined.
        """
        pass


class GitCommitOracle(CommitOracle):
    """Resolves the current commit of a repository working tree with GitPython."""

    def current_commit(self, repo_path: str) -> str:
        """Get the commit HEAD points to (``git rev-parse HEAD``).

        Args:
            repo_path: Path to the repository working tree.

        Returns:
            The commit SHA, whitespace-trimmed.

        Raises:
            CommitOracleError: If the path is missing, is not a repository,
                has no commits, or git fails.
        """
        path = Path(repo_path)
        if not os.path.isdir(path):
            raise CommitOracleError(
                f"The folder '{repo_path}' does not exist. This indicates an incomplete install"
            )

        try:
            with Repo(path) as repo:
                return repo.git.rev_parse("HEAD").strip()
        except (InvalidGitRepositoryError, NoSuchPathError):
            raise CommitOracleError(f"Path '{repo_path}' is not a valid git repository")
        except GitCommandError as e:
            raise CommitOracleError(
                f"Error occurred while trying to get the git commit hash for '{repo_path}': {e}"
            )
        except GitError as e:
            raise CommitOracleError(f"Git error while getting commit for '{repo_path}': {e}")


_default_commit_oracle: CommitOracle = GitCommitOracle()


def get_commit_oracle() -> CommitOracle:
    """Return the process-wide commit oracle."""
    return _default_commit_oracle


def set_commit_oracle(oracle: CommitOracle) -> CommitOracle:
    """Replace the process-wide commit oracle.

    Returns:
        The previously installed oracle, so callers can restore it.
    """
    global _default_commit_oracle
    previous = _default_commit_oracle
    _default_commit_oracle = oracle
    return previous
