"""sbcli - Saltbox command-line interface.

Runs the Saltbox, Sandbox and Saltbox-mod Ansible playbooks by tag, keeping a
commit-keyed cache of the tags each repository declares and suggesting
corrections for tags that do not exist.
"""

__version__ = "0.1.0"

from sbcli.cache_store import CacheStore, CacheStoreError, FileCacheStore, RepoCacheRecord
from sbcli.config import Settings, load_settings
from sbcli.coordinator import CoordinatorError, InstallCoordinator
from sbcli.disk import DiskSpaceError, check_disk_space
from sbcli.dispatcher import (
    PlaybookDispatcher,
    PlaybookError,
    PlaybookInterrupted,
    build_args,
)
from sbcli.executor import (
    CommandError,
    CommandExecutor,
    CommandInterrupted,
    SubprocessExecutor,
    get_executor,
    set_executor,
)
from sbcli.git_oracle import (
    CommitOracle,
    CommitOracleError,
    GitCommitOracle,
    get_commit_oracle,
    set_commit_oracle,
)
from sbcli.repos import Repo, TagGroup, partition_tags
from sbcli.resolver import TagResolution, TagResolver
from sbcli.suggestions import (
    BrokenInstallError,
    Suggestion,
    SuggestionKind,
    TagValidationError,
    edit_distance,
    format_suggestions,
    validate_tags,
)
from sbcli.tag_oracle import AnsibleTagOracle, TagOracleError, parse_task_tags

__all__ = [
    "__version__",
    # Executor
    "CommandExecutor",
    "SubprocessExecutor",
    "CommandError",
    "CommandInterrupted",
    "get_executor",
    "set_executor",
    # Cache store
    "CacheStore",
    "FileCacheStore",
    "RepoCacheRecord",
    "CacheStoreError",
    # Oracles
    "CommitOracle",
    "GitCommitOracle",
    "get_commit_oracle",
    "set_commit_oracle",
    "CommitOracleError",
    "AnsibleTagOracle",
    "TagOracleError",
    "parse_task_tags",
    # Repositories and settings
    "Repo",
    "TagGroup",
    "partition_tags",
    "Settings",
    "load_settings",
    # Resolver
    "TagResolver",
    "TagResolution",
    # Suggestions
    "Suggestion",
    "SuggestionKind",
    "TagValidationError",
    "BrokenInstallError",
    "edit_distance",
    "validate_tags",
    "format_suggestions",
    # Disk space
    "check_disk_space",
    "DiskSpaceError",
    # Dispatcher
    "PlaybookDispatcher",
    "PlaybookError",
    "PlaybookInterrupted",
    "build_args",
    # Coordinator
    "InstallCoordinator",
    "CoordinatorError",
]
