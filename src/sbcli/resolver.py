"""Valid tag resolution for sbcli.

This module decides which tags a repository currently declares. Results are
memoized in the tag cache keyed by commit, so the expensive playbook parse
only runs when the repository changed or the cache is unusable.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sbcli.cache_store import CacheStore, CacheStoreError, RepoCacheRecord
from sbcli.config import Settings
from sbcli.git_oracle import CommitOracle, CommitOracleError, get_commit_oracle
from sbcli.repos import Repo
from sbcli.tag_oracle import AnsibleTagOracle, TagOracleError

logger = logging.getLogger(__name__)


@dataclass
class TagResolution:
    """Outcome of resolving one repository's tags.

    Attributes:
        tags: Valid tags, in declaration order.
        from_cache: True if the tags were served from a current cache record.
        flush_error: Set when fresh tags could not be persisted.
    """

    tags: List[str] = field(default_factory=list)
    from_cache: bool = False
    flush_error: Optional[CacheStoreError] = None


def _unique(tags: List[str]) -> List[str]:
    return list(dict.fromkeys(tags))


class TagResolver:
    """Resolves repository tags through the cache, commit and tag oracles."""

    def __init__(
        self,
        cache_store: CacheStore,
        settings: Settings,
        commit_oracle: Optional[CommitOracle] = None,
        tag_oracle: Optional[AnsibleTagOracle] = None,
    ):
        """Initialize the resolver.

        Args:
            cache_store: Cache store shared by every resolution in this run.
            settings: Repository locations.
            commit_oracle: Commit lookup. If None, the process-wide commit
                oracle is looked up on every call.
            tag_oracle: Tag listing. Defaults to an AnsibleTagOracle using the
                configured ansible-playbook binary.
        """
        self.cache_store = cache_store
        self.settings = settings
        self._commit_oracle = commit_oracle
        self.tag_oracle = tag_oracle or AnsibleTagOracle(settings.ansible_playbook_binary)

    @property
    def commit_oracle(self) -> CommitOracle:
        return self._commit_oracle or get_commit_oracle()

    def _current_commit(self, repo_path: str) -> Optional[str]:
        try:
            return self.commit_oracle.current_commit(repo_path)
        except CommitOracleError as e:
            logger.debug(f"Error getting current commit for {repo_path}: {e}")
            return None

    def resolve(
        self, repo: Repo, use_cache: bool = True, extra_skip_tags: str = ""
    ) -> TagResolution:
        """Resolve the valid tags of a repository.

        Oracle failures degrade to the previously cached tags (or none); only
        a user interrupt propagates.

        Args:
            repo: Repository to resolve.
            use_cache: If False, skip the cache check and always list tags.
            extra_skip_tags: Extra tags to skip while listing.

        Returns:
            The resolution result.

        Raises:
            CommandInterrupted: If tag listing was interrupted by the user.
        """
        repo_path = self.settings.repo_path(repo)
        cached = self.cache_store.get(repo_path)
        current_commit = None

        if not use_cache:
            logger.debug(f"Cache bypassed for {repo_path}")
        elif cached is None:
            logger.debug(f"Cache NOT found for {repo_path}")
        else:
            logger.debug(f"Cache found for {repo_path}")
            current_commit = self._current_commit(repo_path)
            if current_commit is None:
                logger.debug(f"Commit unknown for {repo_path}, treating cache as stale")
            elif cached.commit != current_commit:
                logger.debug(
                    f"Commit mismatch for {repo_path} "
                    f"(cached: {cached.commit}, current: {current_commit})"
                )
            elif not cached.is_valid():
                logger.debug(f"Cached tag list is empty for {repo_path}")
            else:
                logger.debug(f"Cache valid for {repo_path}: {cached.tags}")
                return TagResolution(tags=_unique(cached.tags), from_cache=True)

        logger.debug(f"Attempting to update/populate cache for {repo_path}")
        try:
            declared = self.tag_oracle.declared_tags(
                repo_path, self.settings.playbook_path(repo), extra_skip_tags
            )
        except TagOracleError as e:
            logger.warning(f"Could not list tags for {repo.display_name}: {e}")
            previous = cached.tags if cached is not None else []
            return TagResolution(tags=_unique(previous))

        if current_commit is None:
            current_commit = self._current_commit(repo_path) or ""

        self.cache_store.set(repo_path, RepoCacheRecord(commit=current_commit, tags=declared))
        resolution = TagResolution(tags=_unique(declared))
        try:
            self.cache_store.flush()
        except CacheStoreError as e:
            logger.error(f"Failed to persist tag cache: {e}")
            resolution.flush_error = e
        return resolution
