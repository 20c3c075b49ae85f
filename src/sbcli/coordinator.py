"""Install workflow coordinator for sbcli.

This module orchestrates the install workflow:
1. Split and route the requested tags to their repositories
2. Check for free disk space
3. Resolve each repository's valid tags (cached by commit)
4. Validate the requested tags and collect suggestions
5. Run one playbook per populated tag group

It also backs the tag listing, search and shell completion helpers.
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from sbcli.cache_store import CacheStore, CacheStoreError, FileCacheStore
from sbcli.config import Settings
from sbcli.disk import check_disk_space
from sbcli.dispatcher import PlaybookDispatcher, build_args, verbosity_args
from sbcli.repos import DISPATCH_ORDER, Repo, TagGroup, partition_tags, split_tag_arguments
from sbcli.resolver import TagResolution, TagResolver
from sbcli.suggestions import (
    TYPO_THRESHOLD,
    BrokenInstallError,
    Suggestion,
    TagValidationError,
    edit_distance,
    validate_tags,
)
from sbcli.tag_oracle import TagOracleError

# Order repositories are shown in by ``list``.
LIST_ORDER = (Repo.PRIMARY, Repo.SECONDARY, Repo.TERTIARY)


class CoordinatorError(Exception):
    """Base exception for coordinator errors."""

    pass


@dataclass
class RepoTags:
    """Tags of one repository as shown by ``list``."""

    repo: Repo
    tags: List[str]
    from_cache: bool = False


@dataclass
class TagSearchResult:
    """A tag matching a ``list`` search query.

    A distance of 0 means the query is a substring of the tag.
    """

    repo: Repo
    tag: str
    distance: int

    @property
    def display_tag(self) -> str:
        return self.repo.prefix + self.tag


def parse_tags(arguments: Sequence[str]) -> List[str]:
    """Split raw tag arguments, rejecting an empty result.

    Raises:
        CoordinatorError: If no tags remain after trimming.
    """
    tags = split_tag_arguments(list(arguments))
    if not tags:
        raise CoordinatorError("no tags provided")
    return tags


class InstallCoordinator:
    """Coordinates tag validation and playbook dispatch."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache_store: Optional[CacheStore] = None,
        resolver: Optional[TagResolver] = None,
        dispatcher: Optional[PlaybookDispatcher] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """Initialize the install coordinator.

        The cache store and resolver are created on first use, so input
        errors are reported before the cache file is touched.

        Args:
            settings: Repository and cache locations. Defaults to Settings().
            cache_store: Cache store. If None, a FileCacheStore on
                ``settings.cache_file`` is created when first needed.
            resolver: Tag resolver. If None, one is built over the cache store.
            dispatcher: Playbook dispatcher. If None, one is built for the
                configured ansible-playbook binary.
            logger: Logger instance. If None, creates a basic logger.
        """
        self.settings = settings or Settings()

        if logger is None:
            self.logger = logging.getLogger(__name__)
            if not self.logger.handlers:
                handler = logging.StreamHandler()
                handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
                self.logger.addHandler(handler)
                self.logger.setLevel(logging.INFO)
        else:
            self.logger = logger

        self._cache_store = cache_store
        self._resolver = resolver
        self.dispatcher = dispatcher or PlaybookDispatcher(
            self.settings.ansible_playbook_binary
        )
        self._resolved: Dict[Repo, TagResolution] = {}

    @property
    def cache_store(self) -> CacheStore:
        if self._cache_store is None:
            try:
                self._cache_store = FileCacheStore(self.settings.cache_file)
            except CacheStoreError as e:
                raise CoordinatorError(
                    f"Error loading tag cache: {e}. "
                    f"Remove '{self.settings.cache_file}' to rebuild it."
                )
        return self._cache_store

    @property
    def resolver(self) -> TagResolver:
        if self._resolver is None:
            self._resolver = TagResolver(self.cache_store, self.settings)
        return self._resolver

    def resolve(
        self, repo: Repo, use_cache: bool = True, extra_skip_tags: str = ""
    ) -> TagResolution:
        """Resolve a repository's tags once per coordinator.

        A failed cache flush is reported as a warning; the tags are still used.
        """
        if use_cache and repo in self._resolved:
            return self._resolved[repo]

        resolution = self.resolver.resolve(
            repo, use_cache=use_cache, extra_skip_tags=extra_skip_tags
        )
        if resolution.flush_error is not None:
            self.logger.warning(
                f"Continuing without saving the tag cache: {resolution.flush_error}"
            )
        self.logger.debug(f"Valid tags for {repo.display_name}: {resolution.tags}")
        self._resolved[repo] = resolution
        return resolution

    def check_cache(self) -> bool:
        """Check that the Saltbox and Sandbox cache records are usable.

        Returns:
            True if both records exist with tags, False otherwise.
        """
        valid = all(
            self.cache_store.is_valid(self.settings.repo_path(repo))
            for repo in (Repo.PRIMARY, Repo.SECONDARY)
        )
        self.logger.debug(f"needsCacheUpdate: {not valid}")
        if not valid:
            self.logger.info("Cache missing or incomplete, updating the cache")
        return valid

    def _valid_tags(self, repo: Repo) -> List[str]:
        tags = self.resolve(repo).tags
        if repo is Repo.PRIMARY and not tags:
            raise BrokenInstallError(
                "Saltbox install appears broken: tags cache missing or empty"
            )
        return tags

    def validate_group(self, group: TagGroup) -> List[Suggestion]:
        """Validate one tag group against its own and the other repository.

        Returns:
            Suggestions for the invalid tags, sorted by input tag.

        Raises:
            BrokenInstallError: If Saltbox resolves to no tags.
        """
        if not group.tags:
            return []

        repo = group.repo
        other = repo.other
        repo_tags = self._valid_tags(repo)
        other_tags = self._valid_tags(other)

        for tag in group.tags:
            self.logger.debug(f"Checking tag: {repo.prefix}{tag}")

        return validate_tags(
            repo_tags,
            other_tags,
            group.tags,
            current_prefix=repo.prefix,
            other_prefix=other.prefix,
            repo_name=repo.display_name,
            other_repo_name=other.display_name,
        )

    def validate(self, groups: Dict[Repo, TagGroup]) -> None:
        """Validate the Saltbox and Sandbox groups.

        Saltbox-mod tags are not validated; that repository is user maintained.

        Raises:
            TagValidationError: If any tag is invalid.
            BrokenInstallError: If Saltbox resolves to no tags.
        """
        suggestions = []
        for repo in (Repo.PRIMARY, Repo.SECONDARY):
            suggestions.extend(self.validate_group(groups[repo]))
        if suggestions:
            suggestions.sort(key=lambda s: s.input_tag)
            raise TagValidationError(suggestions)
        self.logger.debug("No suggestions needed, continuing")

    def run_install(
        self,
        tag_arguments: Sequence[str],
        extra_vars: Sequence[str] = (),
        skip_tags: Sequence[str] = (),
        verbosity: int = 0,
        no_cache: bool = False,
    ) -> List[Repo]:
        """Run the complete install workflow.

        Args:
            tag_arguments: Raw tag arguments (comma or space separated).
            extra_vars: ``--extra-vars`` values.
            skip_tags: Tags to skip.
            verbosity: Number of ``-v`` flags to pass to ansible-playbook.
            no_cache: If True, skip cache checks and tag validation.

        Returns:
            The repositories whose playbooks were run, in run order.

        Raises:
            CoordinatorError: If no tags were given or the cache is unreadable.
            DiskSpaceError: If the root or appdata filesystem is nearly full.
            TagValidationError: If any tag is invalid.
            BrokenInstallError: If Saltbox resolves to no tags.
            PlaybookError: If a playbook run fails.
            PlaybookInterrupted: If the user interrupted a playbook run.
        """
        tags = parse_tags(tag_arguments)
        groups = partition_tags(tags)
        check_disk_space(["/", self.settings.server_appdata_path])

        if no_cache:
            self.logger.debug("Cache validation skipped due to --no-cache flag")
        else:
            self.check_cache()
            self.validate(groups)

        extra_args = verbosity_args(verbosity)
        ran = []
        for repo in DISPATCH_ORDER:
            group = groups[repo]
            if not group.tags:
                continue
            args = build_args(group.tags, extra_vars, skip_tags, extra_args)
            self.dispatcher.run(
                self.settings.repo_path(repo), self.settings.playbook_path(repo), args
            )
            ran.append(repo)
        return ran

    def _mod_installed(self) -> bool:
        return os.path.isdir(self.settings.repo_path(Repo.TERTIARY))

    def list_tags(self, include_mod: bool = False, no_cache: bool = False) -> List[RepoTags]:
        """Collect the tags of each repository for display.

        Saltbox-mod tags are always listed fresh and never cached.
        """
        repos = [Repo.PRIMARY, Repo.SECONDARY]
        if include_mod:
            if self._mod_installed():
                repos.append(Repo.TERTIARY)
            else:
                self.logger.warning(
                    "Saltbox-mod directory not found, skipping. Ensure Saltbox-mod is installed."
                )

        listing = []
        for repo in repos:
            if repo is Repo.TERTIARY:
                try:
                    tags = self.resolver.tag_oracle.declared_tags(
                        self.settings.repo_path(repo),
                        self.settings.playbook_path(repo),
                        repo.list_skip_tags,
                    )
                except TagOracleError as e:
                    self.logger.error(f"Error listing tags for {repo.display_name}: {e}")
                    continue
                listing.append(RepoTags(repo=repo, tags=tags))
                continue

            resolution = self.resolve(
                repo, use_cache=not no_cache, extra_skip_tags=repo.list_skip_tags
            )
            listing.append(
                RepoTags(repo=repo, tags=resolution.tags, from_cache=resolution.from_cache)
            )
        return listing

    def search_tags(
        self, query: str, include_mod: bool = False, no_cache: bool = False
    ) -> List[TagSearchResult]:
        """Fuzzy search the tags of every listed repository.

        A tag matches if it contains the query (case-insensitive) or is
        within the typo threshold of it.

        Returns:
            Matches ordered by distance, repository, then tag.
        """
        query_lower = query.lower()
        results = []
        for entry in self.list_tags(include_mod=include_mod, no_cache=no_cache):
            for tag in entry.tags:
                tag_lower = tag.lower()
                if query_lower in tag_lower:
                    distance = 0
                else:
                    distance = edit_distance(query_lower, tag_lower)
                    if distance > TYPO_THRESHOLD:
                        continue
                results.append(TagSearchResult(repo=entry.repo, tag=tag, distance=distance))

        return sorted(
            results, key=lambda r: (r.distance, LIST_ORDER.index(r.repo), r.tag)
        )

    def completion_tags(self) -> List[str]:
        """Return install tags for shell completion.

        If neither the Saltbox nor the Sandbox cache is usable, both are
        resolved first; completion is abandoned if both come back empty.
        """
        repos = (Repo.PRIMARY, Repo.SECONDARY)
        paths = [self.settings.repo_path(repo) for repo in repos]
        if not any(self.cache_store.is_valid(path) for path in paths):
            if not any(self.resolve(repo).tags for repo in repos):
                return []

        completions = []
        for repo, path in zip(repos, paths):
            record = self.cache_store.get(path)
            if record is None:
                continue
            completions.extend(repo.prefix + tag for tag in record.tags)
        return completions
