"""Tag cache storage module for sbcli.

This module provides the durable mapping from repository path to the commit
and tag list last discovered for it. The file-based store keeps the whole
document in memory and rewrites it atomically on flush.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class CacheStoreError(Exception):
    """Base exception for cache store errors."""

    pass


@dataclass
class RepoCacheRecord:
    """Cached tag information for one repository.

    Attributes:
        commit: Commit identifier the tags were discovered at.
        tags: Declared playbook tags, in discovery order.
    """

    commit: str = ""
    tags: List[str] = field(default_factory=list)

    def is_valid(self) -> bool:
        """A record without tags never counts as a cache hit."""
        return bool(self.tags)

    def to_dict(self) -> Dict:
        return {"commit": self.commit, "tags": list(self.tags)}

    @classmethod
    def from_dict(cls, repo_path: str, data: object) -> Optional["RepoCacheRecord"]:
        """Build a record from a loaded JSON value, discarding malformed parts.

        Args:
            repo_path: Repository key the value was stored under (for logging).
            data: Raw JSON value.

        Returns:
            A sanitized record, or None if the value is not an object.
        """
        if not isinstance(data, dict):
            logger.debug(f"Dropping cache entry for {repo_path}: not an object")
            return None

        commit = data.get("commit", "")
        if not isinstance(commit, str):
            logger.debug(f"Cache entry for {repo_path} has a non-string commit")
            commit = ""

        raw_tags = data.get("tags", [])
        if not isinstance(raw_tags, list):
            logger.debug(f"Cache entry for {repo_path} has non-list tags")
            raw_tags = []

        tags = [tag for tag in raw_tags if isinstance(tag, str)]
        if len(tags) != len(raw_tags):
            logger.debug(
                f"Discarded {len(raw_tags) - len(tags)} non-string tags for {repo_path}"
            )

        return cls(commit=commit, tags=tags)


class CacheStore(ABC):
    """Abstract base class for tag cache backends."""

    @abstractmethod
    def load(self) -> Dict[str, RepoCacheRecord]:
        """Load the full cache document.

        Returns:
            Mapping from repository path to its cache record.

        Raises:
            CacheStoreError: If the backing document is unreadable or corrupt.
        """
        pass

    @abstractmethod
    def get(self, repo_path: str) -> Optional[RepoCacheRecord]:
        """Return the record for a repository, or None if there is none."""
        pass

    @abstractmethod
    def set(self, repo_path: str, record: RepoCacheRecord) -> None:
        """Replace the record for a repository in memory.

        Must be followed by ``flush()`` to persist the change.
        """
        pass

    @abstractmethod
    def flush(self) -> None:
        """Persist the in-memory document.

        Raises:
            CacheStoreError: If the document cannot be written.
        """
        pass

    def is_valid(self, repo_path: str) -> bool:
        """Check whether a repository has a usable (non-empty) record."""
        record = self.get(repo_path)
        return record is not None and record.is_valid()


class FileCacheStore(CacheStore):
    """JSON file cache store.

    The document is loaded eagerly on construction. Flushing writes the whole
    document to a temporary file and renames it over the original, so a failed
    write leaves the previous document in place.
    """

    def __init__(self, cache_file: str):
        """Initialize the file-based cache store.

        Args:
            cache_file: Path to the JSON cache document.

        Raises:
            CacheStoreError: If an existing cache file cannot be read or parsed.
        """
        self.cache_file = Path(os.path.abspath(cache_file))
        self._data: Dict[str, RepoCacheRecord] = {}
        self._data = self.load()

    def load(self) -> Dict[str, RepoCacheRecord]:
        if not self.cache_file.exists():
            return {}

        try:
            with open(self.cache_file, "r", encoding="utf-8") as f:
                content = f.read().strip()
        except OSError as e:
            raise CacheStoreError(f"Failed to read cache file '{self.cache_file}': {e}")

        if not content:
            return {}

        try:
            raw = json.loads(content)
        except json.JSONDecodeError as e:
            raise CacheStoreError(f"Failed to parse cache file '{self.cache_file}': {e}")

        if not isinstance(raw, dict):
            raise CacheStoreError(
                f"Cache file '{self.cache_file}' must contain a JSON object, "
                f"got {type(raw).__name__}"
            )

        document = {}
        for repo_path, value in raw.items():
            record = RepoCacheRecord.from_dict(repo_path, value)
            if record is not None:
                document[repo_path] = record
        return document

    def get(self, repo_path: str) -> Optional[RepoCacheRecord]:
        return self._data.get(repo_path)

    def set(self, repo_path: str, record: RepoCacheRecord) -> None:
        self._data[repo_path] = record

    def flush(self) -> None:
        document = {path: record.to_dict() for path, record in self._data.items()}
        temp_file = self.cache_file.with_suffix(self.cache_file.suffix + ".tmp")
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
                f.write("\n")
            temp_file.replace(self.cache_file)
        except OSError as e:
            try:
                temp_file.unlink()
            except OSError:
                pass
            raise CacheStoreError(f"Failed to write cache file '{self.cache_file}': {e}")
