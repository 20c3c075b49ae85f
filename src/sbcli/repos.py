"""Playbook repositories and tag routing.

Tags select their repository by prefix: ``sandbox-`` for Sandbox, ``mod-``
for Saltbox-mod, and no prefix for Saltbox.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List


class Repo(Enum):
    """The playbook repositories the installer can target."""

    PRIMARY = ("", "Saltbox", "saltbox", "saltbox.yml", "")
    SECONDARY = ("sandbox-", "Sandbox", "sandbox", "sandbox.yml", "sanity_check")
    TERTIARY = ("mod-", "Saltbox-mod", "saltbox_mod", "saltbox_mod.yml", "sanity_check")

    def __init__(self, prefix, display_name, directory, playbook, list_skip_tags):
        self.prefix = prefix
        self.display_name = display_name
        self.directory = directory
        self.playbook = playbook
        # Skipped in addition to "always" when listing tags for display.
        self.list_skip_tags = list_skip_tags

    @property
    def other(self) -> "Repo":
        """The repository suggestions are cross-checked against."""
        if self is Repo.SECONDARY:
            return Repo.PRIMARY
        return Repo.SECONDARY


# Prefixed repositories are matched before the unprefixed one.
ROUTING_ORDER = (Repo.TERTIARY, Repo.SECONDARY)

# Order in which populated groups are dispatched.
DISPATCH_ORDER = (Repo.PRIMARY, Repo.TERTIARY, Repo.SECONDARY)


@dataclass
class TagGroup:
    """Bare tags supplied for one repository."""

    repo: Repo
    tags: List[str] = field(default_factory=list)

    @property
    def prefix(self) -> str:
        return self.repo.prefix


def split_tag_arguments(arguments: List[str]) -> List[str]:
    """Split comma- or space-separated tag arguments.

    Args:
        arguments: Raw positional arguments.

    Returns:
        Trimmed tags in input order, blanks removed.
    """
    tags = []
    for argument in arguments:
        for piece in argument.replace(",", " ").split():
            piece = piece.strip()
            if piece:
                tags.append(piece)
    return tags


def route_tag(tag: str) -> TagGroup:
    """Return a single-tag group for ``tag`` with its prefix stripped."""
    for repo in ROUTING_ORDER:
        if tag.startswith(repo.prefix):
            return TagGroup(repo=repo, tags=[tag[len(repo.prefix):]])
    return TagGroup(repo=Repo.PRIMARY, tags=[tag])


def partition_tags(tags: List[str]) -> Dict[Repo, TagGroup]:
    """Partition tags into per-repository groups.

    Args:
        tags: Tags as supplied by the user (prefixes included).

    Returns:
        Mapping of each repository to its group; groups may be empty.
    """
    groups = {repo: TagGroup(repo=repo) for repo in Repo}
    for tag in tags:
        routed = route_tag(tag)
        groups[routed.repo].tags.extend(routed.tags)
    return groups
