"""Tag validation and correction suggestions.

Each user supplied tag is checked against the valid tags of its own
repository and of the other repository, and classified by the first rule
that applies:

1. valid in its own repository (no suggestion)
2. exact match in the other repository
3. likely typo of a tag in its own repository
4. likely typo of a tag in the other repository
5. not found anywhere
"""

from dataclasses import dataclass
from enum import Enum
from typing import Collection, Iterable, List, Optional, Sequence, Tuple

import click
from rapidfuzz.distance import Levenshtein

# Maximum edit distance for a tag to count as a likely typo.
TYPO_THRESHOLD = 2


class BrokenInstallError(Exception):
    """Raised when the primary repository resolves to no tags at all."""

    pass


class TagValidationError(Exception):
    """Raised when one or more supplied tags could not be validated."""

    def __init__(self, suggestions: List["Suggestion"]):
        super().__init__(format_suggestions(suggestions, color=False))
        self.suggestions = suggestions


class SuggestionKind(Enum):
    EXACT_MATCH_OTHER = "exact-match-in-other-repo"
    TYPO_SAME = "typo-in-same-repo"
    TYPO_OTHER = "typo-in-other-repo"
    NOT_FOUND = "not-found"


@dataclass
class Suggestion:
    """A rejected tag and its proposed correction.

    Attributes:
        input_tag: Tag as the user typed it (prefix included).
        suggest_tag: Proposed replacement (prefix included), or "".
        current_repo: Repository the tag was validated against.
        target_repo: Repository the replacement comes from. For NOT_FOUND
            this is the other repository that was also searched.
        kind: Classification of the problem.
    """

    input_tag: str
    suggest_tag: str
    current_repo: str
    target_repo: str
    kind: SuggestionKind


def edit_distance(source: str, target: str) -> int:
    """Compute the Levenshtein distance between two strings.

    Insertions, deletions and substitutions each cost 1. Comparison is
    case-sensitive.
    """
    return Levenshtein.distance(source, target)


def closest_match(tag: str, candidates: Iterable[str]) -> Optional[Tuple[str, int]]:
    """Find the closest candidate within the typo threshold.

    On equal distance the first candidate encountered wins.

    Returns:
        ``(candidate, distance)``, or None if nothing is close enough.
    """
    best = None
    best_distance = TYPO_THRESHOLD + 1
    for candidate in candidates:
        distance = edit_distance(tag, candidate)
        if distance < best_distance:
            best = candidate
            best_distance = distance
    if best is None:
        return None
    return best, best_distance


def classify_tag(
    tag: str,
    repo_tags: Collection[str],
    other_repo_tags: Collection[str],
    current_prefix: str = "",
    other_prefix: str = "",
    repo_name: str = "",
    other_repo_name: str = "",
) -> Optional[Suggestion]:
    """Classify one bare tag.

    Args:
        tag: Tag with its repository prefix stripped.
        repo_tags: Valid tags of the tag's own repository.
        other_repo_tags: Valid tags of the other repository.
        current_prefix: Prefix of the tag's own repository.
        other_prefix: Prefix of the other repository.
        repo_name: Display name of the tag's own repository.
        other_repo_name: Display name of the other repository.

    Returns:
        None if the tag is valid, otherwise the suggestion for it.
    """
    if tag in repo_tags:
        return None

    input_tag = current_prefix + tag

    if tag in other_repo_tags:
        return Suggestion(
            input_tag=input_tag,
            suggest_tag=other_prefix + tag,
            current_repo=repo_name,
            target_repo=other_repo_name,
            kind=SuggestionKind.EXACT_MATCH_OTHER,
        )

    match = closest_match(tag, repo_tags)
    if match is not None:
        return Suggestion(
            input_tag=input_tag,
            suggest_tag=current_prefix + match[0],
            current_repo=repo_name,
            target_repo=repo_name,
            kind=SuggestionKind.TYPO_SAME,
        )

    match = closest_match(tag, other_repo_tags)
    if match is not None:
        return Suggestion(
            input_tag=input_tag,
            suggest_tag=other_prefix + match[0],
            current_repo=repo_name,
            target_repo=other_repo_name,
            kind=SuggestionKind.TYPO_OTHER,
        )

    return Suggestion(
        input_tag=input_tag,
        suggest_tag="",
        current_repo=repo_name,
        target_repo=other_repo_name,
        kind=SuggestionKind.NOT_FOUND,
    )


def validate_tags(
    repo_tags: Sequence[str],
    other_repo_tags: Sequence[str],
    provided_tags: Sequence[str],
    current_prefix: str = "",
    other_prefix: str = "",
    repo_name: str = "",
    other_repo_name: str = "",
) -> List[Suggestion]:
    """Validate bare tags and collect suggestions for the invalid ones.

    Returns:
        Suggestions sorted by the prefixed input tag.
    """
    # dicts keep declaration order for tie-breaks and give O(1) membership
    repo_index = dict.fromkeys(repo_tags)
    other_index = dict.fromkeys(other_repo_tags)

    suggestions = []
    for tag in provided_tags:
        suggestion = classify_tag(
            tag,
            repo_index,
            other_index,
            current_prefix=current_prefix,
            other_prefix=other_prefix,
            repo_name=repo_name,
            other_repo_name=other_repo_name,
        )
        if suggestion is not None:
            suggestions.append(suggestion)

    return sorted(suggestions, key=lambda s: s.input_tag)


def format_suggestions(suggestions: List[Suggestion], color: bool = True) -> str:
    """Render suggestions for the terminal.

    Args:
        suggestions: Suggestions to render, in display order.
        color: If False, no ANSI styling is applied.

    Returns:
        The rendered text (no trailing newline).
    """

    def style(text, **kwargs):
        return click.style(text, **kwargs) if color else text

    def label(text):
        return style(text, fg="magenta")

    def rejected(text):
        return style(text, fg="bright_red", bold=True)

    def proposed(text):
        return style(text, fg="bright_green", bold=True)

    lines = [style("Tag validation found some issues:", fg="yellow"), ""]

    for s in suggestions:
        if s.kind is SuggestionKind.NOT_FOUND:
            searched = " or ".join(name for name in (s.current_repo, s.target_repo) if name)
            lines.append(f"{label('Tag:')} {rejected(s.input_tag)} not present in {searched}")
            lines.append(
                f"{label('Add:')} {style('--no-cache', fg='bright_blue')} "
                "if developing your own role"
            )
        else:
            lines.append(
                f"{label('Tag:')} {rejected(s.input_tag)} not present in {s.current_repo}"
            )
            if s.kind is SuggestionKind.EXACT_MATCH_OTHER:
                lines.append(
                    f"{label('Try:')} {proposed(s.suggest_tag)} (from {s.target_repo})"
                )
            elif s.kind is SuggestionKind.TYPO_SAME:
                lines.append(f"{label('Did you mean:')} {proposed(s.suggest_tag)}")
            else:
                lines.append(
                    f"{label('Did you mean:')} {proposed(s.suggest_tag)} "
                    f"(from {s.target_repo})"
                )
        lines.append("")

    return "\n".join(lines).rstrip("\n")
