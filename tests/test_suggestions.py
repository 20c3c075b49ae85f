"""Unit tests for suggestions module."""

from unittest.mock import patch

import pytest

from sbcli.suggestions import (
    Suggestion,
    SuggestionKind,
    TagValidationError,
    classify_tag,
    closest_match,
    edit_distance,
    format_suggestions,
    validate_tags,
)

SALTBOX_TAGS = ["plex", "sonarr", "radarr", "traefik"]
SANDBOX_TAGS = ["overseerr", "plex", "jellyseerr"]


def _saltbox(provided):
    return validate_tags(
        SALTBOX_TAGS,
        SANDBOX_TAGS,
        provided,
        current_prefix="",
        other_prefix="sandbox-",
        repo_name="Saltbox",
        other_repo_name="Sandbox",
    )


def _sandbox(provided):
    return validate_tags(
        SANDBOX_TAGS,
        SALTBOX_TAGS,
        provided,
        current_prefix="sandbox-",
        other_prefix="",
        repo_name="Sandbox",
        other_repo_name="Saltbox",
    )


class TestEditDistance:
    """Test cases for edit_distance."""

    @pytest.mark.parametrize(
        "source,target,expected",
        [
            ("plex", "plex", 0),
            ("plx", "plex", 1),
            ("", "abc", 3),
            ("abc", "", 3),
            ("kitten", "sitting", 3),
            ("sonar", "sonarr", 1),
        ],
    )
    def test_distance(self, source, target, expected):
        assert edit_distance(source, target) == expected

    def test_case_sensitive(self):
        assert edit_distance("Plex", "plex") == 1

    def test_uses_rapidfuzz(self):
        """Distances come from rapidfuzz's Levenshtein implementation."""
        with patch("sbcli.suggestions.Levenshtein.distance", return_value=7) as distance:
            assert edit_distance("plx", "plex") == 7
        distance.assert_called_once_with("plx", "plex")


class TestClosestMatch:
    """Test cases for closest_match."""

    def test_within_threshold(self):
        assert closest_match("sonar", SALTBOX_TAGS) == ("sonarr", 1)

    def test_beyond_threshold(self):
        assert closest_match("xyz123", SALTBOX_TAGS) is None

    def test_threshold_is_inclusive(self):
        """A distance of exactly two still counts as a typo."""
        assert closest_match("px", ["plex"]) == ("plex", 2)

    def test_first_candidate_wins_ties(self):
        """Among equally close candidates the first encountered is chosen."""
        assert closest_match("cat", ["bat", "hat", "rat"]) == ("bat", 1)
        assert closest_match("cat", ["rat", "bat", "hat"]) == ("rat", 1)

    def test_closer_later_candidate_wins(self):
        assert closest_match("plexx", ["flex", "plex"]) == ("plex", 1)


class TestClassifyTag:
    """Test cases for classify_tag."""

    def test_valid_tag(self):
        assert classify_tag("plex", SALTBOX_TAGS, SANDBOX_TAGS) is None

    def test_valid_in_both_prefers_own_repo(self):
        """A tag valid in its own repository is never redirected."""
        assert classify_tag("plex", SANDBOX_TAGS, SALTBOX_TAGS, current_prefix="sandbox-") is None

    def test_exact_match_beats_typo(self):
        """An exact match elsewhere wins over a close match at home."""
        suggestion = classify_tag(
            "overseerr",
            ["overseer"],
            ["overseerr"],
            other_prefix="sandbox-",
            repo_name="Saltbox",
            other_repo_name="Sandbox",
        )
        assert suggestion.kind is SuggestionKind.EXACT_MATCH_OTHER
        assert suggestion.suggest_tag == "sandbox-overseerr"

    def test_typo_same_beats_typo_other(self):
        suggestion = classify_tag("plx", ["plex"], ["plox"], repo_name="Saltbox")
        assert suggestion.kind is SuggestionKind.TYPO_SAME
        assert suggestion.suggest_tag == "plex"

    def test_typo_other(self):
        suggestion = classify_tag(
            "jellyser",
            SALTBOX_TAGS,
            SANDBOX_TAGS,
            other_prefix="sandbox-",
            repo_name="Saltbox",
            other_repo_name="Sandbox",
        )
        assert suggestion.kind is SuggestionKind.TYPO_OTHER
        assert suggestion.suggest_tag == "sandbox-jellyseerr"
        assert suggestion.target_repo == "Sandbox"

    def test_not_found(self):
        suggestion = classify_tag(
            "xyz123", SALTBOX_TAGS, SANDBOX_TAGS, repo_name="Saltbox", other_repo_name="Sandbox"
        )
        assert suggestion == Suggestion(
            input_tag="xyz123",
            suggest_tag="",
            current_repo="Saltbox",
            target_repo="Sandbox",
            kind=SuggestionKind.NOT_FOUND,
        )


class TestValidateTags:
    """Test cases for validate_tags."""

    def test_all_valid(self):
        assert _saltbox(["plex", "sonarr"]) == []

    def test_typo_in_same_repo(self):
        suggestions = _saltbox(["plx"])
        assert len(suggestions) == 1
        assert suggestions[0].input_tag == "plx"
        assert suggestions[0].suggest_tag == "plex"
        assert suggestions[0].kind is SuggestionKind.TYPO_SAME

    def test_exact_match_in_other_repo(self):
        suggestions = _saltbox(["overseerr"])
        assert suggestions[0].suggest_tag == "sandbox-overseerr"
        assert suggestions[0].kind is SuggestionKind.EXACT_MATCH_OTHER

    def test_sandbox_tag_found_in_saltbox(self):
        """Prefixes are applied to both the input and the suggestion."""
        suggestions = _sandbox(["sonarr"])
        assert suggestions[0].input_tag == "sandbox-sonarr"
        assert suggestions[0].suggest_tag == "sonarr"
        assert suggestions[0].current_repo == "Sandbox"
        assert suggestions[0].target_repo == "Saltbox"

    def test_sandbox_typo_keeps_prefix(self):
        suggestions = _sandbox(["overser"])
        assert suggestions[0].input_tag == "sandbox-overser"
        assert suggestions[0].suggest_tag == "sandbox-overseerr"
        assert suggestions[0].kind is SuggestionKind.TYPO_SAME

    def test_sorted_by_input_tag(self):
        suggestions = _saltbox(["zzzzzzzz", "plx", "sonar", "aaaaaaaa"])
        assert [s.input_tag for s in suggestions] == ["aaaaaaaa", "plx", "sonar", "zzzzzzzz"]

    def test_one_suggestion_per_invalid_tag(self):
        suggestions = _saltbox(["plex", "plx", "xyz123"])
        assert len(suggestions) == 2

    def test_empty_repo_tags(self):
        suggestions = validate_tags([], [], ["plex"], repo_name="Saltbox", other_repo_name="Sandbox")
        assert suggestions[0].kind is SuggestionKind.NOT_FOUND


class TestFormatSuggestions:
    """Test cases for format_suggestions."""

    def test_plain_output(self):
        suggestions = _saltbox(["plx", "overseerr", "jellyser", "xyz123"])
        text = format_suggestions(suggestions, color=False)

        assert text.splitlines() == [
            "Tag validation found some issues:",
            "",
            "Tag: jellyser not present in Saltbox",
            "Did you mean: sandbox-jellyseerr (from Sandbox)",
            "",
            "Tag: overseerr not present in Saltbox",
            "Try: sandbox-overseerr (from Sandbox)",
            "",
            "Tag: plx not present in Saltbox",
            "Did you mean: plex",
            "",
            "Tag: xyz123 not present in Saltbox or Sandbox",
            "Add: --no-cache if developing your own role",
        ]

    def test_no_trailing_newline(self):
        text = format_suggestions(_saltbox(["plx"]), color=False)
        assert not text.endswith("\n")

    def test_colored_output_has_ansi(self):
        text = format_suggestions(_saltbox(["plx"]), color=True)
        assert "\x1b[" in text
        assert "plex" in text

    def test_validation_error_message_is_plain(self):
        suggestions = _saltbox(["plx"])
        error = TagValidationError(suggestions)
        assert error.suggestions == suggestions
        assert "\x1b[" not in str(error)
        assert "Did you mean: plex" in str(error)
