"""Unit tests for repos module."""

from sbcli.repos import (
    DISPATCH_ORDER,
    Repo,
    partition_tags,
    route_tag,
    split_tag_arguments,
)


class TestRepo:
    """Test cases for the Repo enum."""

    def test_prefixes(self):
        assert Repo.PRIMARY.prefix == ""
        assert Repo.SECONDARY.prefix == "sandbox-"
        assert Repo.TERTIARY.prefix == "mod-"

    def test_other_repo(self):
        """Saltbox and Sandbox are cross-checked against each other."""
        assert Repo.PRIMARY.other is Repo.SECONDARY
        assert Repo.SECONDARY.other is Repo.PRIMARY

    def test_dispatch_order(self):
        assert DISPATCH_ORDER == (Repo.PRIMARY, Repo.TERTIARY, Repo.SECONDARY)


class TestSplitTagArguments:
    """Test cases for split_tag_arguments."""

    def test_commas_and_spaces(self):
        assert split_tag_arguments(["plex,sonarr", "radarr"]) == ["plex", "sonarr", "radarr"]

    def test_blank_pieces_dropped(self):
        assert split_tag_arguments([" plex , ,sonarr ", ""]) == ["plex", "sonarr"]

    def test_all_blank(self):
        assert split_tag_arguments([",", "  "]) == []


class TestRouting:
    """Test cases for route_tag and partition_tags."""

    def test_route_unprefixed(self):
        group = route_tag("plex")
        assert group.repo is Repo.PRIMARY
        assert group.tags == ["plex"]

    def test_route_sandbox(self):
        group = route_tag("sandbox-overseerr")
        assert group.repo is Repo.SECONDARY
        assert group.tags == ["overseerr"]
        assert group.prefix == "sandbox-"

    def test_route_mod(self):
        group = route_tag("mod-custom")
        assert group.repo is Repo.TERTIARY
        assert group.tags == ["custom"]

    def test_prefix_must_lead(self):
        """A prefix in the middle of a tag does not route it."""
        assert route_tag("my-sandbox-app").repo is Repo.PRIMARY

    def test_partition_keeps_order(self):
        groups = partition_tags(["plex", "sandbox-a", "sonarr", "mod-x", "sandbox-b"])
        assert groups[Repo.PRIMARY].tags == ["plex", "sonarr"]
        assert groups[Repo.SECONDARY].tags == ["a", "b"]
        assert groups[Repo.TERTIARY].tags == ["x"]

    def test_partition_includes_empty_groups(self):
        groups = partition_tags(["plex"])
        assert set(groups) == set(Repo)
        assert groups[Repo.SECONDARY].tags == []
        assert groups[Repo.TERTIARY].tags == []

    def test_partition_rejoins_prefix(self):
        """Prefix plus bare tag reproduces the original input."""
        for tag in ["plex", "sandbox-overseerr", "mod-custom"]:
            group = route_tag(tag)
            assert group.prefix + group.tags[0] == tag
