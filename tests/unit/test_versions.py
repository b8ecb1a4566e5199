"""
Unit tests for version comparison.

Tests cover:
- Numeric parsing with missing segments
- Strict ordering (never upgrade to an equal or older version)
- Requirement operators and pre-release suffixes
- String fallback for non-numeric versions
"""

import pytest

from kitbag.versions import parse_version, should_upgrade


class TestParseVersion:
    """Tests for parse_version."""

    def test_three_segments(self) -> None:
        assert parse_version("1.2.3") == ((1, 2, 3), "")

    def test_missing_segments_are_zero(self) -> None:
        """Missing minor/patch segments count as zero."""
        assert parse_version("1") == ((1, 0, 0), "")
        assert parse_version("1.2") == ((1, 2, 0), "")

    def test_operator_is_ignored(self) -> None:
        assert parse_version("^1.4") == ((1, 4, 0), "")
        assert parse_version(">= 2.0.1") == ((2, 0, 1), "")
        assert parse_version("~0.3") == ((0, 3, 0), "")

    def test_prerelease_and_build_metadata(self) -> None:
        assert parse_version("1.0.0-beta.2") == ((1, 0, 0), "beta.2")
        assert parse_version("1.0.0+build.5") == ((1, 0, 0), "")
        assert parse_version("1.0.0-rc.1+build.5") == ((1, 0, 0), "rc.1")

    @pytest.mark.parametrize("text", ["", "*", "latest", "1.2.3.4", "1.x", "v1.0"])
    def test_unparseable(self, text: str) -> None:
        assert parse_version(text) is None


class TestShouldUpgrade:
    """Tests for should_upgrade."""

    @pytest.mark.parametrize(
        "current,recommended",
        [
            ("1.0", "1.5"),
            ("1.0", "1.0.1"),
            ("0.9.9", "1.0"),
            ("1", "2"),
            ("^1.0", "1.2"),
        ],
    )
    def test_newer_recommendation_upgrades(self, current: str, recommended: str) -> None:
        assert should_upgrade(current, recommended) is True

    @pytest.mark.parametrize(
        "current,recommended",
        [
            ("2.0", "1.5"),
            ("1.0", "1.0"),
            ("1.0", "1.0.0"),
            ("1.0.0", "1"),
            ("1.10", "1.9"),
        ],
    )
    def test_equal_or_older_never_upgrades(self, current: str, recommended: str) -> None:
        """The recommended version is a floor, never enforced downward."""
        assert should_upgrade(current, recommended) is False

    def test_numeric_not_lexicographic(self) -> None:
        """1.10 is newer than 1.9 even though it sorts lower as a string."""
        assert should_upgrade("1.9", "1.10") is True

    def test_empty_recommendation(self) -> None:
        assert should_upgrade("1.0", "") is False

    def test_wildcard_current_never_upgrades(self) -> None:
        assert should_upgrade("*", "9.9") is False

    def test_release_outranks_prerelease(self) -> None:
        assert should_upgrade("1.0.0-beta", "1.0.0") is True
        assert should_upgrade("1.0.0", "1.0.0-beta") is False

    def test_prereleases_compare_as_strings(self) -> None:
        assert should_upgrade("1.0.0-alpha", "1.0.0-beta") is True
        assert should_upgrade("1.0.0-beta", "1.0.0-alpha") is False

    def test_prerelease_of_newer_core_upgrades(self) -> None:
        assert should_upgrade("1.0.0", "1.1.0-rc.1") is True

    def test_string_fallback(self) -> None:
        """Unparseable versions fall back to plain string comparison."""
        assert should_upgrade("abc", "abd") is True
        assert should_upgrade("abd", "abc") is False
        assert should_upgrade("1.0", "dev") is True
