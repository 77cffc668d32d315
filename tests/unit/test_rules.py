"""Tests for change types and bump rule resolution."""

from __future__ import annotations

import pytest

from release_engine.core.changes import (
    Change,
    ChangeFileSource,
    ChangeType,
    CommitFooter,
    ConventionalCommitSource,
    CustomChangeType,
)
from release_engine.core.rules import PreRule, ReleaseRule, StableRule, resolve_rule


def change(change_type: ChangeType, summary: str = "something") -> Change:
    return Change(change_type, summary, ConventionalCommitSource(f"feat: {summary}"))


class TestChangeType:
    """Tests for ChangeType classification."""

    @pytest.mark.parametrize(
        ("label", "expected"),
        [("major", ChangeType.BREAKING), ("minor", ChangeType.FEATURE), ("patch", ChangeType.FIX)],
    )
    def test_from_change_file_builtin(self, label: str, expected: ChangeType):
        """Built-in change-file labels map to the standard types."""
        assert ChangeType.from_change_file(label) == expected
        assert expected.to_change_file_type() == label

    def test_from_change_file_custom(self):
        """Other labels become custom types."""
        change_type = ChangeType.from_change_file("security")
        assert change_type not in (ChangeType.BREAKING, ChangeType.FEATURE, ChangeType.FIX)
        assert change_type == ChangeType.custom(CustomChangeType("security"))
        assert change_type.to_change_file_type() == "security"

    def test_breaking_footer(self):
        """Breaking footers are always BREAKING."""
        assert ChangeType.from_footer("BREAKING CHANGE", breaking=True) == ChangeType.BREAKING

    def test_footer_match_is_case_insensitive(self):
        """Footer keys compare case-insensitively."""
        assert ChangeType.from_footer("changelog-note") == ChangeType.custom(CommitFooter("Changelog-Note"))
        assert ChangeType.from_footer("Security").to_change_file_type() is None

    def test_footer_and_custom_type_differ(self):
        """A footer and a change-file type with the same name are different types."""
        assert ChangeType.custom(CommitFooter("docs")) != ChangeType.custom(CustomChangeType("docs"))


class TestChange:
    """Tests for Change.from_description()."""

    def test_summary_only(self):
        """A single line is a simple change."""
        c = Change.from_description(ChangeType.FIX, "# Fix a crash", ChangeFileSource("fix_a_crash"))
        assert c.summary == "Fix a crash"
        assert c.is_simple

    def test_summary_and_body(self):
        """Text after the first line is the body."""
        c = Change.from_description(
            ChangeType.FEATURE,
            "\n# Add a flag\n\n\nIt does things.\n\nMore things.",
            ChangeFileSource("add_a_flag"),
        )
        assert c.summary == "Add a flag"
        assert c.details == "It does things.\n\nMore things."
        assert not c.is_simple

    def test_source_formatting(self):
        """Sources describe where a change came from."""
        assert str(ChangeFileSource("add_a_flag")) == "changeset add_a_flag.md"
        assert str(ConventionalCommitSource("feat: x")) == "commit feat: x"


class TestStableRule:
    """Tests for StableRule."""

    def test_ordering(self):
        """Rules are ordered by severity."""
        assert StableRule.PATCH < StableRule.MINOR < StableRule.MAJOR

    def test_parse(self):
        """Rules parse case-insensitively."""
        assert StableRule.parse("Major") is StableRule.MAJOR

    def test_parse_invalid(self):
        """Unknown rule names are rejected."""
        with pytest.raises(ValueError, match="Unknown bump rule"):
            StableRule.parse("huge")

    def test_no_changes_is_patch(self):
        """An empty change set implies PATCH."""
        assert StableRule.from_changes([]) is StableRule.PATCH

    def test_most_severe_wins(self):
        """The most severe change decides the rule."""
        changes = [change(ChangeType.FIX), change(ChangeType.BREAKING), change(ChangeType.FEATURE)]
        assert StableRule.from_changes(changes) is StableRule.MAJOR

    def test_custom_types_are_patch(self):
        """Custom change types imply PATCH."""
        changes = [change(ChangeType.from_change_file("security"))]
        assert StableRule.from_changes(changes) is StableRule.PATCH

    def test_feature_is_minor(self):
        """A feature implies MINOR."""
        assert StableRule.from_changes([change(ChangeType.FIX), change(ChangeType.FEATURE)]) is StableRule.MINOR


class TestResolveRule:
    """Tests for resolve_rule()."""

    def test_computed(self):
        """Without overrides the rule comes from the changes."""
        assert resolve_rule([change(ChangeType.FEATURE)]) is StableRule.MINOR

    def test_explicit_rule_wins(self):
        """An explicit rule ignores the changes."""
        assert resolve_rule([change(ChangeType.BREAKING)], rule=StableRule.PATCH) is StableRule.PATCH
        assert resolve_rule([], rule=ReleaseRule()) == ReleaseRule()

    def test_prerelease_label_wraps_computed_rule(self):
        """A prerelease label wraps the computed stable rule."""
        assert resolve_rule([change(ChangeType.FEATURE)], prerelease_label="rc") == PreRule("rc", StableRule.MINOR)
