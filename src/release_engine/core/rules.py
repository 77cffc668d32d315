"""Bump rules: how to advance a version.

A rule is one of:
- A StableRule (PATCH < MINOR < MAJOR), computed from changes or given explicitly
- A PreRule, which wraps a label and the stable rule applied before counting
- A ReleaseRule, which promotes the newest prerelease to a stable version
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from enum import IntEnum

from release_engine.core.changes import Change, ChangeType

logger = logging.getLogger(__name__)


class StableRule(IntEnum):
    """Rules that only touch the stable component, totally ordered by severity."""

    PATCH = 0
    MINOR = 1
    MAJOR = 2

    @classmethod
    def parse(cls, text: str) -> StableRule:
        try:
            return cls[text.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown bump rule {text!r}, expected major, minor or patch") from None

    @classmethod
    def from_change_type(cls, change_type: ChangeType) -> StableRule:
        if change_type == ChangeType.BREAKING:
            return cls.MAJOR
        if change_type == ChangeType.FEATURE:
            return cls.MINOR
        return cls.PATCH

    @classmethod
    def from_changes(cls, changes: Iterable[Change]) -> StableRule:
        """The most severe rule implied by any change, PATCH if there are none."""
        rule = cls.PATCH
        for change in changes:
            implied = cls.from_change_type(change.change_type)
            logger.debug("%s\n\timplies rule %s", change.original_source, implied)
            rule = max(rule, implied)
        return rule

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class PreRule:
    """Create or advance a prerelease with `label` after applying `stable_rule`."""

    label: str
    stable_rule: StableRule = StableRule.PATCH


@dataclass(frozen=True)
class ReleaseRule:
    """Promote the newest prerelease to stable without incrementing anything."""


Rule = StableRule | PreRule | ReleaseRule


def resolve_rule(
    changes: Iterable[Change],
    *,
    rule: Rule | None = None,
    prerelease_label: str | None = None,
) -> Rule:
    """Reduce a collection of changes (plus optional overrides) to one rule.

    Args:
        changes: Changes pending for the package
        rule: An explicit rule, which takes precedence over the changes
        prerelease_label: When set, wrap the computed rule in a PreRule

    Returns:
        The rule to bump with
    """
    if rule is not None:
        logger.debug("Using explicit rule %s", rule)
        return rule
    stable_rule = StableRule.from_changes(changes)
    if prerelease_label:
        return PreRule(prerelease_label, stable_rule)
    return stable_rule
