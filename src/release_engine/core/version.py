"""Semantic version parsing, formatting and ordering.

A version is either stable (`1.2.3`) or a prerelease (`1.2.3-rc.0`). Only
that shape is accepted: three numeric components, optionally followed by a
single `-label.N` prerelease component. Build metadata and multi-part
prerelease identifiers are rejected.

Ordering follows Semantic Versioning for this subset:
- Versions compare by their stable component first
- A stable version is greater than any prerelease of the same stable component
- Two prereleases of the same stable component compare by (label, number)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering

from release_engine.exceptions import VersionParseError

VERSION_PATTERN = re.compile(
    r"^(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)"
    r"(?:-(?P<label>[0-9A-Za-z-]+)\.(?P<number>\d+))?$"
)

_LABEL_PATTERN = re.compile(r"[0-9A-Za-z-]+")


def check_prerelease_label(label: str) -> str:
    """Return `label` if it can be used in a prerelease, e.g. `rc` or `beta-2`.

    Raises:
        VersionParseError: If the label has characters other than ASCII letters, digits and hyphens
    """
    if not _LABEL_PATTERN.fullmatch(label):
        raise VersionParseError(label, "prerelease labels may only contain ASCII letters, digits and hyphens")
    return label


@dataclass(frozen=True, order=True)
class StableVersion:
    """The `major.minor.patch` part of a version."""

    major: int
    minor: int
    patch: int

    def increment_major(self) -> StableVersion:
        return StableVersion(self.major + 1, 0, 0)

    def increment_minor(self) -> StableVersion:
        return StableVersion(self.major, self.minor + 1, 0)

    def increment_patch(self) -> StableVersion:
        return StableVersion(self.major, self.minor, self.patch + 1)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True, order=True)
class Prerelease:
    """The `label.N` part of a prerelease version, e.g. `rc.2`."""

    label: str
    number: int

    def __post_init__(self) -> None:
        check_prerelease_label(self.label)

    def __str__(self) -> str:
        return f"{self.label}.{self.number}"


@total_ordering
@dataclass(frozen=True)
class Version:
    """An immutable semantic version.

    `pre` is None for stable versions. Bumping never mutates a Version;
    every operation returns a new value.
    """

    major: int
    minor: int
    patch: int
    pre: Prerelease | None = None

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse `major.minor.patch[-label.N]`.

        Raises:
            VersionParseError: If the text has any other shape
        """
        match = VERSION_PATTERN.match(text.strip())
        if match is None:
            raise VersionParseError(text)
        pre = None
        if match.group("label") is not None:
            pre = Prerelease(match.group("label"), int(match.group("number")))
        return cls(
            int(match.group("major")),
            int(match.group("minor")),
            int(match.group("patch")),
            pre,
        )

    @classmethod
    def from_stable(cls, stable: StableVersion, pre: Prerelease | None = None) -> Version:
        return cls(stable.major, stable.minor, stable.patch, pre)

    @property
    def stable_component(self) -> StableVersion:
        return StableVersion(self.major, self.minor, self.patch)

    @property
    def is_prerelease(self) -> bool:
        return self.pre is not None

    def _sort_key(self) -> tuple[StableVersion, bool, Prerelease | None]:
        # Stable sorts after every prerelease sharing its stable component
        return (self.stable_component, self.pre is None, self.pre)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    def __str__(self) -> str:
        if self.pre is None:
            return f"{self.major}.{self.minor}.{self.patch}"
        return f"{self.major}.{self.minor}.{self.patch}-{self.pre}"


def parse_version(text: str) -> Version:
    """Parse a version string.

    Args:
        text: Version string like "1.2.3" or "2.0.0-rc.1"

    Returns:
        Parsed Version

    Raises:
        VersionParseError: If the string is not a valid version
    """
    return Version.parse(text)


def try_parse_version(text: str) -> Version | None:
    """Parse a version string, returning None instead of raising."""
    try:
        return Version.parse(text)
    except VersionParseError:
        return None
