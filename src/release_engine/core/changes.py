"""The change model shared by conventional commits and change files.

A Change is one entry destined for release notes. Both sources of changes
converge on the same ChangeType so that bump resolution and changelog
placement never need to know where a change came from; ChangeSource is kept
only for traceability in logs and for deterministic ordering.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

# Change-file labels with built-in meaning
MAJOR = "major"
MINOR = "minor"
PATCH = "patch"


@dataclass(frozen=True, eq=False)
class CommitFooter:
    """A conventional-commit footer key, e.g. `Changelog-Note` or `Security`.

    Footer keys are matched case-insensitively.
    """

    token: str

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CommitFooter):
            return NotImplemented
        return self.token.casefold() == other.token.casefold()

    def __hash__(self) -> int:
        return hash(("footer", self.token.casefold()))

    def __str__(self) -> str:
        return self.token


@dataclass(frozen=True)
class CustomChangeType:
    """A non-standard change-file type, e.g. `security` or `docs`."""

    name: str

    def __str__(self) -> str:
        return self.name


SectionSource = CommitFooter | CustomChangeType


@dataclass(frozen=True)
class ChangeType:
    """What kind of change something is.

    One of BREAKING, FEATURE, FIX, or a custom type whose `source` is either
    a commit footer or a custom change-file type.
    """

    kind: str
    source: SectionSource | None = None

    BREAKING: ClassVar[ChangeType]
    FEATURE: ClassVar[ChangeType]
    FIX: ClassVar[ChangeType]

    @classmethod
    def custom(cls, source: SectionSource) -> ChangeType:
        return cls("custom", source)

    @classmethod
    def from_footer(cls, token: str, *, breaking: bool = False) -> ChangeType:
        """Classify a commit footer. Breaking footers are always BREAKING."""
        if breaking:
            return cls.BREAKING
        return cls.custom(CommitFooter(token))

    @classmethod
    def from_change_file(cls, label: str) -> ChangeType:
        """Classify the type written in a change file's front matter."""
        if label == MAJOR:
            return cls.BREAKING
        if label == MINOR:
            return cls.FEATURE
        if label == PATCH:
            return cls.FIX
        return cls.custom(CustomChangeType(label))

    def to_change_file_type(self) -> str | None:
        """The label to write in a change file, or None for commit footers."""
        if self == ChangeType.BREAKING:
            return MAJOR
        if self == ChangeType.FEATURE:
            return MINOR
        if self == ChangeType.FIX:
            return PATCH
        if isinstance(self.source, CustomChangeType):
            return self.source.name
        return None

    def __str__(self) -> str:
        if self.source is not None:
            return str(self.source)
        return self.kind


ChangeType.BREAKING = ChangeType("breaking")
ChangeType.FEATURE = ChangeType("feature")
ChangeType.FIX = ChangeType("fix")


@dataclass(frozen=True)
class GitInfo:
    """The commit a change was introduced in."""

    hash: str
    author_name: str


@dataclass(frozen=True)
class ConventionalCommitSource:
    """A change parsed from a conventional commit message."""

    description: str

    def __str__(self) -> str:
        return f"commit {self.description}"


@dataclass(frozen=True)
class ChangeFileSource:
    """A change read from a change file."""

    unique_id: str

    @property
    def file_name(self) -> str:
        return f"{self.unique_id}.md"

    def __str__(self) -> str:
        return f"changeset {self.file_name}"


ChangeSource = ConventionalCommitSource | ChangeFileSource


@dataclass(frozen=True)
class Change:
    """A single entry in the release notes."""

    change_type: ChangeType
    summary: str
    original_source: ChangeSource
    details: str | None = None
    git: GitInfo | None = None

    @property
    def is_simple(self) -> bool:
        return not self.details

    @property
    def dedup_key(self) -> tuple[ChangeType, str, str | None]:
        return (self.change_type, self.summary, self.details)

    @classmethod
    def from_description(
        cls,
        change_type: ChangeType,
        description: str,
        source: ChangeSource,
        git: GitInfo | None = None,
    ) -> Change:
        """Build a change from free text.

        The first non-empty line (minus any leading `#` markers) is the
        summary, everything after the following blank lines is the body.
        """
        lines = description.strip().splitlines()
        while lines and not lines[0].strip():
            lines.pop(0)
        summary = lines[0].lstrip("# ") if lines else ""
        rest = lines[1:]
        while rest and not rest[0].strip():
            rest.pop(0)
        details = "\n".join(rest)
        return cls(
            change_type=change_type,
            summary=summary,
            original_source=source,
            details=details or None,
            git=git,
        )
