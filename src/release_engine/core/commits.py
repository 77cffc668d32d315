"""Conventional commit parsing.

This module parses commit messages following the Conventional Commits
specification (https://www.conventionalcommits.org/) and turns them into
Changes for the packages they apply to.

Format: <type>[optional scope][!]: <description>

[optional body]

[optional footer(s)]
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from release_engine.core.changes import Change, ChangeType, ConventionalCommitSource, GitInfo

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from release_engine.core.sections import Sections
    from release_engine.vcs.git import Commit

logger = logging.getLogger(__name__)

# Regex for the conventional commit header line
HEADER_PATTERN = re.compile(
    r"^(?P<type>[A-Za-z][\w-]*)"  # type (required)
    r"(?:\((?P<scope>[^()\r\n]+)\))?"  # scope (optional)
    r"(?P<breaking>!)?"  # breaking indicator (optional)
    r": (?P<description>\S.*)$"  # description (required)
)

# A footer line: `Token: value` or `Token #value`
FOOTER_PATTERN = re.compile(
    r"^(?P<token>BREAKING CHANGE|[\w-]+)(?P<separator>: | #)(?P<value>.*)$"
)

BREAKING_TOKENS = frozenset({"BREAKING CHANGE", "BREAKING-CHANGE"})

DEFAULT_SKIP_RELEASE_PATTERNS = ("[skip release]", "[release skip]", "[no release]")


@dataclass(frozen=True)
class Footer:
    """A single trailing `Token: value` line of a commit message."""

    token: str
    separator: str
    value: str

    @property
    def is_breaking(self) -> bool:
        return self.token in BREAKING_TOKENS


@dataclass
class ParsedCommit:
    """A commit with parsed conventional commit information.

    Attributes:
        commit: The original commit object
        commit_type: The commit type (feat, fix, etc.) or None if not conventional
        scope: The scope or None
        description: The commit description (without type/scope prefix)
        body: Free text between the header and the footers
        footers: Trailing footers in order of appearance
        bang: Whether the header carries a `!` marker
        is_conventional: Whether the commit follows conventional format
    """

    commit: Commit
    commit_type: str | None
    scope: str | None
    description: str
    body: str | None = None
    footers: list[Footer] = field(default_factory=list)
    bang: bool = False
    is_conventional: bool = False

    @classmethod
    def from_commit(cls, commit: Commit) -> ParsedCommit:
        """Parse a commit message into conventional commit parts.

        Args:
            commit: The commit to parse

        Returns:
            ParsedCommit with extracted information. Commits that do not
            follow the format come back with is_conventional False.
        """
        message = commit.message.strip()
        header, _, rest = message.partition("\n")
        match = HEADER_PATTERN.match(header.strip())

        if not match:
            return cls(
                commit=commit,
                commit_type=None,
                scope=None,
                description=header.strip(),
            )

        body, footers = _split_footers(rest)
        return cls(
            commit=commit,
            commit_type=match.group("type").lower(),
            scope=match.group("scope"),
            description=match.group("description").strip(),
            body=body,
            footers=footers,
            bang=match.group("breaking") is not None,
            is_conventional=True,
        )

    @property
    def is_breaking(self) -> bool:
        """Whether the header or any footer marks a breaking change."""
        return self.bang or self.has_breaking_footer

    @property
    def has_breaking_footer(self) -> bool:
        return any(footer.is_breaking for footer in self.footers)

    @property
    def summary(self) -> str:
        """The header as written, dropping `!` when a breaking footer exists."""
        scope = f"({self.scope})" if self.scope else ""
        bang = "!" if self.bang and not self.has_breaking_footer else ""
        return f"{self.commit_type}{scope}{bang}: {self.description}"

    @property
    def git_info(self) -> GitInfo:
        return GitInfo(hash=self.commit.sha, author_name=self.commit.author_name)


def _split_footers(rest: str) -> tuple[str | None, list[Footer]]:
    """Separate the body from the trailing footer paragraph."""
    paragraphs = [p for p in re.split(r"\n\s*\n", rest.strip("\n")) if p.strip()]
    if not paragraphs:
        return None, []

    last = paragraphs[-1].splitlines()
    footers: list[Footer] = []
    if FOOTER_PATTERN.match(last[0]):
        for line in last:
            match = FOOTER_PATTERN.match(line)
            if match:
                footers.append(
                    Footer(match.group("token"), match.group("separator").rstrip(), match.group("value"))
                )
            else:
                # Continuation of the previous footer's value
                previous = footers[-1]
                footers[-1] = Footer(previous.token, previous.separator, f"{previous.value}\n{line}")
        paragraphs = paragraphs[:-1]

    body = "\n\n".join(paragraphs).strip()
    return body or None, footers


def parse_commits(commits: Iterable[Commit]) -> list[ParsedCommit]:
    """Parse multiple commits, keeping non-conventional ones flagged as such."""
    return [ParsedCommit.from_commit(commit) for commit in commits]


def filter_skip_release_commits(
    commits: Iterable[Commit],
    skip_patterns: Sequence[str],
) -> list[Commit]:
    """Filter out commits that contain skip release markers.

    Commits with markers like "[skip release]" anywhere in the message
    (header or body) are excluded. Matching is case-insensitive.

    Args:
        commits: Commits to filter
        skip_patterns: Markers that exclude a commit

    Returns:
        Commits without any skip marker
    """
    if not skip_patterns:
        return list(commits)

    lowered = [pattern.lower() for pattern in skip_patterns]
    kept = []
    for commit in commits:
        message = commit.message.lower()
        if any(pattern in message for pattern in lowered):
            logger.debug("Skipping commit %s (%s), it contains a skip release marker", commit.short_sha, commit.subject)
            continue
        kept.append(commit)
    return kept


def changes_from_commits(
    commits: Iterable[Commit],
    scopes: Sequence[str] | None,
    sections: Sections,
) -> list[Change]:
    """Turn conventional commits into changes for one package.

    - Commits that are not conventional are ignored.
    - When `scopes` is given, scoped commits must use one of them
      (case-insensitive). Commits without a scope always apply.
    - Breaking footers are always changes. Other footers only count when
      a changelog section claims them.
    - The header counts as BREAKING if marked with `!` and no breaking
      footer exists, otherwise as FEATURE for `feat` and FIX for `fix`.

    Args:
        commits: Commits to consider, oldest first
        scopes: Allowed scopes for the package, or None for all
        sections: The package's changelog sections

    Returns:
        Changes in commit order, footers before the header of each commit
    """
    if scopes:
        logger.debug("Only checking commits with scopes: %s", ", ".join(scopes))
    allowed = {scope.casefold() for scope in scopes} if scopes else None

    changes: list[Change] = []
    for parsed in parse_commits(commits):
        if not parsed.is_conventional:
            commit = parsed.commit
            logger.debug("Skipping commit %s (%s), it is not a conventional commit", commit.short_sha, commit.subject)
            continue
        if parsed.scope and allowed is not None and parsed.scope.casefold() not in allowed:
            logger.debug("Skipping commit %s, scope %s does not match", parsed.commit.short_sha, parsed.scope)
            continue
        changes.extend(_changes_from_parsed(parsed, sections))
    return changes


def _changes_from_parsed(parsed: ParsedCommit, sections: Sections) -> list[Change]:
    summary = parsed.summary
    git = parsed.git_info
    changes = []
    for footer in parsed.footers:
        if not footer.is_breaking and not sections.contains_footer(footer.token):
            continue
        changes.append(
            Change(
                change_type=ChangeType.from_footer(footer.token, breaking=footer.is_breaking),
                summary=footer.value,
                original_source=ConventionalCommitSource(
                    f"{summary}\n\tContaining footer {footer.token}{footer.separator} {footer.value}"
                ),
                git=git,
            )
        )

    if parsed.bang and not parsed.has_breaking_footer:
        header_type = ChangeType.BREAKING
    elif parsed.commit_type == "feat":
        header_type = ChangeType.FEATURE
    elif parsed.commit_type == "fix":
        header_type = ChangeType.FIX
    else:
        return changes

    changes.append(
        Change(
            change_type=header_type,
            summary=parsed.description,
            original_source=ConventionalCommitSource(summary),
            git=git,
        )
    )
    return changes
