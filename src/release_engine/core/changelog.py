"""Release notes rendering and changelog splicing.

Release notes are rendered at header level 1: each section is an `##`
heading, and changes with a body get their own `###` heading. When the
notes go into a changelog whose releases are `##` headings, every heading
in the notes is demoted one level so the document hierarchy stays intact.

A changelog is never edited in place. Adding a release produces a new
Changelog value and the inserted text, which the caller turns into a
WriteToFile action.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from datetime import date
from typing import TYPE_CHECKING

from release_engine.core.version import Version, try_parse_version
from release_engine.exceptions import ChangelogParseError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from release_engine.core.changes import Change
    from release_engine.core.sections import Sections

logger = logging.getLogger(__name__)

H1 = "#"
H2 = "##"

_DATE_PATTERN = re.compile(r"^\(?(\d{4}-\d{2}-\d{2})\)?$")


@dataclass(frozen=True)
class Release:
    """A release as handed to the changelog and to forges.

    Attributes:
        title: Release title without any markdown header prefix
        version: The released version
        notes: Markdown release notes at header level 1
        package_name: Name of the package, None for a single-package project
    """

    title: str
    version: Version
    notes: str
    package_name: str | None = None


def release_title(version: Version, today: date) -> str:
    """Format a release title, e.g. `1.2.0 (2024-03-01)`."""
    return f"{version} ({today.isoformat()})"


def render_release_notes(changes: Iterable[Change], sections: Sections) -> str:
    """Render changes as markdown grouped by section.

    Within a section, changes with only a summary come first as bullets,
    followed by a `### summary` block for each change with a body. The
    relative order of changes is otherwise kept. Empty sections are left
    out, and identical changes are rendered once.

    Args:
        changes: Changes in the order they were gathered
        sections: Sections deciding headings and their order

    Returns:
        Markdown notes, an empty string when there is nothing to render
    """
    unique: list[Change] = []
    seen = set()
    for change in changes:
        if change.dedup_key in seen:
            continue
        seen.add(change.dedup_key)
        unique.append(change)

    blocks = []
    for section in sections:
        members = [change for change in unique if sections.section_for(change.change_type) == section.name]
        if not members:
            continue
        # Stable sort: simple changes first, original order otherwise
        members.sort(key=lambda change: not change.is_simple)

        parts = [f"## {section.name}"]
        bullets = [f"- {change.summary}" for change in members if change.is_simple]
        if bullets:
            parts.append("\n".join(bullets))
        parts.extend(f"### {change.summary}\n\n{change.details}" for change in members if not change.is_simple)
        blocks.append("\n\n".join(parts))

    unplaced = [change for change in unique if sections.section_for(change.change_type) is None]
    for change in unplaced:
        logger.debug("%s has no changelog section, leaving it out of the notes", change.original_source)

    return "\n\n".join(blocks)


def parse_title(line: str) -> tuple[str, Version, date | None]:
    """Parse a release heading like `## 1.2.3 (2024-01-31)`.

    Returns:
        The header level, the version and the date if present

    Raises:
        ChangelogParseError: If the line is not a release heading
    """
    parts = line.split()
    if not parts or parts[0] not in (H1, H2):
        raise ChangelogParseError(f"Release titles must be level 1 or 2 headings: {line!r}")
    if len(parts) < 2:
        raise ChangelogParseError(f"Release title is missing a version: {line!r}")
    version = try_parse_version(parts[1])
    if version is None:
        raise ChangelogParseError(
            f"Release title must start with a semantic version, e.g. `## 0.1.0 (2020-12-25)`: {line!r}"
        )

    released_on = None
    for part in parts[2:]:
        match = _DATE_PATTERN.match(part)
        if match:
            try:
                released_on = date.fromisoformat(match.group(1))
            except ValueError:
                continue
            break
    return parts[0], version, released_on


def is_release_title(line: str) -> bool:
    try:
        parse_title(line)
    except ChangelogParseError:
        return False
    return True


@dataclass(frozen=True)
class Changelog:
    """A changelog document and the path it belongs at.

    The header level of release titles is taken from the second heading
    in the document (the first being the document title), defaulting to
    `##`.
    """

    path: str
    content: str = ""

    @property
    def release_header_level(self) -> str:
        headings = [line for line in self.content.splitlines() if line.startswith("#")]
        if len(headings) > 1 and not headings[1].startswith(H2):
            return H1
        return H2

    def with_release(self, release: Release) -> tuple[Changelog, str]:
        """Insert a release above the newest existing release.

        Content before and after the insertion point is kept as is,
        including whether the document ends with a newline.

        Returns:
            The new changelog and the block that was inserted
        """
        level = self.release_header_level
        notes = release.notes.splitlines()
        if level == H2:
            notes = [f"#{line}" if line.startswith("#") else line for line in notes]
        block = f"{level} {release.title}\n\n" + "\n".join(notes)

        content = self.content
        offset = 0
        for line in content.splitlines(keepends=True):
            if is_release_title(line):
                new_content = f"{content[:offset]}{block}\n\n{content[offset:]}"
                break
            offset += len(line)
        else:
            if not content:
                new_content = block
            elif content.endswith("\n\n"):
                new_content = content + block
            elif content.endswith("\n"):
                new_content = f"{content}\n{block}"
            else:
                new_content = f"{content}\n\n{block}"

        if (not content or content.endswith("\n")) and not new_content.endswith("\n"):
            new_content += "\n"
        return replace(self, content=new_content), block

    def get_release(self, version: Version, package_name: str | None = None) -> Release | None:
        """Read the release for `version` back out of the changelog.

        Notes are returned at header level 1, the way they were rendered.
        Returns None when there is no such release or it has no notes.
        """
        level = self.release_header_level
        lines = iter(self.content.splitlines())
        title = None
        for line in lines:
            if not line.startswith(f"{level} {version}"):
                continue
            try:
                line_level, title_version, _ = parse_title(line)
            except ChangelogParseError:
                continue
            if line_level == level and title_version == version:
                title = line.lstrip("#").strip()
                break
        if title is None:
            return None

        notes_lines = []
        for line in lines:
            if line.startswith(f"{level} "):
                break
            if level == H2 and line.startswith(H2):
                line = line[1:]
            notes_lines.append(line)
        notes = "\n".join(notes_lines).strip()
        if not notes:
            return None
        return Release(title=title, version=version, notes=notes, package_name=package_name)
