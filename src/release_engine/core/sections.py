"""Changelog sections: which change types land under which heading.

Sections are always computed fresh from the built-in defaults and the
sections a user configures. Nothing here is shared between packages or
invocations.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

from release_engine.core.changes import ChangeType, CommitFooter

NOTES_FOOTER = "Changelog-Note"


@dataclass(frozen=True)
class Section:
    """One changelog heading and the change types rendered under it."""

    name: str
    sources: tuple[ChangeType, ...]


@dataclass(frozen=True)
class Sections:
    """Ordered sections. Each change type belongs to the first section listing it."""

    entries: tuple[Section, ...]

    def __iter__(self) -> Iterator[Section]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def names(self) -> list[str]:
        return [section.name for section in self.entries]

    def section_for(self, change_type: ChangeType) -> str | None:
        """Name of the section a change type is rendered in, if any."""
        for section in self.entries:
            if change_type in section.sources:
                return section.name
        return None

    def contains_footer(self, token: str) -> bool:
        """Whether some section claims the commit footer `token` (case-insensitive)."""
        return any(
            ChangeType.custom(CommitFooter(token)) in section.sources for section in self.entries
        )

    def change_file_types(self) -> list[str]:
        """Labels that may be written in a change file, in section order."""
        labels: list[str] = []
        for section in self.entries:
            for source in section.sources:
                label = source.to_change_file_type()
                if label is not None and label not in labels:
                    labels.append(label)
        return labels


def default_section_list() -> list[tuple[str, ChangeType]]:
    return [
        ("Breaking Changes", ChangeType.BREAKING),
        ("Features", ChangeType.FEATURE),
        ("Fixes", ChangeType.FIX),
        ("Notes", ChangeType.custom(CommitFooter(NOTES_FOOTER))),
    ]


def default_sections() -> Sections:
    """The built-in sections, one per standard change type plus release notes."""
    return Sections(tuple(Section(name, (source,)) for name, source in default_section_list()))


def user_section(name: str, footers: Sequence[str] = (), types: Sequence[str] = ()) -> Section:
    """Build a configured section from commit footer keys and change-file types."""
    sources = [ChangeType.custom(CommitFooter(footer)) for footer in footers]
    sources.extend(ChangeType.from_change_file(label) for label in types)
    return Section(name, tuple(sources))


def compute_sections(user_sections: Iterable[Section] = ()) -> Sections:
    """Merge configured sections into the defaults.

    - A source listed by a user section is removed from the defaults.
    - A source listed by more than one user section stays with the first.
    - A user section named like a remaining default absorbs that default's
      source (so renaming "Features" is not needed to extend it).
    - A user section repeating an earlier user section's name is merged
      into it.

    Returns:
        Remaining defaults in their built-in order, then the user sections
    """
    defaults = default_section_list()
    merged: dict[str, list[ChangeType]] = {}
    claimed: set[ChangeType] = set()

    for section in user_sections:
        defaults = [(name, source) for name, source in defaults if source not in section.sources]
        sources = merged.setdefault(section.name, [])
        for source in section.sources:
            if source not in claimed:
                claimed.add(source)
                sources.append(source)
        for name, source in list(defaults):
            if name == section.name:
                defaults.remove((name, source))
                if source not in claimed:
                    claimed.add(source)
                    sources.append(source)

    entries = [Section(name, (source,)) for name, source in defaults]
    entries.extend(Section(name, tuple(sources)) for name, sources in merged.items() if sources)
    return Sections(tuple(entries))
