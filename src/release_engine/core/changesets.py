"""Change files: hand-written change records stored in `.changeset/`.

Each change file names the packages it affects, a change type per package,
and a markdown summary::

    ---
    default: minor
    "other-package": patch
    ---

    # Add streaming support

    Longer explanation, rendered below the summary in the changelog.

The change type is `major`, `minor`, `patch` or any custom type a changelog
section accepts. A single-package project uses the package name `default`.

Change files are consumed by the release that includes them: the release
emits a RemoveFile action for each one (except for prereleases).
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from release_engine.core.changes import Change, ChangeFileSource, ChangeType
from release_engine.exceptions import ChangeFileError

logger = logging.getLogger(__name__)

CHANGESET_DIR = ".changeset"
DEFAULT_PACKAGE_NAME = "default"

FRONT_MATTER_DELIMITER = "---"

# A front matter line: `package: type`, either side optionally quoted
_FRONT_MATTER_LINE = re.compile(
    r"""^(?P<quote>["']?)(?P<name>[^"']+)(?P=quote)\s*:\s*(?P<tquote>["']?)(?P<type>[^"'\s]+)(?P=tquote)\s*$"""
)


def unique_id(summary: str) -> str:
    """Derive a file-name-safe identifier from a summary.

    "Add `--verbose` flag!" becomes "add_verbose_flag".
    """
    words = re.findall(r"[a-z0-9]+", summary.lower())
    return "_".join(words) or "change"


@dataclass(frozen=True)
class ChangeFile:
    """One parsed change file.

    Attributes:
        unique_id: File name without the `.md` extension
        versioning: Package name -> change type label
        summary: Markdown after the front matter
    """

    unique_id: str
    versioning: dict[str, str] = field(default_factory=dict)
    summary: str = ""

    @property
    def file_name(self) -> str:
        return f"{self.unique_id}.md"

    @classmethod
    def parse(cls, file_name: str, content: str) -> ChangeFile:
        """Parse the text of a change file.

        Args:
            file_name: Name of the file, used for the unique ID and in errors
            content: Full text of the file

        Raises:
            ChangeFileError: If the front matter is missing, unclosed or empty
        """
        lines = content.strip().splitlines()
        if not lines or lines[0].strip() != FRONT_MATTER_DELIMITER:
            raise ChangeFileError("Change file must start with a `---` front matter block", file_name)

        end = next(
            (index for index, line in enumerate(lines[1:], start=1) if line.strip() == FRONT_MATTER_DELIMITER),
            None,
        )
        if end is None:
            raise ChangeFileError("Front matter block is never closed with `---`", file_name)

        versioning: dict[str, str] = {}
        for line in lines[1:end]:
            stripped = line.strip()
            if not stripped:
                continue
            match = _FRONT_MATTER_LINE.match(stripped)
            if match is None:
                raise ChangeFileError(f"Invalid front matter line {stripped!r}", file_name)
            versioning[match.group("name").strip()] = match.group("type")

        if not versioning:
            raise ChangeFileError("Change file does not name any package", file_name)

        stem = file_name[:-3] if file_name.endswith(".md") else file_name
        return cls(unique_id=stem, versioning=versioning, summary="\n".join(lines[end + 1 :]).strip())

    @classmethod
    def create(cls, summary: str, versioning: Mapping[str, str]) -> ChangeFile:
        """Author a new change file from a one-line summary."""
        summary = summary.strip()
        if not summary:
            raise ChangeFileError("A change file needs a summary")
        if not versioning:
            raise ChangeFileError("A change file must affect at least one package")
        return cls(unique_id=unique_id(summary), versioning=dict(versioning), summary=f"# {summary}")

    def to_markdown(self) -> str:
        lines = [FRONT_MATTER_DELIMITER]
        for name, change_type in self.versioning.items():
            key = f'"{name}"' if re.search(r"[^\w-]", name) else name
            lines.append(f"{key}: {change_type}")
        lines.append(FRONT_MATTER_DELIMITER)
        lines.append("")
        lines.append(self.summary)
        return "\n".join(lines) + "\n"

    def applies_to(self, package_name: str | None) -> bool:
        return (package_name or DEFAULT_PACKAGE_NAME) in self.versioning

    def changes_for(self, package_name: str | None) -> list[Change]:
        """The change this file describes for one package, if it names it."""
        label = self.versioning.get(package_name or DEFAULT_PACKAGE_NAME)
        if label is None:
            return []
        return [
            Change.from_description(
                ChangeType.from_change_file(label),
                self.summary,
                ChangeFileSource(self.unique_id),
            )
        ]


def load_change_files(entries: Iterable[tuple[str, str]]) -> list[ChangeFile]:
    """Parse (file name, content) pairs read from the change file directory.

    Only `.md` files are considered. Files are returned sorted by name so
    that changes come out in a stable order.
    """
    change_files = []
    for file_name, content in sorted(entries):
        if not file_name.endswith(".md") or file_name.lower() == "readme.md":
            continue
        change_file = ChangeFile.parse(file_name, content)
        logger.debug("Read change file %s affecting %s", file_name, ", ".join(change_file.versioning))
        change_files.append(change_file)
    return change_files
