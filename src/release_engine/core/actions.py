"""Actions: the only output of the engine.

The engine never touches the file system or git. It returns an ordered
list of actions and leaves applying (or printing) them to an executor.
Every action is safe to apply again.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from release_engine.core.changelog import Release


@dataclass(frozen=True)
class WriteToFile:
    """Replace the content of `path`.

    Attributes:
        path: File to write, relative to the project root
        content: Full new content of the file
        diff: Short human-readable description of the change
    """

    path: str
    content: str
    diff: str

    def describe(self) -> str:
        return f"Write to {self.path}: {self.diff}"


@dataclass(frozen=True)
class RemoveFile:
    """Delete a consumed change file."""

    path: str

    def describe(self) -> str:
        return f"Remove {self.path}"


@dataclass(frozen=True)
class AddTag:
    """Create a git tag on the current commit."""

    tag: str

    def describe(self) -> str:
        return f"Add git tag {self.tag}"


@dataclass(frozen=True)
class CreateRelease:
    """Publish a release on a forge. The forge also creates the tag."""

    release: Release
    tag: str

    def describe(self) -> str:
        return f"Create release {self.release.title} (tag {self.tag})"


Action = WriteToFile | RemoveFile | AddTag | CreateRelease
