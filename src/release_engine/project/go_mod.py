"""go.mod versions and Go's major-version rules.

Go has no version field. The version of a module is read from a comment
this tool maintains on the module line::

    module github.com/owner/repo/v2 // v2.1.4

and, before that comment exists, from git tags. Major versions above 1
must be spelled in the module path (`/v2`), and modules in a
subdirectory are tagged `{subdirectory}/v{version}`. A module may also
live in a major-version directory (`sub/v2/go.mod`), which is not part of
its tag prefix.
"""

from __future__ import annotations

import logging
import posixpath
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from release_engine.core.version import Version, try_parse_version
from release_engine.exceptions import GoModuleError, VersionNotFoundError

logger = logging.getLogger(__name__)

FILE_NAME = "go.mod"


class GoVersioning(Enum):
    """How strictly Go's major-version rules are applied.

    - STANDARD: majors above 1 need a `/vN` module path, never added automatically
    - IGNORE_MAJOR_RULES: leave the module path alone whatever the version
    - BUMP_MAJOR: rewrite the module path to the new major version
    """

    STANDARD = "standard"
    IGNORE_MAJOR_RULES = "ignore_major_rules"
    BUMP_MAJOR = "bump_major"


@dataclass
class ModuleLine:
    """`module {path}[/v{major}] [// v{version}]`."""

    module: str
    major_version: int | None = None
    version: Version | None = None

    @classmethod
    def parse(cls, line: str, path: str = FILE_NAME) -> ModuleLine:
        parts = line.split()
        if len(parts) < 2:
            raise GoModuleError("The module line is missing a module path", path)
        module = parts[1]
        major_version = None
        head, _, last = module.rpartition("/")
        if head and last.startswith("v") and last[1:].isdigit():
            major_version = int(last[1:])
            module = head

        version = None
        if len(parts) > 3 and parts[2] == "//" and parts[3].startswith("v"):
            version = try_parse_version(parts[3][1:])
        return cls(module, major_version, version)

    def __str__(self) -> str:
        line = f"module {self.module}"
        if self.major_version is not None and self.major_version > 1:
            line += f"/v{self.major_version}"
        if self.version is not None:
            line += f" // v{self.version}"
        return line


def _module_line(content: str, path: str) -> str:
    for line in content.splitlines():
        if line.startswith("module "):
            return line
    raise GoModuleError("No module line found in go.mod file", path)


def _tag_directory(path: str, major_version: int | None) -> str:
    """The directory that prefixes the module's tags, "" at the repository root."""
    parent = posixpath.dirname(path)
    if major_version is not None and posixpath.basename(parent) == f"v{major_version}":
        # Major version directories are not tag prefixes
        parent = posixpath.dirname(parent)
    return parent


def get_version(
    content: str,
    path: str = FILE_NAME,
    tags: Sequence[str] = (),
    *,
    ignore_major_rules: bool = False,
) -> Version:
    """Find the current version of a Go module.

    Args:
        content: Text of go.mod
        path: Path of go.mod relative to the repository root
        tags: Tags on the current branch, newest first
        ignore_major_rules: Accept tags of any major version

    Raises:
        GoModuleError: If there is no module line
        VersionNotFoundError: If neither the comment nor a tag has a version
    """
    module_line = ModuleLine.parse(_module_line(content, path), path)
    if module_line.version is not None:
        return module_line.version

    directory = _tag_directory(path, module_line.major_version)
    prefix = f"{directory}/v" if directory else "v"
    majors = [module_line.major_version] if module_line.major_version is not None else [0, 1]

    for tag in tags:
        if not tag.startswith(prefix):
            continue
        version = try_parse_version(tag[len(prefix) :])
        if version is None:
            continue
        if ignore_major_rules or version.major in majors:
            logger.debug("Using tag %s as the version of %s", tag, path)
            return version

    raise VersionNotFoundError(
        f"No matching tag found. Searched for a tag with the prefix {prefix!r} "
        f"and a major version of {majors}",
        path,
    )


def set_version(
    content: str,
    new_version: Version,
    path: str = FILE_NAME,
    versioning: GoVersioning = GoVersioning.STANDARD,
) -> tuple[str, str]:
    """Write `new_version` into go.mod.

    Returns:
        The new go.mod content and the Go tag for the module

    Raises:
        GoModuleError: If the major version cannot be changed under `versioning`
    """
    original_line = _module_line(content, path)
    module_line = ModuleLine.parse(original_line, path)
    module_line.version = new_version

    new_major = new_version.major
    needs_new_major = (
        new_major > 1
        and new_major != (module_line.major_version or 0)
        and versioning is not GoVersioning.IGNORE_MAJOR_RULES
    )
    if needs_new_major:
        if module_line.major_version is None and versioning is not GoVersioning.BUMP_MAJOR:
            raise GoModuleError(
                f"Will not bump Go modules to {new_version}. Go expects a `/v{new_major}` module path "
                "for major versions above 1; set the version explicitly to move the module path",
                path,
            )
        old_major = module_line.major_version
        parent = posixpath.dirname(path)
        if old_major is not None and posixpath.basename(parent) == f"v{old_major}":
            raise GoModuleError(
                "Cannot bump major versions of directory-based Go modules. "
                "Create the new major version directory and add it as a new package",
                path,
            )
        module_line.major_version = new_major

    new_content = content.replace(original_line, str(module_line), 1)

    directory = posixpath.dirname(path)
    if posixpath.basename(directory) == f"v{new_major}":
        directory = posixpath.dirname(directory)
    tag = f"{directory}/v{new_version}" if directory else f"v{new_version}"
    return new_content, tag
