"""pyproject.toml version manipulation.

This module reads and updates the version number in pyproject.toml
content, either the PEP 621 `[project]` table or `[tool.poetry]`.

It preserves formatting and comments by using regex-based
replacement rather than full TOML parsing and rewriting.
"""

from __future__ import annotations

import re

from release_engine.core.version import Version, parse_version
from release_engine.exceptions import VersionNotFoundError

FILE_NAME = "pyproject.toml"

# Each table runs from its header up to the next table header or EOF
_TABLES = (
    re.compile(r"^\[project\][ \t]*$.*?(?=^\[|\Z)", re.MULTILINE | re.DOTALL),
    re.compile(r"^\[tool\.poetry\][ \t]*$.*?(?=^\[|\Z)", re.MULTILINE | re.DOTALL),
)

_VERSION_LINE = re.compile(r"""^(?P<key>version\s*=\s*)(?P<quote>["'])(?P<version>[^"'\n]+)(?P=quote)""", re.MULTILINE)


def _find_version(content: str) -> re.Match[str] | None:
    """Locate the version assignment, returning a match against `content`."""
    for table in _TABLES:
        section = table.search(content)
        if section is None:
            continue
        match = _VERSION_LINE.search(content, section.start(), section.end())
        if match is not None:
            return match
    return None


def get_version(content: str, path: str = FILE_NAME) -> Version:
    """Get the version from pyproject.toml content.

    Args:
        content: Text of pyproject.toml
        path: Where the file lives, used in errors

    Returns:
        Parsed version

    Raises:
        VersionNotFoundError: If no version is declared
        VersionParseError: If the version is not a semantic version
    """
    match = _find_version(content)
    if match is None:
        raise VersionNotFoundError(
            "Could not find version. Expected [project].version or [tool.poetry].version.",
            path,
        )
    return parse_version(match.group("version"))


def set_version(content: str, new_version: Version, path: str = FILE_NAME) -> str:
    """Replace the version in pyproject.toml content.

    Only the version string itself changes; quotes, spacing, comments
    and everything else are left untouched.

    Raises:
        VersionNotFoundError: If no version is declared
    """
    match = _find_version(content)
    if match is None:
        raise VersionNotFoundError(
            "Could not find version to update. Expected [project].version or [tool.poetry].version.",
            path,
        )
    start, end = match.span("version")
    return f"{content[:start]}{new_version}{content[end:]}"
