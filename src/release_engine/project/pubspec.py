"""pubspec.yaml (Dart/Flutter) versions.

Only the top-level `version:` line is touched; the rest of the YAML is
left exactly as written.
"""

from __future__ import annotations

import re

from release_engine.core.version import Version, parse_version
from release_engine.exceptions import VersionNotFoundError

FILE_NAME = "pubspec.yaml"

_VERSION_LINE = re.compile(
    r"""^version:[ \t]*(?P<quote>["']?)(?P<version>[^"'\s#]+)(?P=quote)""",
    re.MULTILINE,
)


def get_version(content: str, path: str = FILE_NAME) -> Version:
    match = _VERSION_LINE.search(content)
    if match is None:
        raise VersionNotFoundError("Could not find a top-level `version:` key", path)
    return parse_version(match.group("version"))


def set_version(content: str, new_version: Version, path: str = FILE_NAME) -> str:
    match = _VERSION_LINE.search(content)
    if match is None:
        raise VersionNotFoundError("Could not find a top-level `version:` key to update", path)
    start, end = match.span("version")
    return f"{content[:start]}{new_version}{content[end:]}"
