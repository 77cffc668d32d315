"""Versions in JSON manifests: package.json, deno.json and tauri.conf.json.

JSON has no stable span to replace, so the document is re-serialised with
two-space indentation. Key order is preserved.
"""

from __future__ import annotations

import json

from release_engine.core.version import Version, parse_version
from release_engine.exceptions import VersionedFileError, VersionNotFoundError

PACKAGE_JSON = "package.json"
DENO_JSON = "deno.json"
TAURI_CONF_JSON = "tauri.conf.json"


def load(content: str, path: str) -> dict:
    """Parse a JSON document whose top level must be an object."""
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise VersionedFileError(f"Invalid JSON: {e}", path) from e
    if not isinstance(data, dict):
        raise VersionedFileError("Expected a JSON object at the top level", path)
    return data


def dump(data: dict, original: str) -> str:
    """Serialise `data`, keeping the original's trailing newline."""
    result = json.dumps(data, indent=2, ensure_ascii=False)
    if original.endswith("\n"):
        result += "\n"
    return result


def get_version(content: str, path: str = PACKAGE_JSON) -> Version:
    version = load(content, path).get("version")
    if not isinstance(version, str):
        raise VersionNotFoundError('Could not find a top-level "version" string', path)
    return parse_version(version)


def set_version(content: str, new_version: Version, path: str = PACKAGE_JSON) -> str:
    data = load(content, path)
    if not isinstance(data.get("version"), str):
        raise VersionNotFoundError('Could not find a top-level "version" string to update', path)
    data["version"] = str(new_version)
    return dump(data, content)
