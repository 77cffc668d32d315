"""Cargo.toml and gleam.toml versions.

Uses tomlkit so that rewriting the version keeps the rest of the
document (comments, ordering, whitespace) exactly as it was.
"""

from __future__ import annotations

import posixpath

import tomlkit
from tomlkit.exceptions import TOMLKitError

from release_engine.core.version import Version, parse_version
from release_engine.exceptions import VersionedFileError, VersionNotFoundError

CARGO = "Cargo.toml"
GLEAM = "gleam.toml"


def load(content: str, path: str) -> tomlkit.TOMLDocument:
    try:
        return tomlkit.parse(content)
    except TOMLKitError as e:
        raise VersionedFileError(f"Invalid TOML: {e}", path) from e


def _version_table(doc: tomlkit.TOMLDocument, path: str):
    """The table holding `version`: [package] for Cargo, the root for gleam."""
    if posixpath.basename(path) == CARGO:
        table = doc.get("package")
        if table is None:
            raise VersionNotFoundError("Missing [package] table", path)
        return table
    return doc


def get_version(content: str, path: str = CARGO) -> Version:
    """Read the package version.

    Args:
        content: Text of the file
        path: Where the file lives. The file name picks the format

    Raises:
        VersionNotFoundError: If there is no plain string version
            (e.g. `version.workspace = true`)
    """
    table = _version_table(load(content, path), path)
    version = table.get("version")
    if not isinstance(version, str):
        raise VersionNotFoundError("Could not find a version string", path)
    return parse_version(str(version))


def set_version(content: str, new_version: Version, path: str = CARGO) -> str:
    doc = load(content, path)
    table = _version_table(doc, path)
    if not isinstance(table.get("version"), str):
        raise VersionNotFoundError("Could not find a version string to update", path)
    table["version"] = str(new_version)
    return tomlkit.dumps(doc)


def crate_name(content: str, path: str = CARGO) -> str | None:
    """The `[package].name` of a Cargo.toml, None when it has none."""
    package = load(content, path).get("package")
    name = package.get("name") if package is not None else None
    return str(name) if isinstance(name, str) else None
