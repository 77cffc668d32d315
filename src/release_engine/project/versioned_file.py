"""Dispatch over the closed set of supported version-bearing files.

Every format exposes the same two operations, reading the version out of
file content and writing a new version into it, so the engine handles all
of them uniformly. The format is chosen from the file name alone.

Lock files only follow a version. They are written like the others but
never read, so they take no part in deciding a package's version.
"""

from __future__ import annotations

import posixpath
from collections.abc import Sequence
from dataclasses import dataclass, field

from release_engine.core.version import Version
from release_engine.exceptions import (
    UnsupportedFileError,
    VersionedFileError,
    VersionNotFoundError,
    VersionParseError,
)
from release_engine.project import go_mod, json_files, lock_files, pubspec, pyproject, toml_files
from release_engine.project.go_mod import GoVersioning

SUPPORTED_FILE_NAMES = (
    pyproject.FILE_NAME,
    toml_files.CARGO,
    toml_files.GLEAM,
    json_files.PACKAGE_JSON,
    json_files.DENO_JSON,
    json_files.TAURI_CONF_JSON,
    pubspec.FILE_NAME,
    go_mod.FILE_NAME,
    lock_files.CARGO_LOCK,
    lock_files.PACKAGE_LOCK_JSON,
    lock_files.DENO_LOCK,
)

_JSON_MANIFESTS = (json_files.PACKAGE_JSON, json_files.DENO_JSON, json_files.TAURI_CONF_JSON)


def file_kind(path: str) -> str:
    """The supported file name `path` ends in.

    Raises:
        UnsupportedFileError: For any other file
    """
    name = posixpath.basename(path)
    if name not in SUPPORTED_FILE_NAMES:
        raise UnsupportedFileError(
            f"Unsupported versioned file. Supported files are: {', '.join(SUPPORTED_FILE_NAMES)}",
            path,
        )
    return name


def get_version(path: str, content: str) -> Version:
    """Read the version of a non-Go file.

    Raises:
        VersionNotFoundError: For lock files, or files declaring no version
        VersionedFileError: If the declared version is not a semantic version
    """
    kind = file_kind(path)
    try:
        if kind == pyproject.FILE_NAME:
            return pyproject.get_version(content, path)
        if kind in (toml_files.CARGO, toml_files.GLEAM):
            return toml_files.get_version(content, path)
        if kind in _JSON_MANIFESTS:
            return json_files.get_version(content, path)
        if kind == pubspec.FILE_NAME:
            return pubspec.get_version(content, path)
        if kind in lock_files.LOCK_FILE_NAMES:
            raise VersionNotFoundError("Lock files do not declare a package version", path)
        return go_mod.get_version(content, path)
    except VersionParseError as e:
        raise VersionedFileError(str(e), path) from e


def set_version(path: str, content: str, version: Version, dependency: str | None = None) -> str:
    """Write a version into a non-Go file, returning the new content.

    Args:
        path: Where the file lives. The file name picks the format
        content: Current text of the file
        version: Version to write
        dependency: For lock files, the package whose entries are updated

    Raises:
        VersionedFileError: If Cargo.lock is given no dependency
    """
    kind = file_kind(path)
    if kind == pyproject.FILE_NAME:
        return pyproject.set_version(content, version, path)
    if kind in (toml_files.CARGO, toml_files.GLEAM):
        return toml_files.set_version(content, version, path)
    if kind in _JSON_MANIFESTS:
        return json_files.set_version(content, version, path)
    if kind == pubspec.FILE_NAME:
        return pubspec.set_version(content, version, path)
    if kind == lock_files.CARGO_LOCK:
        if dependency is None:
            raise VersionedFileError(
                "Cannot tell which crate to update. Add a Cargo.toml to the package or set `dependency`",
                path,
            )
        return lock_files.set_cargo_lock_version(content, version, dependency, path)
    if kind == lock_files.PACKAGE_LOCK_JSON:
        return lock_files.set_package_lock_version(content, version, dependency, path)
    if kind == lock_files.DENO_LOCK:
        return lock_files.set_deno_lock_version(content, version, dependency, path)
    new_content, _ = go_mod.set_version(content, version, path)
    return new_content


@dataclass(frozen=True)
class VersionedFile:
    """A version-bearing file and its content at the time of the run.

    Attributes:
        path: Path relative to the project root
        content: Text of the file
        dependency: For lock files, the package name whose entries follow
            the version. Cargo.lock falls back to the crate's own name
    """

    path: str
    content: str
    dependency: str | None = None

    def __post_init__(self) -> None:
        if self.dependency is not None and not self.is_lock_file:
            raise VersionedFileError("Only lock files can set `dependency`", self.path)

    @property
    def kind(self) -> str:
        return file_kind(self.path)

    @property
    def is_go_mod(self) -> bool:
        return self.kind == go_mod.FILE_NAME

    @property
    def is_lock_file(self) -> bool:
        return self.kind in lock_files.LOCK_FILE_NAMES

    @property
    def crate_name(self) -> str | None:
        """The `[package].name` of a Cargo.toml, None for other files."""
        if self.kind != toml_files.CARGO:
            return None
        return toml_files.crate_name(self.content, self.path)

    def get_version(self, tags: Sequence[str] = (), *, ignore_go_major_rules: bool = False) -> Version:
        """The version declared by the file.

        Args:
            tags: Tags on the current branch, newest first (only go.mod uses them)
            ignore_go_major_rules: Accept go.mod tags of any major version
        """
        if self.is_go_mod:
            return go_mod.get_version(
                self.content, self.path, tags, ignore_major_rules=ignore_go_major_rules
            )
        return get_version(self.path, self.content)

    def set_version(
        self,
        version: Version,
        go_versioning: GoVersioning = GoVersioning.STANDARD,
        *,
        crate_name: str | None = None,
    ) -> VersionUpdate:
        """Write `version`, returning the new content and any tags it requires.

        `crate_name` names the package's crate for a Cargo.lock without its
        own `dependency`.
        """
        if self.is_go_mod:
            content, tag = go_mod.set_version(self.content, version, self.path, go_versioning)
            return VersionUpdate(self.path, content, tags=[tag])
        dependency = self.dependency
        if dependency is None and self.kind == lock_files.CARGO_LOCK:
            dependency = crate_name
        return VersionUpdate(self.path, set_version(self.path, self.content, version, dependency))


@dataclass(frozen=True)
class VersionUpdate:
    """The result of writing a version: new content plus any tags it requires."""

    path: str
    content: str
    tags: list[str] = field(default_factory=list)
