"""Lock files that pin a package's own version: Cargo.lock, package-lock.json, deno.lock.

Lock files never declare the package version, they only follow it. Each
writer updates the entries for one dependency name. package-lock.json
can also carry the root project's version, which is updated when no
dependency is named.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import tomlkit
from tomlkit.items import AoT

from release_engine.exceptions import VersionedFileError
from release_engine.project import json_files, toml_files

if TYPE_CHECKING:
    from release_engine.core.version import Version

logger = logging.getLogger(__name__)

CARGO_LOCK = "Cargo.lock"
PACKAGE_LOCK_JSON = "package-lock.json"
DENO_LOCK = "deno.lock"

LOCK_FILE_NAMES = (CARGO_LOCK, PACKAGE_LOCK_JSON, DENO_LOCK)

_CARGO_LOCK_VERSIONS = (3, 4)
_PACKAGE_LOCK_VERSIONS = (2, 3)
_DENO_LOCK_VERSION = "5"
_DENO_REGISTRIES = ("jsr", "npm")


def set_cargo_lock_version(content: str, new_version: Version, dependency: str, path: str = CARGO_LOCK) -> str:
    """Set the version of every `[[package]]` entry named `dependency`.

    Raises:
        VersionedFileError: If the file has no package array, or an entry has no name
    """
    doc = toml_files.load(content, path)
    lock_version = doc.get("version")
    if lock_version is None:
        logger.warning("Unknown version of %s, the outcome may be unexpected", path)
    elif lock_version not in _CARGO_LOCK_VERSIONS:
        logger.warning("Unsupported version %s of %s, the outcome may be unexpected", lock_version, path)

    packages = doc.get("package")
    if not isinstance(packages, AoT):
        raise VersionedFileError("Expected an array of [[package]] tables", path)

    updated = False
    for package in packages:
        name = package.get("name")
        if not isinstance(name, str):
            raise VersionedFileError("Every [[package]] needs a `name` string", path)
        if name == dependency:
            package["version"] = str(new_version)
            updated = True
    if not updated:
        logger.warning("%s has no package named %s", path, dependency)
    return tomlkit.dumps(doc)


def set_package_lock_version(
    content: str,
    new_version: Version,
    dependency: str | None = None,
    path: str = PACKAGE_LOCK_JSON,
) -> str:
    """Update package-lock.json.

    Without a dependency, the root project's version is set both at the
    top level and in `packages[""]`. With one, every package named
    `dependency` gets the new version, and so does every reference to it in
    `dependencies` and `devDependencies`.
    """
    data = json_files.load(content, path)
    if data.get("lockfileVersion") not in _PACKAGE_LOCK_VERSIONS:
        logger.warning("%s has a lockfileVersion other than 2 or 3, errors may occur", path)

    version = str(new_version)
    packages = data.get("packages")
    if not isinstance(packages, dict):
        packages = {}

    if dependency is None:
        data["version"] = version
        root = packages.get("")
        if isinstance(root, dict):
            root["version"] = version
        return json_files.dump(data, content)

    for package in packages.values():
        if not isinstance(package, dict):
            continue
        if package.get("name") == dependency:
            package["version"] = version
        for key in ("dependencies", "devDependencies"):
            references = package.get(key)
            if isinstance(references, dict) and dependency in references:
                references[dependency] = version
    return json_files.dump(data, content)


def _split_specifier(specifier: str) -> tuple[str, str] | None:
    """`jsr:@std/assert@^1.0.0` -> (`jsr`, `@std/assert`)."""
    registry, separator, rest = specifier.partition(":")
    if not separator or registry not in _DENO_REGISTRIES:
        return None
    name, separator, _ = rest.rpartition("@")
    if not separator or not name:
        return None
    return registry, name


def set_deno_lock_version(
    content: str,
    new_version: Version,
    dependency: str | None = None,
    path: str = DENO_LOCK,
) -> str:
    """Point the resolved specifiers of `dependency` at the new version.

    Registry entries keyed `name@old` are renamed to `name@new`. Without a
    dependency there is nothing to update and the content is returned as is.

    Raises:
        VersionedFileError: For lock files older or newer than version 5
    """
    data = json_files.load(content, path)
    lock_version = data.get("version")
    if lock_version != _DENO_LOCK_VERSION:
        raise VersionedFileError(
            f"Unsupported lock file version {lock_version!r}, only version {_DENO_LOCK_VERSION} is supported",
            path,
        )
    specifiers = data.get("specifiers")
    if dependency is None or not isinstance(specifiers, dict):
        return content

    version = str(new_version)
    old_versions: set[str] = set()
    registries: set[str] = set()
    for specifier, resolved in specifiers.items():
        parsed = _split_specifier(specifier)
        if parsed is None or parsed[1] != dependency or not isinstance(resolved, str):
            continue
        registries.add(parsed[0])
        old_versions.add(resolved)
        specifiers[specifier] = version

    if not old_versions:
        logger.warning("%s has no specifier for %s", path, dependency)
        return content

    for registry in registries:
        entries = data.get(registry)
        if not isinstance(entries, dict):
            continue
        renamed = {}
        for key, value in entries.items():
            name, _, key_version = key.rpartition("@")
            if name == dependency and key_version in old_versions:
                key = f"{name}@{version}"
            renamed[key] = value
        data[registry] = renamed
    return json_files.dump(data, content)
