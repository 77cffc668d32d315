"""Reading a project from disk into engine inputs.

The engine only sees file contents. This module turns the configuration
into Package values by reading versioned files and changelogs, and reads
the change file directory.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from release_engine.config.loader import detect_package
from release_engine.core.changelog import Changelog
from release_engine.core.changesets import ChangeFile, load_change_files
from release_engine.core.package import Package
from release_engine.core.sections import compute_sections, user_section
from release_engine.exceptions import NoPackagesError, VersionedFileError
from release_engine.project.versioned_file import VersionedFile

if TYPE_CHECKING:
    from collections.abc import Mapping
    from pathlib import Path

    from release_engine.config.models import PackageConfig, ReleaseEngineConfig
    from release_engine.core.version import Version

logger = logging.getLogger(__name__)


def _read(root: Path, relative: str) -> str:
    path = root / relative
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise VersionedFileError("File does not exist", relative) from e


def build_package(
    package_config: PackageConfig,
    root: Path,
    override_version: Version | None = None,
) -> Package:
    """Read everything one configured package needs from disk."""
    versioned_files = []
    for entry in package_config.versioned_files:
        relative, dependency = (entry, None) if isinstance(entry, str) else (entry.path, entry.dependency)
        versioned_files.append(VersionedFile(relative, _read(root, relative), dependency))

    changelog = None
    if package_config.changelog:
        path = root / package_config.changelog
        content = path.read_text(encoding="utf-8") if path.is_file() else ""
        changelog = Changelog(package_config.changelog, content)

    sections = compute_sections(
        user_section(section.name, section.footers, section.types)
        for section in package_config.extra_changelog_sections
    )
    return Package(
        name=package_config.name,
        versioned_files=tuple(versioned_files),
        changelog=changelog,
        scopes=tuple(package_config.scopes) if package_config.scopes else None,
        sections=sections,
        ignore_go_major_versioning=package_config.ignore_go_major_versioning,
        override_version=override_version,
    )


def load_packages(
    config: ReleaseEngineConfig,
    root: Path,
    override_versions: Mapping[str | None, Version] | None = None,
) -> list[Package]:
    """Build every package of the project.

    Args:
        config: Loaded configuration
        root: Project root
        override_versions: Package name -> forced version. The None key applies
            to every package without its own entry

    Raises:
        NoPackagesError: If nothing is configured and nothing can be detected
    """
    package_configs = config.package_configs
    if not package_configs:
        detected = detect_package(root)
        if detected is None:
            raise NoPackagesError()
        package_configs = [detected]

    overrides = dict(override_versions or {})
    packages = []
    for package_config in package_configs:
        override = overrides.get(package_config.name, overrides.get(None))
        packages.append(build_package(package_config, root, override))
    return packages


def read_change_files(root: Path, changeset_dir: str) -> list[ChangeFile]:
    """Parse every change file in the change file directory."""
    directory = root / changeset_dir
    if not directory.is_dir():
        logger.debug("No change file directory at %s", directory)
        return []
    entries = [(path.name, path.read_text(encoding="utf-8")) for path in directory.glob("*.md")]
    return load_change_files(entries)
