"""Configuration models for release-engine.

These Pydantic models describe the `[tool.release-engine]` table of
pyproject.toml, or the top level of a standalone release-engine.toml.

Single-package project::

    [tool.release-engine.package]
    versioned_files = ["pyproject.toml"]
    changelog = "CHANGELOG.md"

Monorepo::

    [tool.release-engine.packages.first]
    versioned_files = ["first/Cargo.toml", { path = "Cargo.lock", dependency = "first" }]
    changelog = "first/CHANGELOG.md"
    scopes = ["first"]

    [[tool.release-engine.packages.first.extra_changelog_sections]]
    name = "Security"
    footers = ["Security"]
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from release_engine.core.changesets import CHANGESET_DIR
from release_engine.core.commits import DEFAULT_SKIP_RELEASE_PATTERNS


class ChangelogSectionConfig(BaseModel):
    """An extra changelog section.

    Attributes:
        name: Heading of the section
        footers: Conventional commit footer keys collected in the section
        types: Change-file types collected in the section
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    footers: list[str] = Field(default_factory=list)
    types: list[str] = Field(default_factory=list)


class VersionedFileConfig(BaseModel):
    """A versioned file given as a table, for lock files tracking one dependency.

    Attributes:
        path: File path, relative to the project root
        dependency: Package name whose entries in the lock file follow the version
    """

    model_config = ConfigDict(extra="forbid")

    path: str
    dependency: str | None = None


class PackageConfig(BaseModel):
    """Configuration for one package.

    Attributes:
        name: Package name, set from the key in `packages`
        versioned_files: Files carrying the version, relative to the project root.
            Either a path or a `{path, dependency}` table
        changelog: Changelog path, relative to the project root
        scopes: Only conventional commits with these scopes (or none) apply
        extra_changelog_sections: Sections added to or overriding the defaults
        ignore_go_major_versioning: Skip Go's major-version rules
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    versioned_files: list[str | VersionedFileConfig] = Field(default_factory=list)
    changelog: str | None = None
    scopes: list[str] | None = None
    extra_changelog_sections: list[ChangelogSectionConfig] = Field(default_factory=list)
    ignore_go_major_versioning: bool = False


class ReleaseEngineConfig(BaseModel):
    """Root configuration.

    Either `package` (one package) or `packages` (named packages) may be
    set, not both. With neither, a package is detected from the files in
    the project root.
    """

    model_config = ConfigDict(extra="forbid")

    package: PackageConfig | None = None
    packages: dict[str, PackageConfig] = Field(default_factory=dict)
    changeset_dir: str = CHANGESET_DIR
    forge_release: bool = False
    allow_dirty: bool = False
    ignore_conventional_commits: bool = False
    skip_release_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_SKIP_RELEASE_PATTERNS))

    @model_validator(mode="after")
    def _check_packages(self) -> ReleaseEngineConfig:
        if self.package is not None and self.packages:
            raise ValueError("Use either `package` or `packages`, not both")
        for name, package in self.packages.items():
            package.name = name
        return self

    @property
    def package_configs(self) -> list[PackageConfig]:
        """Configured packages, empty when none is configured."""
        if self.package is not None:
            return [self.package]
        return list(self.packages.values())
