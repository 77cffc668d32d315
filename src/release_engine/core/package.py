"""Per-package release preparation.

For one package, and one immutable snapshot of the repository, this module:

1. Resolves the current version from tags and versioned files
2. Gathers changes from new commits and matching change files
3. Resolves a bump rule (override, explicit rule, prerelease, or computed)
4. Computes the new version and renders release notes
5. Describes everything that should happen as a list of actions

The computation is the same whether the actions are later applied or only
printed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from release_engine.core.actions import AddTag, CreateRelease, RemoveFile, WriteToFile
from release_engine.core.changelog import Release, release_title, render_release_notes
from release_engine.core.changesets import CHANGESET_DIR
from release_engine.core.commits import (
    DEFAULT_SKIP_RELEASE_PATTERNS,
    changes_from_commits,
    filter_skip_release_commits,
)
from release_engine.core.history import resolve_package_history, tag_name
from release_engine.core.rules import resolve_rule
from release_engine.core.sections import Sections, default_sections
from release_engine.exceptions import InconsistentVersionsError
from release_engine.project.go_mod import GoVersioning
from release_engine.project.versioned_file import VersionedFile, file_kind

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from release_engine.core.actions import Action
    from release_engine.core.changelog import Changelog
    from release_engine.core.changes import Change
    from release_engine.core.changesets import ChangeFile
    from release_engine.core.history import CommitGraph
    from release_engine.core.rules import Rule
    from release_engine.core.version import Version
    from release_engine.vcs.git import Commit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Package:
    """Everything the engine needs to know about one package.

    Attributes:
        name: Package name, None for a single-package project
        versioned_files: Files carrying the package version, with their content
        changelog: The package changelog, if it keeps one
        scopes: Conventional commit scopes that apply, None for all
        sections: Changelog sections for the package
        ignore_go_major_versioning: Skip Go's major-version rules for go.mod files
        override_version: Version to release instead of computing one
    """

    name: str | None = None
    versioned_files: tuple[VersionedFile, ...] = ()
    changelog: Changelog | None = None
    scopes: tuple[str, ...] | None = None
    sections: Sections = field(default_factory=default_sections)
    ignore_go_major_versioning: bool = False
    override_version: Version | None = None

    def __post_init__(self) -> None:
        for versioned_file in self.versioned_files:
            file_kind(versioned_file.path)
        # go.mod versions may need tags, so only the other files are checked here
        self._check_consistent(
            (f.path, f.get_version()) for f in self.versioned_files if not (f.is_go_mod or f.is_lock_file)
        )

    @classmethod
    def from_files(
        cls,
        name: str | None,
        files: Mapping[str, str],
        **kwargs,
    ) -> Package:
        """Build a package from a path -> content mapping of versioned files."""
        versioned_files = tuple(VersionedFile(path, content) for path, content in files.items())
        return cls(name=name, versioned_files=versioned_files, **kwargs)

    @property
    def display_name(self) -> str:
        return self.name or "default"

    @property
    def crate_name(self) -> str | None:
        """Name of the first Cargo.toml crate among the versioned files."""
        names = (f.crate_name for f in self.versioned_files)
        return next((name for name in names if name), None)

    @property
    def go_versioning(self) -> GoVersioning:
        if self.override_version is not None:
            return GoVersioning.BUMP_MAJOR
        if self.ignore_go_major_versioning:
            return GoVersioning.IGNORE_MAJOR_RULES
        return GoVersioning.STANDARD

    def version_from_files(self, tags: Sequence[str] = ()) -> Version | None:
        """The version every versioned file agrees on, None without files.

        Raises:
            InconsistentVersionsError: If two files disagree
        """
        versions = [
            (f.path, f.get_version(tags, ignore_go_major_rules=self.ignore_go_major_versioning))
            for f in self.versioned_files
            if not f.is_lock_file
        ]
        return self._check_consistent(versions)

    @staticmethod
    def _check_consistent(versions: Iterable[tuple[str, Version]]) -> Version | None:
        first: tuple[str, Version] | None = None
        for path, version in versions:
            if first is None:
                first = (path, version)
            elif version != first[1]:
                raise InconsistentVersionsError(first[0], str(first[1]), path, str(version))
        return first[1] if first is not None else None


@dataclass(frozen=True)
class PackageRelease:
    """The outcome of preparing one package.

    Attributes:
        package_name: Name of the package, None for a single-package project
        previous_version: Latest version before this release, if any
        version: The new version
        release: Title and notes of the release
        changes: Changes included in the release
        actions: What should happen, in order
    """

    package_name: str | None
    previous_version: Version | None
    version: Version
    release: Release
    changes: list[Change] = field(default_factory=list)
    actions: list[Action] = field(default_factory=list)


def gather_changes(
    package: Package,
    commits: Iterable[Commit],
    change_files: Iterable[ChangeFile],
    *,
    ignore_conventional_commits: bool = False,
    skip_release_patterns: Sequence[str] = DEFAULT_SKIP_RELEASE_PATTERNS,
) -> tuple[list[Change], list[ChangeFile]]:
    """Changes for a package and the change files they came from, without duplicates."""
    changes: list[Change] = []
    if not ignore_conventional_commits:
        kept = filter_skip_release_commits(commits, skip_release_patterns)
        changes.extend(changes_from_commits(kept, package.scopes, package.sections))

    used_files = []
    for change_file in change_files:
        if change_file.applies_to(package.name):
            used_files.append(change_file)
            changes.extend(change_file.changes_for(package.name))

    unique: list[Change] = []
    seen = set()
    for change in changes:
        if change.dedup_key not in seen:
            seen.add(change.dedup_key)
            unique.append(change)
    return unique, used_files


def prepare_package(
    package: Package,
    graph: CommitGraph,
    change_files: Iterable[ChangeFile] = (),
    *,
    rule: Rule | None = None,
    prerelease_label: str | None = None,
    ignore_conventional_commits: bool = False,
    forge_release: bool = False,
    skip_release_patterns: Sequence[str] = DEFAULT_SKIP_RELEASE_PATTERNS,
    changeset_dir: str = CHANGESET_DIR,
    today: date | None = None,
) -> PackageRelease | None:
    """Work out the next release of a package.

    Args:
        package: The package to release
        graph: Snapshot of the repository
        change_files: All change files waiting to be released
        rule: Explicit bump rule, overriding the one implied by changes
        prerelease_label: Release a prerelease with this label
        ignore_conventional_commits: Only use change files
        forge_release: Whether a forge release will be created
        skip_release_patterns: Commits containing these markers are ignored
        changeset_dir: Directory of change files, relative to the project root
        today: Release date, defaults to the current date

    Returns:
        The prepared release, or None when there is nothing to release

    Raises:
        InconsistentVersionsError: If the package's files disagree on a version
        PreReleaseNotFoundError: If a release of a prerelease was requested without one
        GoModuleError: If a go.mod file cannot take the new version
    """
    tags = graph.tags_on_branch()
    history = resolve_package_history(graph, package.name, package.scopes)
    versions = history.versions
    file_version = package.version_from_files(tags)
    if file_version is not None:
        versions.update_version(file_version)
    previous_version = versions.latest()

    changes, used_files = gather_changes(
        package,
        history.commits,
        change_files,
        ignore_conventional_commits=ignore_conventional_commits,
        skip_release_patterns=skip_release_patterns,
    )

    if package.override_version is not None:
        new_version = package.override_version
        logger.debug("Using override version %s for %s", new_version, package.display_name)
    elif not changes and rule is None:
        logger.info("No changes to release for %s", package.display_name)
        return None
    else:
        resolved = resolve_rule(changes, rule=rule, prerelease_label=prerelease_label)
        new_version = versions.bump(resolved)
    logger.info("Releasing %s: %s -> %s", package.display_name, previous_version, new_version)

    notes = render_release_notes(changes, package.sections)
    release = Release(
        title=release_title(new_version, today or date.today()),
        version=new_version,
        notes=notes,
        package_name=package.name,
    )

    actions: list[Action] = []
    extra_tags: list[str] = []
    for versioned_file in package.versioned_files:
        update = versioned_file.set_version(new_version, package.go_versioning, crate_name=package.crate_name)
        if update.content != versioned_file.content:
            actions.append(WriteToFile(update.path, update.content, diff=str(new_version)))
        extra_tags.extend(update.tags)

    if package.changelog is not None and notes:
        changelog, block = package.changelog.with_release(release)
        actions.append(WriteToFile(changelog.path, changelog.content, diff=block))

    if not new_version.is_prerelease:
        actions.extend(RemoveFile(f"{changeset_dir}/{f.file_name}") for f in used_files)

    actions.extend(release_actions(release, graph, extra_tags, forge_release=forge_release))
    return PackageRelease(
        package_name=package.name,
        previous_version=previous_version,
        version=new_version,
        release=release,
        changes=changes,
        actions=actions,
    )


def release_actions(
    release: Release,
    graph: CommitGraph,
    extra_tags: Iterable[str] = (),
    *,
    forge_release: bool = False,
) -> list[Action]:
    """Tag and release actions for a release.

    The package tag is only added directly when no forge release creates it.
    Tags that already exist in the repository are never added again.
    """
    main_tag = tag_name(release.version, release.package_name)
    actions: list[Action] = []
    if forge_release:
        actions.append(CreateRelease(release, main_tag))

    for tag in dict.fromkeys([main_tag, *extra_tags]):
        if forge_release and tag == main_tag:
            continue
        if tag in graph.tags:
            logger.debug("Tag %s already exists, not adding it", tag)
            continue
        actions.append(AddTag(tag))
    return actions


def go_tags(package: Package, version: Version) -> list[str]:
    """Tags go.mod files of a package need for `version`."""
    tags = []
    for versioned_file in package.versioned_files:
        if versioned_file.is_go_mod:
            tags.extend(versioned_file.set_version(version, GoVersioning.IGNORE_MAJOR_RULES).tags)
    return tags

