"""Release orchestration across all packages.

Two workflows are supported:

- prepare_release: compute versions, file edits, changelog entries, tags
  and forge releases in one go
- release_prepared: when a previous run (or a human) already bumped the
  versioned files and changelog, only tag and publish what is in them

Packages are resolved independently against the same repository snapshot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from release_engine.core.actions import RemoveFile
from release_engine.core.changelog import Release
from release_engine.core.changesets import CHANGESET_DIR
from release_engine.core.commits import DEFAULT_SKIP_RELEASE_PATTERNS
from release_engine.core.history import tag_prefix
from release_engine.core.package import PackageRelease, go_tags, prepare_package, release_actions
from release_engine.core.package_versions import PackageVersions
from release_engine.exceptions import NoPackagesError, NoReleaseError, ReleaseEngineError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from datetime import date

    from release_engine.core.actions import Action
    from release_engine.core.changesets import ChangeFile
    from release_engine.core.history import CommitGraph
    from release_engine.core.package import Package
    from release_engine.core.rules import Rule

logger = logging.getLogger(__name__)


@dataclass
class ReleasePlan:
    """Everything a run would do.

    Attributes:
        releases: One entry per package that gets a release
        errors: Package name -> error, for packages that failed
    """

    releases: list[PackageRelease] = field(default_factory=list)
    errors: dict[str, ReleaseEngineError] = field(default_factory=dict)

    @property
    def actions(self) -> list[Action]:
        """All actions in package order. A change file is removed only once."""
        actions: list[Action] = []
        removed: set[str] = set()
        for package_release in self.releases:
            for action in package_release.actions:
                if isinstance(action, RemoveFile):
                    if action.path in removed:
                        continue
                    removed.add(action.path)
                actions.append(action)
        return actions

    @property
    def is_empty(self) -> bool:
        return not self.releases


def prepare_release(
    packages: Sequence[Package],
    graph: CommitGraph,
    change_files: Iterable[ChangeFile] = (),
    *,
    rule: Rule | None = None,
    prerelease_label: str | None = None,
    ignore_conventional_commits: bool = False,
    forge_release: bool = False,
    skip_release_patterns: Sequence[str] = DEFAULT_SKIP_RELEASE_PATTERNS,
    changeset_dir: str = CHANGESET_DIR,
    allow_empty: bool = False,
    stop_on_error: bool = True,
    today: date | None = None,
) -> ReleasePlan:
    """Prepare releases for every package.

    Args:
        packages: Packages to consider
        graph: Snapshot of the repository
        change_files: Change files waiting to be released
        rule: Explicit bump rule for every package
        prerelease_label: Release prereleases with this label
        ignore_conventional_commits: Only use change files
        forge_release: Whether forge releases will be created
        skip_release_patterns: Commits containing these markers are ignored
        changeset_dir: Directory of change files, relative to the project root
        allow_empty: Return an empty plan instead of raising NoReleaseError
        stop_on_error: Raise the first package error instead of collecting errors
        today: Release date, defaults to the current date

    Returns:
        The release plan

    Raises:
        NoPackagesError: If there are no packages
        NoReleaseError: If no package has anything to release and allow_empty is False
    """
    if not packages:
        raise NoPackagesError()

    change_files = list(change_files)
    plan = ReleasePlan()
    for package in packages:
        try:
            package_release = prepare_package(
                package,
                graph,
                change_files,
                rule=rule,
                prerelease_label=prerelease_label,
                ignore_conventional_commits=ignore_conventional_commits,
                forge_release=forge_release,
                skip_release_patterns=skip_release_patterns,
                changeset_dir=changeset_dir,
                today=today,
            )
        except ReleaseEngineError as e:
            if stop_on_error:
                raise
            logger.error("Could not prepare %s: %s", package.display_name, e)
            plan.errors[package.display_name] = e
            continue
        if package_release is not None:
            plan.releases.append(package_release)

    if plan.is_empty and not plan.errors and not allow_empty:
        raise NoReleaseError()
    return plan


def find_prepared_release(
    package: Package,
    graph: CommitGraph,
    *,
    forge_release: bool = False,
) -> PackageRelease | None:
    """Find a release that was prepared but never tagged.

    A release is prepared when the version in the package's files differs
    from the latest tagged version. Its notes are read back from the
    changelog when it has an entry for that version.

    Returns:
        The release with its tag and forge actions, or None
    """
    tags = graph.tags_on_branch()
    file_version = package.version_from_files(tags)
    if file_version is None:
        return None

    latest = PackageVersions.from_tags(tag_prefix(package.name), tags).latest()
    if latest == file_version:
        logger.debug("%s is already tagged at %s", package.display_name, latest)
        return None

    release = None
    if package.changelog is not None:
        release = package.changelog.get_release(file_version, package.name)
    if release is None:
        release = Release(title=str(file_version), version=file_version, notes="", package_name=package.name)

    actions = release_actions(
        release, graph, go_tags(package, file_version), forge_release=forge_release
    )
    return PackageRelease(
        package_name=package.name,
        previous_version=latest,
        version=file_version,
        release=release,
        actions=actions,
    )


def release_prepared(
    packages: Sequence[Package],
    graph: CommitGraph,
    *,
    forge_release: bool = False,
    allow_empty: bool = False,
) -> ReleasePlan:
    """Tag (and optionally publish) every prepared release.

    Raises:
        NoPackagesError: If there are no packages
        NoReleaseError: If nothing is waiting to be released and allow_empty is False
    """
    if not packages:
        raise NoPackagesError()

    plan = ReleasePlan()
    for package in packages:
        package_release = find_prepared_release(package, graph, forge_release=forge_release)
        if package_release is not None:
            plan.releases.append(package_release)

    if plan.is_empty and not allow_empty:
        raise NoReleaseError("No prepared releases found. Run `prepare` first or bump the version")
    return plan
