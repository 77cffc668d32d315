"""Commit history and tag resolution on the commit graph.

The engine never replays a linear log. It works on an in-memory snapshot
of the commit DAG (built by release_engine.vcs.git) so that:

- Commits brought in by a merge are counted exactly once
- A tag on a merged side branch still bounds the history
- Results do not depend on the order `git log` happens to print
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import cached_property
from typing import TYPE_CHECKING

from release_engine.core.commits import ParsedCommit
from release_engine.core.package_versions import PackageVersions
from release_engine.core.version import Version, try_parse_version

if TYPE_CHECKING:
    from release_engine.vcs.git import Commit

logger = logging.getLogger(__name__)


def tag_prefix(package_name: str | None) -> str:
    """Tag prefix for a package: `v` for the default package, else `{name}/v`."""
    if not package_name:
        return "v"
    return f"{package_name}/v"


def tag_name(version: Version, package_name: str | None) -> str:
    return f"{tag_prefix(package_name)}{version}"


def _tag_version(tag: str) -> Version | None:
    # `v1.2.3`, `name/v1.2.3` and `sub/dir/v1.2.3` all end in `v{version}`
    last = tag.rsplit("/", 1)[-1]
    if not last.startswith("v"):
        return None
    return try_parse_version(last[1:])


class CommitGraph:
    """An immutable snapshot of commits reachable in a repository.

    Args:
        commits: Commits keyed by hash. Parents missing from the mapping
            (e.g. in a shallow clone) are treated as roots.
        head: Hash of the checked-out commit, None for an empty repository
        tags: Tag name -> hash of the commit it points at
    """

    def __init__(
        self,
        commits: Mapping[str, Commit] | Iterable[Commit],
        head: str | None,
        tags: Mapping[str, str] | None = None,
    ) -> None:
        if isinstance(commits, Mapping):
            self.commits: dict[str, Commit] = dict(commits)
        else:
            self.commits = {commit.sha: commit for commit in commits}
        self.head = head
        self.tags: dict[str, str] = dict(tags or {})

    def ancestors(self, start: str | None) -> set[str]:
        """All commits reachable from `start`, including itself."""
        if start is None or start not in self.commits:
            return set()
        visited: set[str] = set()
        stack = [start]
        while stack:
            sha = stack.pop()
            if sha in visited:
                continue
            visited.add(sha)
            for parent in self.commits[sha].parents:
                if parent in self.commits and parent not in visited:
                    stack.append(parent)
        return visited

    def topological_order(self, shas: Iterable[str]) -> list[str]:
        """Order commits oldest first, parents always before children.

        Kahn's algorithm; ties are broken by commit date, then by hash,
        so the order is deterministic.
        """
        members = set(shas)
        in_degree = {sha: 0 for sha in members}
        children: dict[str, list[str]] = {sha: [] for sha in members}
        for sha in members:
            for parent in self.commits[sha].parents:
                if parent in members:
                    in_degree[sha] += 1
                    children[parent].append(sha)

        ready = [self._sort_key(sha) for sha, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)
        order: list[str] = []
        while ready:
            _, sha = heapq.heappop(ready)
            order.append(sha)
            for child in children[sha]:
                in_degree[child] -= 1
                if in_degree[child] == 0:
                    heapq.heappush(ready, self._sort_key(child))
        return order

    def _sort_key(self, sha: str) -> tuple[float, str]:
        return (self.commits[sha].date.timestamp(), sha)

    @cached_property
    def _head_positions(self) -> dict[str, int]:
        order = self.topological_order(self.ancestors(self.head))
        return {sha: index for index, sha in enumerate(order)}

    def commits_since(self, tag: str | None) -> list[Commit]:
        """Commits reachable from HEAD but not from `tag`, oldest first.

        With no tag (or a tag that does not exist) every commit reachable
        from HEAD is returned.
        """
        reachable = self.ancestors(self.head)
        if tag is not None and tag in self.tags:
            reachable -= self.ancestors(self.tags[tag])
        elif tag is not None:
            logger.debug("Tag %s not found, using the whole history", tag)
        return [self.commits[sha] for sha in self.topological_order(reachable)]

    def tags_on_branch(self) -> list[str]:
        """Tags pointing at an ancestor of HEAD, newest first.

        Tags on the same commit are ordered by version, greatest first.
        Tags that do not end in a version come last, by name.
        """
        positions = self._head_positions
        by_commit: dict[str, list[str]] = {}
        for tag, sha in self.tags.items():
            if sha in positions:
                by_commit.setdefault(sha, []).append(tag)

        ordered: list[str] = []
        for sha in sorted(by_commit, key=positions.__getitem__, reverse=True):
            tags = sorted(by_commit[sha])
            versioned = [tag for tag in tags if _tag_version(tag) is not None]
            versioned.sort(key=_tag_version, reverse=True)
            ordered.extend(versioned)
            ordered.extend(tag for tag in tags if _tag_version(tag) is None)
        return ordered


@dataclass(frozen=True)
class PackageHistory:
    """Where a package stands in the repository history.

    Attributes:
        versions: Current versions derived from tags
        baseline_tag: Tag of the current stable version, None before the first release
        commits: Commits since the baseline, oldest first
    """

    versions: PackageVersions
    baseline_tag: str | None
    commits: list[Commit]


def resolve_package_history(
    graph: CommitGraph,
    package_name: str | None,
    scopes: Iterable[str] | None = None,
) -> PackageHistory:
    """Find a package's current versions and the commits since its last release.

    Only stable tags bound the history. A prerelease tag ahead of the
    latest stable release (e.g. a `2.0.0-rc.0` while work continues on
    `1.x`) never becomes the baseline.

    Args:
        graph: Snapshot of the repository
        package_name: Name of the package, None for a single-package project
        scopes: When given, drop conventional commits with any other scope

    Returns:
        The package's history
    """
    prefix = tag_prefix(package_name)
    tags = graph.tags_on_branch()
    versions = PackageVersions.from_tags(prefix, tags)

    baseline_tag = None
    if versions.stable is not None:
        baseline_tag = tag_name(Version.from_stable(versions.stable), package_name)
        logger.debug("Using %s as the baseline for new commits", baseline_tag)
    else:
        logger.debug("No stable tag found with prefix %s, using the whole history", prefix)

    commits = graph.commits_since(baseline_tag)
    if scopes:
        allowed = {scope.casefold() for scope in scopes}
        commits = [commit for commit in commits if _in_scope(commit, allowed)]
    return PackageHistory(versions=versions, baseline_tag=baseline_tag, commits=commits)


def _in_scope(commit: Commit, allowed: set[str]) -> bool:
    scope = ParsedCommit.from_commit(commit).scope
    return scope is None or scope.casefold() in allowed
