"""Tests for release orchestration across packages."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

import pytest

from release_engine.core.actions import AddTag, CreateRelease, RemoveFile, WriteToFile
from release_engine.core.changelog import Changelog, Release
from release_engine.core.changesets import ChangeFile
from release_engine.core.package import Package
from release_engine.core.release import (
    ReleasePlan,
    find_prepared_release,
    prepare_release,
    release_prepared,
)
from release_engine.core.version import Version
from release_engine.exceptions import NoPackagesError, NoReleaseError, VersionNotFoundError

if TYPE_CHECKING:
    from collections.abc import Callable

    from release_engine.core.history import CommitGraph


def pyproject(version: str) -> str:
    return f'[project]\nname = "demo"\nversion = "{version}"\n'


CHANGELOG = "# Changelog\n\n## 1.1.0 (2024-03-01)\n\n### Features\n\n- add a flag\n\n## 1.0.0\n\n- First\n"


@pytest.fixture
def monorepo() -> list[Package]:
    """Two packages, each with its own tags and scope."""
    return [
        Package.from_files("first", {"first/pyproject.toml": pyproject("1.0.0")}, scopes=("first",)),
        Package.from_files("second", {"second/package.json": '{"version": "2.0.0"}'}, scopes=("second",)),
    ]


class TestPrepareRelease:
    """Tests for prepare_release()."""

    def test_no_packages(self, make_graph: Callable[..., CommitGraph]):
        """At least one package is required."""
        with pytest.raises(NoPackagesError):
            prepare_release([], make_graph(["feat: a"]))

    def test_nothing_to_release(self, make_graph: Callable[..., CommitGraph]):
        """Without changes preparing a release fails."""
        graph = make_graph(["feat: initial"], {"v1.0.0": 0})
        package = Package.from_files(None, {"pyproject.toml": pyproject("1.0.0")})

        with pytest.raises(NoReleaseError):
            prepare_release([package], graph)

    def test_allow_empty(self, make_graph: Callable[..., CommitGraph]):
        """allow_empty turns a missing release into an empty plan."""
        graph = make_graph(["feat: initial"], {"v1.0.0": 0})
        package = Package.from_files(None, {"pyproject.toml": pyproject("1.0.0")})

        plan = prepare_release([package], graph, allow_empty=True)

        assert plan.is_empty
        assert plan.actions == []

    def test_packages_independent(
        self, make_graph: Callable[..., CommitGraph], monorepo: list[Package]
    ):
        """Each package gets its own version from its own commits."""
        graph = make_graph(
            ["feat: initial", "feat(first): new", "fix(second): bug"],
            {"first/v1.0.0": 0, "second/v2.0.0": 0},
        )

        plan = prepare_release(monorepo, graph, today=date(2024, 3, 1))

        assert [(r.package_name, str(r.version)) for r in plan.releases] == [
            ("first", "1.1.0"),
            ("second", "2.0.1"),
        ]
        assert [a for a in plan.actions if isinstance(a, AddTag)] == [
            AddTag("first/v1.1.0"),
            AddTag("second/v2.0.1"),
        ]

    def test_only_changed_packages(
        self, make_graph: Callable[..., CommitGraph], monorepo: list[Package]
    ):
        """Packages without changes are left out of the plan."""
        graph = make_graph(
            ["feat: initial", "feat(first): new"],
            {"first/v1.0.0": 0, "second/v2.0.0": 0},
        )

        plan = prepare_release(monorepo, graph)

        assert [r.package_name for r in plan.releases] == ["first"]

    def test_shared_change_file_removed_once(
        self, make_graph: Callable[..., CommitGraph], monorepo: list[Package]
    ):
        """A change file naming several packages is removed once."""
        graph = make_graph(["feat: initial"], {"first/v1.0.0": 0, "second/v2.0.0": 0})
        shared = ChangeFile.parse("shared.md", "---\nfirst: minor\nsecond: patch\n---\n\n# Shared change\n")

        plan = prepare_release(monorepo, graph, [shared])

        assert [str(r.version) for r in plan.releases] == ["1.1.0", "2.0.1"]
        assert plan.actions.count(RemoveFile(".changeset/shared.md")) == 1

    def test_errors_collected(self, make_graph: Callable[..., CommitGraph], monorepo: list[Package]):
        """Without stop_on_error failing packages are reported, the rest still prepared."""
        graph = make_graph(
            ["feat: initial", "feat(first): new", "fix: shared"],
            {"first/v1.0.0": 0, "second/v2.0.0": 0},
        )
        broken = Package.from_files("go", {"go/go.mod": "module github.com/owner/repo/go\n"})

        plan = prepare_release([*monorepo, broken], graph, stop_on_error=False)

        assert [r.package_name for r in plan.releases] == ["first", "second"]
        assert list(plan.errors) == ["go"]
        assert isinstance(plan.errors["go"], VersionNotFoundError)

    def test_stop_on_error(self, make_graph: Callable[..., CommitGraph]):
        """By default the first package error is raised."""
        graph = make_graph(["feat: initial"])
        broken = Package.from_files(None, {"go.mod": "module github.com/owner/repo\n"})

        with pytest.raises(VersionNotFoundError):
            prepare_release([broken], graph)

    def test_errors_without_releases(self, make_graph: Callable[..., CommitGraph]):
        """A plan with errors is returned rather than reported as empty."""
        graph = make_graph(["feat: initial"])
        broken = Package.from_files(None, {"go.mod": "module github.com/owner/repo\n"})

        plan = prepare_release([broken], graph, stop_on_error=False)

        assert plan.is_empty
        assert "default" in plan.errors


class TestReleasePlan:
    """Tests for ReleasePlan."""

    def test_empty(self):
        """A new plan is empty."""
        plan = ReleasePlan()

        assert plan.is_empty
        assert plan.actions == []
        assert plan.errors == {}


class TestFindPreparedRelease:
    """Tests for find_prepared_release()."""

    def test_prepared_release_with_changelog(self, make_graph: Callable[..., CommitGraph]):
        """A version ahead of the tags is released with its changelog notes."""
        graph = make_graph(["feat: initial", "chore: release 1.1.0"], {"v1.0.0": 0})
        package = Package.from_files(
            None,
            {"pyproject.toml": pyproject("1.1.0")},
            changelog=Changelog("CHANGELOG.md", CHANGELOG),
        )

        prepared = find_prepared_release(package, graph)

        assert prepared is not None
        assert prepared.previous_version == Version(1, 0, 0)
        assert prepared.release == Release(
            title="1.1.0 (2024-03-01)",
            version=Version(1, 1, 0),
            notes="## Features\n\n- add a flag",
        )
        assert prepared.actions == [AddTag("v1.1.0")]

    def test_without_changelog_entry(self, make_graph: Callable[..., CommitGraph]):
        """Without changelog notes the release is titled by its version."""
        graph = make_graph(["feat: initial"], {"v1.0.0": 0})
        package = Package.from_files(None, {"pyproject.toml": pyproject("1.0.1")})

        prepared = find_prepared_release(package, graph, forge_release=True)

        assert prepared is not None
        assert prepared.release == Release(title="1.0.1", version=Version(1, 0, 1), notes="")
        assert prepared.actions == [CreateRelease(prepared.release, "v1.0.1")]

    def test_already_tagged(self, make_graph: Callable[..., CommitGraph]):
        """A tagged version is not prepared."""
        graph = make_graph(["feat: initial"], {"v1.0.0": 0})
        package = Package.from_files(None, {"pyproject.toml": pyproject("1.0.0")})

        assert find_prepared_release(package, graph) is None

    def test_without_files(self, make_graph: Callable[..., CommitGraph]):
        """Packages without versioned files have nothing prepared."""
        assert find_prepared_release(Package(name="docs"), make_graph(["feat: a"])) is None


class TestReleasePrepared:
    """Tests for release_prepared()."""

    def test_only_prepared_packages(
        self, make_graph: Callable[..., CommitGraph], monorepo: list[Package]
    ):
        """Only packages whose files are ahead of their tags are released."""
        graph = make_graph(["feat: initial"], {"first/v0.9.0": 0, "second/v2.0.0": 0})

        plan = release_prepared(monorepo, graph)

        assert [r.package_name for r in plan.releases] == ["first"]
        assert plan.actions == [AddTag("first/v1.0.0")]
        assert not any(isinstance(a, WriteToFile) for a in plan.actions)

    def test_nothing_prepared(self, make_graph: Callable[..., CommitGraph]):
        """Without prepared releases there is nothing to do."""
        graph = make_graph(["feat: initial"], {"v1.0.0": 0})
        package = Package.from_files(None, {"pyproject.toml": pyproject("1.0.0")})

        with pytest.raises(NoReleaseError, match="prepare"):
            release_prepared([package], graph)
        assert release_prepared([package], graph, allow_empty=True).is_empty

    def test_no_packages(self, make_graph: Callable[..., CommitGraph]):
        """At least one package is required."""
        with pytest.raises(NoPackagesError):
            release_prepared([], make_graph(["feat: a"]))
