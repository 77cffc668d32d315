"""Shared fixtures for release-engine tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import pytest

from release_engine.core.history import CommitGraph
from release_engine.vcs.git import Commit

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


def build_commit(
    sha: str,
    message: str,
    parents: Sequence[str] = (),
    minute: int = 0,
) -> Commit:
    """A commit whose date is `minute` minutes after a fixed epoch."""
    return Commit(
        sha=sha,
        message=message,
        author_name="Test",
        author_email="test@test.com",
        date=EPOCH + timedelta(minutes=minute),
        parents=tuple(parents),
    )


def linear_graph(messages: Sequence[str], tags: Mapping[str, int] | None = None) -> CommitGraph:
    """A linear history, oldest message first.

    Commits are named c0, c1, ... and `tags` maps tag names to commit indexes.
    """
    commits = []
    for index, message in enumerate(messages):
        parents = (f"c{index - 1}",) if index else ()
        commits.append(build_commit(f"c{index}", message, parents, minute=index))
    head = f"c{len(messages) - 1}" if messages else None
    return CommitGraph(commits, head, {tag: f"c{index}" for tag, index in (tags or {}).items()})


@pytest.fixture
def make_commit() -> Callable[..., Commit]:
    """Build commits with fixed dates, for hand-made graphs."""
    return build_commit


@pytest.fixture
def make_graph() -> Callable[..., CommitGraph]:
    """Build linear commit graphs from messages and tag positions."""
    return linear_graph


@pytest.fixture
def feat_commit() -> Commit:
    """A feature commit."""
    return build_commit("feat123", "feat: add new feature")


@pytest.fixture
def fix_commit() -> Commit:
    """A bug fix commit."""
    return build_commit("fix1234", "fix: resolve bug")


@pytest.fixture
def breaking_commit() -> Commit:
    """A breaking change commit."""
    return build_commit("break12", "feat!: redesign API")


@pytest.fixture
def sample_commits() -> list[Commit]:
    """A mix of conventional and non-conventional commits."""
    return [
        build_commit("a1", "feat(api): add endpoint", minute=1),
        build_commit("a2", "fix: handle empty input", minute=2),
        build_commit("a3", "docs: update readme", minute=3),
        build_commit("a4", "Merge branch 'main'", minute=4),
        build_commit("a5", "feat!: drop python 3.10\n\nBREAKING CHANGE: 3.10 is no longer supported", minute=5),
    ]
