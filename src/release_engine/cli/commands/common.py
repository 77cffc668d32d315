"""Helpers shared by the commands that read a project."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from release_engine.config import ReleaseEngineConfig, load_config
from release_engine.exceptions import ConfigNotFoundError
from release_engine.project.workspace import load_packages
from release_engine.vcs import GitRepository

if TYPE_CHECKING:
    from collections.abc import Mapping

    from release_engine.core.history import CommitGraph
    from release_engine.core.package import Package
    from release_engine.core.version import Version

logger = logging.getLogger(__name__)


@dataclass
class Project:
    """A project read from disk, ready to hand to the engine."""

    root: Path
    config: ReleaseEngineConfig
    repo: GitRepository
    graph: CommitGraph
    packages: list[Package]


def load_project_config(root: Path) -> ReleaseEngineConfig:
    """Configuration of the project, the defaults when there is no config file."""
    try:
        return load_config(root)
    except ConfigNotFoundError:
        logger.debug("No configuration found in %s, detecting packages", root)
        return ReleaseEngineConfig()


def open_project(
    path: str | None,
    override_versions: Mapping[str | None, Version] | None = None,
) -> Project:
    """Read configuration, repository snapshot and packages.

    Raises:
        ReleaseEngineError: If any of them cannot be read
    """
    root = Path(path).resolve() if path else Path.cwd()
    config = load_project_config(root)
    repo = GitRepository(root)
    graph = repo.commit_graph()
    packages = load_packages(config, root, override_versions)
    return Project(root=root, config=config, repo=repo, graph=graph, packages=packages)
