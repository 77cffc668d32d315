"""Git access through the `git` command line.

This module is the only place that talks to git. It reads a snapshot of
the commit graph and tags for the engine, and applies the few git
operations an executor needs (creating tags). All subprocess calls go
through GitRepository._run so tests can mock them easily.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from release_engine.core.history import CommitGraph
from release_engine.exceptions import (
    GitError,
    NoCommitsError,
    NoCommitterError,
    RepositoryNotFoundError,
)

logger = logging.getLogger(__name__)

# Field and record separators for `git log` output
_FIELD = "\x1f"
_RECORD = "\x1e"
_LOG_FORMAT = "%H%x1f%P%x1f%an%x1f%ae%x1f%cI%x1f%B%x1e"


@dataclass(frozen=True)
class Commit:
    """A single commit.

    Attributes:
        sha: Full commit hash
        message: Full commit message
        author_name: Author's name
        author_email: Author's email
        date: Commit date
        parents: Hashes of the parent commits, two or more for merges
    """

    sha: str
    message: str
    author_name: str
    author_email: str
    date: datetime
    parents: tuple[str, ...] = ()

    @property
    def short_sha(self) -> str:
        return self.sha[:7]

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0]


class GitRepository:
    """A git repository on disk.

    Args:
        path: Any directory inside the repository

    Raises:
        RepositoryNotFoundError: If `path` is not inside a git repository
    """

    def __init__(self, path: Path | None = None) -> None:
        start = Path(path) if path is not None else Path.cwd()
        result = self._run_in(start, ["rev-parse", "--show-toplevel"], check=False)
        if result.returncode != 0:
            raise RepositoryNotFoundError(f"Not a git repository: {start}", stderr=result.stderr)
        self.path = Path(result.stdout.strip())

    @staticmethod
    def _run_in(cwd: Path, args: list[str], check: bool = True) -> subprocess.CompletedProcess[str]:
        full_cmd = ["git", *args]
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as e:
            raise GitError("git executable not found. Is git installed?") from e

        if check and result.returncode != 0:
            raise GitError(f"git {' '.join(args)} failed with exit code {result.returncode}", stderr=result.stderr)
        return result

    def _run(self, args: list[str], check: bool = True) -> subprocess.CompletedProcess[str]:
        """Run a git command in the repository root.

        Raises:
            GitError: If the command exits with a non-zero status when `check` is True
        """
        return self._run_in(self.path, args, check=check)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def head(self) -> str | None:
        """Hash of HEAD, None if the repository has no commits."""
        result = self._run(["rev-parse", "--verify", "--quiet", "HEAD"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def tags(self) -> dict[str, str]:
        """Tag name -> hash of the commit it points at (annotated tags are peeled)."""
        result = self._run(
            ["for-each-ref", "--format=%(refname:strip=2) %(objectname) %(*objectname)", "refs/tags"]
        )
        tags = {}
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) < 2:
                continue
            # The third field is only present for annotated tags
            tags[parts[0]] = parts[2] if len(parts) > 2 else parts[1]
        return tags

    def commits(self, rev: str = "HEAD") -> list[Commit]:
        """All commits reachable from `rev`."""
        result = self._run(["log", f"--format={_LOG_FORMAT}", rev])
        commits = []
        for record in result.stdout.split(_RECORD):
            record = record.strip("\n")
            if not record:
                continue
            sha, parents, author_name, author_email, date, message = record.split(_FIELD, 5)
            commits.append(
                Commit(
                    sha=sha,
                    message=message.strip(),
                    author_name=author_name,
                    author_email=author_email,
                    date=datetime.fromisoformat(date),
                    parents=tuple(parents.split()),
                )
            )
        return commits

    def commit_graph(self) -> CommitGraph:
        """Snapshot of every commit reachable from HEAD, plus all tags.

        Raises:
            NoCommitsError: If the repository has no commits yet
        """
        head = self.head()
        if head is None:
            raise NoCommitsError(f"No commits found in {self.path}. Create a commit before releasing.")
        commits = self.commits(head)
        logger.debug("Read %d commits from %s", len(commits), self.path)
        return CommitGraph(commits, head, self.tags())

    def is_dirty(self) -> bool:
        """Whether there are uncommitted changes."""
        return bool(self._run(["status", "--porcelain"]).stdout.strip())

    def tag_exists(self, tag: str) -> bool:
        result = self._run(["rev-parse", "--verify", "--quiet", f"refs/tags/{tag}"], check=False)
        return result.returncode == 0

    def read_config(self, key: str) -> str | None:
        result = self._run(["config", "--get", key], check=False)
        value = result.stdout.strip()
        return value or None

    def committer_identity(self) -> tuple[str, str]:
        """The configured committer name and email.

        Raises:
            NoCommitterError: If either is missing. The identity is never guessed.
        """
        name = self.read_config("user.name")
        email = self.read_config("user.email")
        if not name or not email:
            raise NoCommitterError()
        return name, email

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def create_tag(self, tag: str, message: str | None = None) -> None:
        """Create a tag on HEAD, annotated when `message` is given.

        Raises:
            NoCommitterError: If no committer identity is configured
            GitError: If git refuses to create the tag
        """
        self.committer_identity()
        if message:
            self._run(["tag", "-a", tag, "-m", message])
        else:
            self._run(["tag", tag])
        logger.info("Created tag %s", tag)
