"""Applying (or previewing) the actions of a release plan.

The engine only describes what should happen. This module is the one place
where those descriptions turn into file writes, deletions and git tags.
In dry-run mode the same actions are printed instead.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from rich.markup import escape
from rich.panel import Panel

from release_engine.core.actions import AddTag, CreateRelease, RemoveFile, WriteToFile

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from pathlib import Path

    from rich.console import Console

    from release_engine.core.actions import Action
    from release_engine.core.release import ReleasePlan
    from release_engine.vcs.git import GitRepository

    ForgeCallback = Callable[[CreateRelease], None]

logger = logging.getLogger(__name__)


def print_plan(plan: ReleasePlan, console: Console) -> None:
    """Show what a plan would do without touching anything."""
    for package_release in plan.releases:
        name = package_release.package_name or "default"
        previous = package_release.previous_version or "nothing"
        console.print(f"  [bold]{name}[/]: [cyan]{previous}[/] -> [green]{package_release.version}[/]")

    lines = "\n".join(f"  • {_describe(action)}" for action in plan.actions)
    console.print(
        Panel(
            f"[bold]Would make the following changes:[/]\n\n{lines}",
            title="[yellow]Dry Run Preview[/]",
            border_style="yellow",
        )
    )
    console.print("\n[dim]Run with [cyan]--execute[/] to apply these changes.[/]")


def _describe(action: Action) -> str:
    if isinstance(action, WriteToFile) and "\n" in action.diff:
        # Changelog entries are shown in full below their file name
        body = "\n".join(f"      {escape(line)}" for line in action.diff.splitlines())
        return f"Write to [cyan]{escape(action.path)}[/]:\n{body}"
    return escape(action.describe())


def apply_actions(
    actions: Sequence[Action],
    root: Path,
    repo: GitRepository,
    console: Console,
    forge: ForgeCallback | None = None,
) -> None:
    """Apply actions in order.

    Every action can be applied again safely: files are rewritten with the
    same content, missing files are not an error and existing tags are
    skipped.

    Args:
        actions: Actions to apply
        root: Project root that action paths are relative to
        repo: Repository to tag
        console: Console for progress output
        forge: Called for every CreateRelease. Without it, releases are only reported.

    Raises:
        NoCommitterError: If tags must be created and no committer identity is set
        GitError: If git refuses to create a tag
    """
    if any(isinstance(action, AddTag) for action in actions):
        # Fail before anything is written
        repo.committer_identity()

    for action in actions:
        if isinstance(action, WriteToFile):
            path = root / action.path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(action.content, encoding="utf-8")
            console.print(f"  [green]✓[/] Updated {action.path}")
        elif isinstance(action, RemoveFile):
            (root / action.path).unlink(missing_ok=True)
            console.print(f"  [green]✓[/] Removed {action.path}")
        elif isinstance(action, AddTag):
            if repo.tag_exists(action.tag):
                logger.debug("Tag %s already exists", action.tag)
                continue
            repo.create_tag(action.tag)
            console.print(f"  [green]✓[/] Tagged {action.tag}")
        elif isinstance(action, CreateRelease):
            if forge is None:
                logger.warning("No forge configured, release %s was not published", action.tag)
                console.print(f"  [yellow]![/] Release {action.release.title} needs publishing as {action.tag}")
            else:
                forge(action)
                console.print(f"  [green]✓[/] Published release {action.release.title}")
