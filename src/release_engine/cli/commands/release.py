"""Implementation of the 'release' command.

The release command tags versions that were already written to the
versioned files, for example by `prepare` in an earlier commit.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape

from release_engine.cli.commands.common import open_project
from release_engine.cli.executor import apply_actions, print_plan
from release_engine.core.release import release_prepared
from release_engine.exceptions import ReleaseEngineError

if TYPE_CHECKING:
    from rich.console import Console


def run_release(
    path: str | None,
    execute: bool,
    allow_empty: bool,
    console: Console,
    err_console: Console,
) -> None:
    """Run the release command.

    Args:
        path: Optional path to project directory
        execute: Whether to actually create tags and releases
        allow_empty: Succeed when nothing is waiting to be released
        console: Console for standard output
        err_console: Console for error output
    """
    try:
        project = open_project(path)
        plan = release_prepared(
            project.packages,
            project.graph,
            forge_release=project.config.forge_release,
            allow_empty=allow_empty,
        )
        if plan.is_empty:
            console.print("[yellow]No prepared releases. Nothing to do.[/]")
            return
        if not execute:
            print_plan(plan, console)
            return
        apply_actions(plan.actions, project.root, project.repo, console)
    except ReleaseEngineError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        raise SystemExit(1) from e

    for package_release in plan.releases:
        console.print(f"[green]Released {package_release.package_name or 'default'} {package_release.version}[/]")
