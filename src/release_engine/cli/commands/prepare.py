"""Implementation of the 'prepare' command.

The prepare command bumps versions, writes changelog entries, consumes
change files and tags the release. Without --execute it only shows what
it would do.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.markup import escape
from rich.panel import Panel

from release_engine.cli.commands.common import open_project
from release_engine.cli.executor import apply_actions, print_plan
from release_engine.core.release import prepare_release
from release_engine.core.rules import PreRule, ReleaseRule, StableRule
from release_engine.core.version import Version
from release_engine.exceptions import ReleaseEngineError
from release_engine.project.workspace import read_change_files

if TYPE_CHECKING:
    from collections.abc import Iterable

    from rich.console import Console

    from release_engine.core.release import ReleasePlan
    from release_engine.core.rules import Rule


def parse_override_versions(values: Iterable[str]) -> dict[str | None, Version]:
    """Parse `VERSION` or `NAME=VERSION` overrides.

    A bare version applies to every package that has no named override.

    Raises:
        VersionParseError: If a version is invalid
    """
    overrides: dict[str | None, Version] = {}
    for value in values:
        name, separator, version = value.rpartition("=")
        key = name.strip() if separator else None
        overrides[key] = Version.parse(version.strip())
    return overrides


def build_rule(rule: str | None, prerelease_label: str | None) -> Rule | None:
    """The explicit rule requested on the command line, if any."""
    if rule is None:
        return None
    if rule == "release":
        return ReleaseRule()
    stable_rule = StableRule.parse(rule)
    if prerelease_label:
        return PreRule(prerelease_label, stable_rule)
    return stable_rule


def run_prepare(
    path: str | None,
    execute: bool,
    allow_empty: bool,
    prerelease_label: str | None,
    rule: str | None,
    override_versions: dict[str | None, Version],
    ignore_conventional_commits: bool,
    console: Console,
    err_console: Console,
    allow_dirty: bool = False,
) -> None:
    """Run the prepare command.

    Args:
        path: Optional path to project directory
        execute: Whether to actually apply changes
        allow_empty: Succeed when nothing needs releasing
        prerelease_label: Release a prerelease with this label (e.g. "rc")
        rule: Explicit bump rule: major, minor, patch or release
        override_versions: Forced versions, see parse_override_versions
        ignore_conventional_commits: Only use change files
        console: Console for standard output
        err_console: Console for error output
        allow_dirty: Apply changes even with uncommitted changes in the repository
    """
    try:
        project = open_project(path, override_versions)
        config = project.config
        plan = prepare_release(
            project.packages,
            project.graph,
            read_change_files(project.root, config.changeset_dir),
            rule=build_rule(rule, prerelease_label),
            prerelease_label=prerelease_label,
            ignore_conventional_commits=ignore_conventional_commits or config.ignore_conventional_commits,
            forge_release=config.forge_release,
            skip_release_patterns=config.skip_release_patterns,
            changeset_dir=config.changeset_dir,
            allow_empty=allow_empty,
            stop_on_error=False,
        )
    except ReleaseEngineError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        raise SystemExit(1) from e

    if plan.errors:
        for name, error in plan.errors.items():
            err_console.print(f"[red]Error in {name}:[/] {escape(str(error))}")
        raise SystemExit(1)

    if plan.is_empty:
        console.print("[yellow]No changes to release. Nothing to do.[/]")
        return

    mode_str = "[green]EXECUTING[/]" if execute else "[yellow]DRY-RUN[/]"
    console.print(f"\n{mode_str} - Preparing {len(plan.releases)} release(s)\n")

    if not execute:
        print_plan(plan, console)
        return

    try:
        if not (allow_dirty or config.allow_dirty) and project.repo.is_dirty():
            err_console.print(
                "[red]Error:[/] Repository has uncommitted changes.\n"
                "Commit or stash them, or use [cyan]--allow-dirty[/] or [cyan]allow_dirty = true[/] in config."
            )
            raise SystemExit(1)
        apply_actions(plan.actions, project.root, project.repo, console)
    except ReleaseEngineError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        raise SystemExit(1) from e

    console.print(
        Panel(
            _summary(plan),
            title="[green]Prepare Complete[/]",
            border_style="green",
        )
    )


def _summary(plan: ReleasePlan) -> str:
    versions = "\n".join(
        f"  • {release.package_name or 'default'} [green]{release.version}[/]" for release in plan.releases
    )
    return f"[green]Successfully prepared:[/]\n{versions}"
