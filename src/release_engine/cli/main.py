"""CLI entry point for release-engine."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.logging import RichHandler

from release_engine import __version__
from release_engine.cli.commands.document_change import run_document_change
from release_engine.cli.commands.prepare import parse_override_versions, run_prepare
from release_engine.cli.commands.release import run_release
from release_engine.core.version import check_prerelease_label
from release_engine.exceptions import VersionParseError

if TYPE_CHECKING:
    from release_engine.core.version import Version

console = Console()
err_console = Console(stderr=True)

path_argument = click.argument(
    "path",
    required=False,
    type=click.Path(exists=True, file_okay=False),
)


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, rich_tracebacks=True, show_path=verbose)],
        force=True,
    )


def _label_callback(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    if value is None:
        return None
    try:
        return check_prerelease_label(value)
    except VersionParseError as e:
        raise click.BadParameter(str(e)) from e


def _overrides_callback(
    ctx: click.Context, param: click.Parameter, values: tuple[str, ...]
) -> dict[str | None, Version]:
    try:
        return parse_override_versions(values)
    except VersionParseError as e:
        raise click.BadParameter(str(e)) from e


@click.group()
@click.version_option(__version__, prog_name="release-engine")
@click.option("-v", "--verbose", is_flag=True, help="Show debug logs explaining each decision.")
def cli(verbose: bool) -> None:
    """Semantic versions, changelogs and tags from conventional commits and change files."""
    _setup_logging(verbose)


@cli.command()
@path_argument
@click.option("--execute", is_flag=True, help="Apply the changes instead of previewing them.")
@click.option("--allow-empty", is_flag=True, help="Succeed when there is nothing to release.")
@click.option(
    "--prerelease-label",
    metavar="LABEL",
    callback=_label_callback,
    help='Release a prerelease, e.g. "rc".',
)
@click.option(
    "--rule",
    type=click.Choice(["major", "minor", "patch", "release"], case_sensitive=False),
    help="Bump with this rule instead of the one implied by the changes.",
)
@click.option(
    "--override-version",
    "override_versions",
    multiple=True,
    metavar="[NAME=]VERSION",
    callback=_overrides_callback,
    help="Release exactly this version. Repeat with NAME= for several packages.",
)
@click.option(
    "--ignore-conventional-commits",
    is_flag=True,
    help="Only use change files, not commit messages.",
)
@click.option("--allow-dirty", is_flag=True, help="Apply changes even with uncommitted changes.")
def prepare(
    path: str | None,
    execute: bool,
    allow_empty: bool,
    prerelease_label: str | None,
    rule: str | None,
    override_versions: dict[str | None, Version],
    ignore_conventional_commits: bool,
    allow_dirty: bool,
) -> None:
    """Bump versions, update changelogs and tag the next release."""
    run_prepare(
        path,
        execute,
        allow_empty,
        prerelease_label,
        rule.lower() if rule else None,
        override_versions,
        ignore_conventional_commits,
        console,
        err_console,
        allow_dirty=allow_dirty,
    )


@cli.command()
@path_argument
@click.option("--execute", is_flag=True, help="Create the tags instead of previewing them.")
@click.option("--allow-empty", is_flag=True, help="Succeed when nothing is waiting to be released.")
def release(path: str | None, execute: bool, allow_empty: bool) -> None:
    """Tag versions that were already prepared."""
    run_release(path, execute, allow_empty, console, err_console)


@cli.command("document-change")
@path_argument
@click.option("-s", "--summary", required=True, help="One-line summary of the change.")
@click.option(
    "-t",
    "--type",
    "change_types",
    multiple=True,
    required=True,
    metavar="[PACKAGE=]TYPE",
    help="Change type (major, minor, patch or a custom type). Repeat for several packages.",
)
def document_change(path: str | None, summary: str, change_types: tuple[str, ...]) -> None:
    """Write a change file for the next release."""
    run_document_change(path, summary, change_types, console, err_console)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
