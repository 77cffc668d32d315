"""Implementation of the 'document-change' command.

Writes a change file describing one change for one or more packages.
Unlike commit messages, change files can carry long-form Markdown and
are consumed by the next stable release.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from rich.markup import escape

from release_engine.cli.commands.common import load_project_config
from release_engine.core.changesets import DEFAULT_PACKAGE_NAME, ChangeFile
from release_engine.core.sections import compute_sections, user_section
from release_engine.exceptions import ChangeFileError, ReleaseEngineError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rich.console import Console

    from release_engine.config.models import ReleaseEngineConfig


def _allowed_types(config: ReleaseEngineConfig) -> dict[str, list[str]]:
    """Package name -> change types a change file may use for it."""
    package_configs = config.package_configs
    if not package_configs:
        return {DEFAULT_PACKAGE_NAME: compute_sections().change_file_types()}
    allowed = {}
    for package_config in package_configs:
        sections = compute_sections(
            user_section(section.name, section.footers, section.types)
            for section in package_config.extra_changelog_sections
        )
        allowed[package_config.name or DEFAULT_PACKAGE_NAME] = sections.change_file_types()
    return allowed


def parse_versioning(
    change_types: Sequence[str],
    allowed: dict[str, list[str]],
) -> dict[str, str]:
    """Parse `TYPE` or `PACKAGE=TYPE` values into a change file's front matter.

    A bare type is only accepted when the project has a single package.

    Raises:
        ChangeFileError: For unknown packages, unknown types or a missing package name
    """
    versioning: dict[str, str] = {}
    for value in change_types:
        name, separator, change_type = value.partition("=")
        if not separator:
            if len(allowed) != 1:
                raise ChangeFileError(f"Name the package for {value!r}, e.g. PACKAGE={value}")
            name, change_type = next(iter(allowed)), value
        name, change_type = name.strip(), change_type.strip()
        if name not in allowed:
            raise ChangeFileError(f"Unknown package {name!r}, expected one of {', '.join(allowed)}")
        if change_type not in allowed[name]:
            raise ChangeFileError(
                f"Unknown change type {change_type!r} for {name}, expected one of {', '.join(allowed[name])}"
            )
        versioning[name] = change_type
    return versioning


def run_document_change(
    path: str | None,
    summary: str,
    change_types: Sequence[str],
    console: Console,
    err_console: Console,
) -> None:
    """Run the document-change command.

    Args:
        path: Optional path to project directory
        summary: One-line summary, used as the heading of the change
        change_types: `TYPE` or `PACKAGE=TYPE` values
        console: Console for standard output
        err_console: Console for error output
    """
    root = Path(path).resolve() if path else Path.cwd()
    try:
        config = load_project_config(root)
        versioning = parse_versioning(change_types, _allowed_types(config))
        change_file = ChangeFile.create(summary, versioning)
        destination = root / config.changeset_dir / change_file.file_name
        if destination.exists():
            raise ChangeFileError("A change file with this summary already exists", str(destination))
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(change_file.to_markdown(), encoding="utf-8")
    except ReleaseEngineError as e:
        err_console.print(f"[red]Error:[/] {escape(str(e))}")
        raise SystemExit(1) from e

    console.print(f"[green]✓[/] Created {destination.relative_to(root)}")
