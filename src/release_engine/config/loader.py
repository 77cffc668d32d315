"""Configuration file discovery and loading.

Configuration is read from, in order of preference:

1. release-engine.toml in the project root
2. The [tool.release-engine] table of pyproject.toml

Files are parsed with tomlkit, the same parser used to rewrite TOML
versions, and validated with the Pydantic models.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import tomlkit
from pydantic import ValidationError
from tomlkit.exceptions import TOMLKitError

from release_engine.config.models import PackageConfig, ReleaseEngineConfig
from release_engine.exceptions import ConfigNotFoundError, ConfigValidationError
from release_engine.project.lock_files import DENO_LOCK
from release_engine.project.versioned_file import SUPPORTED_FILE_NAMES

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "release-engine.toml"
PYPROJECT_FILE_NAME = "pyproject.toml"
TOOL_KEY = "release-engine"
DEFAULT_CHANGELOG = "CHANGELOG.md"


def find_pyproject_toml(start: Path | None = None) -> Path:
    """Find pyproject.toml by walking up from `start`.

    Args:
        start: Directory to start from, defaults to the current directory

    Returns:
        Path to the closest pyproject.toml

    Raises:
        ConfigNotFoundError: If no pyproject.toml exists in `start` or its parents
    """
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / PYPROJECT_FILE_NAME
        if candidate.is_file():
            return candidate
    raise ConfigNotFoundError(f"Could not find {PYPROJECT_FILE_NAME} in {current} or any parent directory")


def load_toml(path: Path) -> dict[str, Any]:
    """Parse a TOML file into plain Python values.

    Raises:
        ConfigNotFoundError: If the file does not exist
        ConfigValidationError: If the file is not valid TOML
    """
    if not path.is_file():
        raise ConfigNotFoundError(f"Configuration file not found: {path}")
    try:
        return tomlkit.parse(path.read_text(encoding="utf-8")).unwrap()
    except TOMLKitError as e:
        raise ConfigValidationError(f"Invalid TOML in {path}: {e}") from e


def extract_release_engine_config(pyproject: dict[str, Any]) -> dict[str, Any]:
    """The [tool.release-engine] table, empty when absent."""
    return pyproject.get("tool", {}).get(TOOL_KEY, {})


def parse_config(data: dict[str, Any], source: Path | str = "<config>") -> ReleaseEngineConfig:
    """Validate raw configuration values.

    Raises:
        ConfigValidationError: Listing every schema violation
    """
    try:
        return ReleaseEngineConfig.model_validate(data)
    except ValidationError as e:
        messages = "\n".join(
            f"  {'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
            for error in e.errors()
        )
        raise ConfigValidationError(f"Invalid configuration in {source}:\n{messages}") from e


def load_config(path: Path | None = None) -> ReleaseEngineConfig:
    """Load configuration for the project at `path`.

    Args:
        path: Project directory, defaults to the current directory

    Returns:
        The validated configuration. A pyproject.toml without a
        [tool.release-engine] table yields the defaults.

    Raises:
        ConfigNotFoundError: If neither release-engine.toml nor pyproject.toml exists
        ConfigValidationError: If the configuration is invalid
    """
    root = (path or Path.cwd()).resolve()
    standalone = root / CONFIG_FILE_NAME
    if standalone.is_file():
        logger.debug("Loading configuration from %s", standalone)
        return parse_config(load_toml(standalone), standalone)

    pyproject_path = find_pyproject_toml(root)
    logger.debug("Loading configuration from %s", pyproject_path)
    return parse_config(extract_release_engine_config(load_toml(pyproject_path)), pyproject_path)


def detect_package(root: Path) -> PackageConfig | None:
    """Build a package from supported files in `root`, None if there are none."""
    # deno.lock needs a named dependency
    versioned_files = [name for name in SUPPORTED_FILE_NAMES if name != DENO_LOCK and (root / name).is_file()]
    if not versioned_files:
        return None
    changelog = DEFAULT_CHANGELOG if (root / DEFAULT_CHANGELOG).is_file() else None
    logger.debug("Detected package with versioned files %s", ", ".join(versioned_files))
    return PackageConfig(versioned_files=versioned_files, changelog=changelog)
