"""Configuration management for release-engine."""

from __future__ import annotations

from release_engine.config.loader import detect_package, load_config
from release_engine.config.models import (
    ChangelogSectionConfig,
    PackageConfig,
    ReleaseEngineConfig,
    VersionedFileConfig,
)

__all__ = [
    "ChangelogSectionConfig",
    "PackageConfig",
    "ReleaseEngineConfig",
    "VersionedFileConfig",
    "detect_package",
    "load_config",
]
