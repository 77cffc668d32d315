"""Versioned-file adapters and project loading."""

from __future__ import annotations

from release_engine.project.versioned_file import (
    SUPPORTED_FILE_NAMES,
    VersionedFile,
    VersionUpdate,
    file_kind,
)

__all__ = [
    "SUPPORTED_FILE_NAMES",
    "VersionUpdate",
    "VersionedFile",
    "file_kind",
]
