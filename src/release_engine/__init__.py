"""release-engine: semantic versioning and release notes from conventional commits and change files."""

from __future__ import annotations

__version__ = "0.1.0"
