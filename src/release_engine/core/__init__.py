"""Core versioning and release-notes engine.

This package contains the fundamental building blocks:
- Semantic versions, their ordering and bump rules
- Changes from conventional commits and change files
- Commit graph and tag resolution
- Release notes rendering and changelog splicing

Per-package preparation lives in `release_engine.core.package` and
`release_engine.core.release`. They depend on the versioned-file adapters
and are not imported here.
"""

from __future__ import annotations

from release_engine.core.actions import Action, AddTag, CreateRelease, RemoveFile, WriteToFile
from release_engine.core.changelog import Changelog, Release, release_title, render_release_notes
from release_engine.core.changes import Change, ChangeType, CommitFooter, CustomChangeType
from release_engine.core.changesets import ChangeFile, load_change_files
from release_engine.core.commits import ParsedCommit, changes_from_commits, filter_skip_release_commits
from release_engine.core.history import CommitGraph, resolve_package_history, tag_name, tag_prefix
from release_engine.core.package_versions import PackageVersions
from release_engine.core.rules import PreRule, ReleaseRule, Rule, StableRule, resolve_rule
from release_engine.core.sections import Sections, compute_sections, default_sections
from release_engine.core.version import Prerelease, StableVersion, Version, parse_version

__all__ = [
    "Action",
    "AddTag",
    "Change",
    "ChangeFile",
    "ChangeType",
    "Changelog",
    "CommitFooter",
    "CommitGraph",
    "CreateRelease",
    "CustomChangeType",
    "PackageVersions",
    "ParsedCommit",
    "PreRule",
    "Prerelease",
    "Release",
    "ReleaseRule",
    "RemoveFile",
    "Rule",
    "Sections",
    "StableRule",
    "StableVersion",
    "Version",
    "WriteToFile",
    "changes_from_commits",
    "compute_sections",
    "default_sections",
    "filter_skip_release_commits",
    "load_change_files",
    "parse_version",
    "release_title",
    "render_release_notes",
    "resolve_package_history",
    "resolve_rule",
    "tag_name",
    "tag_prefix",
]
