"""Exception hierarchy for release-engine.

Every error raised by the engine derives from ReleaseEngineError so callers
can catch the whole family at once. Subclasses are grouped by the kind of
problem they describe:

- Parse errors: malformed versions, changelogs, change files or versioned files
- Consistency errors: a package's files disagree about its version
- No-op errors: nothing justifies a release
- Repository state errors: git is missing, empty or misconfigured
- Configuration errors: the config file is missing or invalid
"""

from __future__ import annotations


class ReleaseEngineError(Exception):
    """Base exception for all release-engine errors."""


# =============================================================================
# Parse errors
# =============================================================================


class VersionParseError(ReleaseEngineError, ValueError):
    """A string is not a valid `major.minor.patch[-label.N]` version."""

    def __init__(self, text: str, reason: str | None = None) -> None:
        self.text = text
        message = f"Found invalid semantic version {text!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ChangelogParseError(ReleaseEngineError):
    """A changelog heading could not be interpreted as a release title."""


class ChangeFileError(ReleaseEngineError):
    """A change file is malformed."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class VersionedFileError(ReleaseEngineError):
    """A versioned file could not be read or updated."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        if path:
            message = f"{path}: {message}"
        super().__init__(message)


class VersionNotFoundError(VersionedFileError):
    """A versioned file does not contain a version field."""


class UnsupportedFileError(VersionedFileError):
    """A versioned file has a name no adapter understands."""


class GoModuleError(VersionedFileError):
    """A go.mod file cannot be moved to the requested version."""


# =============================================================================
# Consistency errors
# =============================================================================


class InconsistentVersionsError(ReleaseEngineError):
    """Two versioned files of the same package declare different versions."""

    def __init__(self, first_path: str, first_version: str, other_path: str, other_version: str) -> None:
        self.first_path = first_path
        self.other_path = other_path
        super().__init__(
            f"Found inconsistent versions in package: {first_path} had {first_version} "
            f"and {other_path} had {other_version}. "
            "All files in a package must have the same version."
        )


# =============================================================================
# No-op errors
# =============================================================================


class NoReleaseError(ReleaseEngineError):
    """No package has changes that justify a new version."""

    def __init__(self, message: str = "No packages are ready to release") -> None:
        super().__init__(message)


class PreReleaseNotFoundError(ReleaseEngineError):
    """A release promotion was requested but there is no prerelease to promote."""

    def __init__(self) -> None:
        super().__init__("No prerelease version found, but a Release rule was requested")


# =============================================================================
# Repository state errors
# =============================================================================


class GitError(ReleaseEngineError):
    """A git command failed."""

    def __init__(self, message: str, stderr: str | None = None) -> None:
        self.stderr = stderr
        if stderr:
            message = f"{message}\n{stderr.strip()}"
        super().__init__(message)


class RepositoryNotFoundError(GitError):
    """The working directory is not inside a git repository."""


class NoCommitsError(GitError):
    """The repository has no commit history."""


class NoCommitterError(GitError):
    """No git identity is configured, so a tag cannot be created."""

    def __init__(self, stderr: str | None = None) -> None:
        super().__init__(
            "Could not determine Git committer to create tags. "
            "Please set the `user.name` and `user.email` Git config options.",
            stderr=stderr,
        )


# =============================================================================
# Configuration errors
# =============================================================================


class ConfigError(ReleaseEngineError):
    """Base class for configuration problems."""


class ConfigNotFoundError(ConfigError):
    """No configuration file could be located."""


class ConfigValidationError(ConfigError):
    """The configuration file does not match the expected schema."""


class NoPackagesError(ConfigError):
    """There are no packages to operate on."""

    def __init__(self) -> None:
        super().__init__(
            "No packages to operate on. There must be at least one package; "
            "no supported package files were found in this directory."
        )
