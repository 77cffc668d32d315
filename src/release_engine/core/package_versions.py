"""The set of current versions for one package, derived from git tags.

Tracking a single "current version" is not enough to bump correctly. A
package may have:
- The latest stable version (if any)
- The last prerelease of each label following that stable version

So tags 1.2.3, 1.2.4-rc.1, 1.3.0-beta.0 and 2.0.0-alpha.4 all matter at once.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from release_engine.core.rules import PreRule, ReleaseRule, Rule, StableRule
from release_engine.core.version import Prerelease, StableVersion, Version, try_parse_version
from release_engine.exceptions import PreReleaseNotFoundError

logger = logging.getLogger(__name__)


class PrereleaseMap:
    """Latest prerelease per label for one stable component. Never empty."""

    def __init__(self, first: Prerelease) -> None:
        self._by_label: dict[str, Prerelease] = {first.label: first}

    def get(self, label: str) -> Prerelease | None:
        return self._by_label.get(label)

    def insert(self, prerelease: Prerelease) -> None:
        self._by_label[prerelease.label] = prerelease

    def last(self) -> Prerelease:
        """The prerelease with the greatest label."""
        return self._by_label[max(self._by_label)]

    def __iter__(self):
        return iter(sorted(self._by_label.values()))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrereleaseMap):
            return NotImplemented
        return self._by_label == other._by_label

    def __repr__(self) -> str:
        return f"PrereleaseMap({sorted(self._by_label.values())!r})"


class PackageVersions:
    """The current stable version and the relevant prereleases of a package."""

    def __init__(self, stable: StableVersion | None = None) -> None:
        self.stable = stable
        self.prereleases: dict[StableVersion, PrereleaseMap] = {}

    @classmethod
    def from_version(cls, version: Version) -> PackageVersions:
        versions = cls()
        versions.update_version(version)
        return versions

    @classmethod
    def from_tags(cls, prefix: str, tags: Iterable[str]) -> PackageVersions:
        """Collect current versions from tags, which must be ordered newest first.

        Only tags starting with `prefix` whose remainder parses as a version
        are considered. Scanning stops at the first stable version, since
        only prereleases newer than it are relevant.
        """
        versions = cls()
        found_any = False
        for tag in tags:
            if not tag.startswith(prefix):
                continue
            version = try_parse_version(tag[len(prefix) :])
            if version is None:
                logger.debug("Ignoring tag %s, it is not a valid version", tag)
                continue
            found_any = True
            if version.is_prerelease:
                versions.update_version(version)
                continue
            versions.stable = version.stable_component
            break
        if not found_any:
            logger.debug("No tags found starting with %s", prefix)
        return versions

    @property
    def current_prerelease(self) -> Version | None:
        """The newest tracked prerelease, if any."""
        if not self.prereleases:
            return None
        stable = max(self.prereleases)
        return Version.from_stable(stable, self.prereleases[stable].last())

    def latest(self) -> Version | None:
        """The most recent version: newest prerelease, else the stable version."""
        prerelease = self.current_prerelease
        if prerelease is not None:
            return prerelease
        if self.stable is not None:
            return Version.from_stable(self.stable)
        return None

    def update_version(self, version: Version) -> None:
        """Record `version` if it is newer than the equivalent recorded one.

        A newer stable version replaces `stable` and drops all prereleases.
        A newer prerelease replaces the one with the same stable component
        and label.
        """
        if version.pre is None:
            new = version.stable_component
            if self.stable is not None and self.stable >= new:
                return
            self.stable = new
            self.prereleases.clear()
            return

        stable_component = version.stable_component
        labels = self.prereleases.get(stable_component)
        if labels is None:
            self.prereleases[stable_component] = PrereleaseMap(version.pre)
            return
        recorded = labels.get(version.pre.label)
        if recorded is not None and recorded >= version.pre:
            return
        labels.insert(version.pre)

    def bump(self, rule: Rule) -> Version:
        """Apply `rule`, record the result and return the new version.

        Raises:
            PreReleaseNotFoundError: For a ReleaseRule when there is no prerelease
        """
        if isinstance(rule, ReleaseRule):
            if not self.prereleases:
                raise PreReleaseNotFoundError()
            version = Version.from_stable(max(self.prereleases))
            logger.debug("Promoting prerelease to %s", version)
        elif isinstance(rule, PreRule):
            version = self._bump_pre(rule)
        elif self.stable is not None:
            version = Version.from_stable(bump_stable(self.stable, rule))
        else:
            # No stable version yet: the newest prerelease's stable component
            # (assumed set on purpose), else 0.0.0 as the first version
            version = Version.from_stable(
                max(self.prereleases) if self.prereleases else StableVersion(0, 0, 0)
            )
            logger.debug("No stable version found, using %s", version)
        self.update_version(version)
        return version

    def _bump_pre(self, rule: PreRule) -> Version:
        logger.debug("Pre-release label %s selected. Determining next stable version...", rule.label)
        if self.stable is not None:
            stable_component = bump_stable(self.stable, rule.stable_rule)
        elif self.prereleases:
            stable_component = max(self.prereleases)
        else:
            stable_component = StableVersion(0, 0, 0)

        number = 0
        labels = self.prereleases.get(stable_component)
        existing = labels.get(rule.label) if labels is not None else None
        if existing is not None:
            logger.debug("Found existing pre-release version %s", existing)
            number = existing.number + 1
        else:
            logger.debug("No existing pre-release version found; creating %s.0", rule.label)

        self.prereleases.clear()
        return Version.from_stable(stable_component, Prerelease(rule.label, number))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageVersions):
            return NotImplemented
        return self.stable == other.stable and self.prereleases == other.prereleases

    def __repr__(self) -> str:
        return f"PackageVersions(stable={self.stable!s}, prereleases={self.prereleases!r})"


def bump_stable(version: StableVersion, rule: StableRule) -> StableVersion:
    """Increment one component of `version`, zeroing the lower ones.

    Versions starting with 0 get no special treatment.
    """
    if rule is StableRule.MAJOR:
        new = version.increment_major()
    elif rule is StableRule.MINOR:
        new = version.increment_minor()
    else:
        new = version.increment_patch()
    logger.debug("Using %s rule to bump from %s to %s", rule, version, new)
    return new
