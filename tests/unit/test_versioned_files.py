"""Tests for reading and writing versions in supported files."""

from __future__ import annotations

import json

import pytest

from release_engine.core.version import Version
from release_engine.exceptions import (
    UnsupportedFileError,
    VersionedFileError,
    VersionNotFoundError,
    VersionParseError,
)
from release_engine.project import json_files, lock_files, pubspec, pyproject, toml_files
from release_engine.project.versioned_file import VersionedFile, file_kind, get_version, set_version


class TestPyproject:
    """Tests for pyproject.toml versions."""

    PEP621 = '[project]\nname = "demo"\nversion = "1.2.3"  # keep me\n\n[tool.other]\nversion = "9.9.9"\n'
    POETRY = "[tool.poetry]\nname = 'demo'\nversion = '0.4.0'\n"

    def test_get_pep621(self):
        """The [project] version is read."""
        assert pyproject.get_version(self.PEP621) == Version(1, 2, 3)

    def test_get_poetry(self):
        """The [tool.poetry] version is read."""
        assert pyproject.get_version(self.POETRY) == Version(0, 4, 0)

    def test_set_keeps_formatting(self):
        """Only the version text changes."""
        updated = pyproject.set_version(self.PEP621, Version(2, 0, 0))

        assert updated == self.PEP621.replace('"1.2.3"', '"2.0.0"')

    def test_set_poetry_keeps_quotes(self):
        """Single quotes are kept."""
        assert "version = '0.5.0'" in pyproject.set_version(self.POETRY, Version(0, 5, 0))

    def test_other_tables_ignored(self):
        """Versions outside the supported tables are not used."""
        with pytest.raises(VersionNotFoundError):
            pyproject.get_version('[tool.other]\nversion = "1.0.0"\n')

    def test_invalid_version(self):
        """Versions that are not semantic versions are rejected."""
        with pytest.raises(VersionParseError):
            pyproject.get_version('[project]\nversion = "1.0"\n')


class TestTomlFiles:
    """Tests for Cargo.toml and gleam.toml versions."""

    CARGO = '[package]\nname = "demo"  # the crate\nversion = "0.1.0"\n\n[dependencies]\nserde = "1"\n'

    def test_cargo_round_trip(self):
        """Cargo versions are read and written without touching anything else."""
        assert toml_files.get_version(self.CARGO, toml_files.CARGO) == Version(0, 1, 0)

        updated = toml_files.set_version(self.CARGO, Version(0, 2, 0), toml_files.CARGO)
        assert updated == self.CARGO.replace('"0.1.0"', '"0.2.0"')

    def test_cargo_workspace_version(self):
        """Inherited workspace versions are not plain versions."""
        with pytest.raises(VersionNotFoundError):
            toml_files.get_version('[package]\nversion.workspace = true\n', toml_files.CARGO)

    def test_cargo_without_package(self):
        """Cargo.toml needs a [package] table."""
        with pytest.raises(VersionNotFoundError, match="package"):
            toml_files.get_version('[workspace]\nmembers = []\n', toml_files.CARGO)

    def test_gleam_root_version(self):
        """gleam.toml keeps its version at the top level."""
        content = 'name = "demo"\nversion = "1.0.0"\n'

        assert toml_files.get_version(content, toml_files.GLEAM) == Version(1, 0, 0)
        assert 'version = "1.1.0"' in toml_files.set_version(content, Version(1, 1, 0), toml_files.GLEAM)

    def test_invalid_toml(self):
        """Broken TOML is a versioned file error."""
        with pytest.raises(VersionedFileError, match="Invalid TOML"):
            toml_files.get_version("[package\n", toml_files.CARGO)


class TestJsonFiles:
    """Tests for package.json, deno.json and tauri.conf.json versions."""

    def test_round_trip(self):
        """The version is replaced and key order kept."""
        content = '{\n  "name": "demo",\n  "version": "1.0.0",\n  "private": true\n}\n'

        assert json_files.get_version(content) == Version(1, 0, 0)
        assert json_files.set_version(content, Version(1, 0, 1)) == content.replace("1.0.0", "1.0.1")

    def test_missing_version(self):
        """A manifest without a version is rejected."""
        with pytest.raises(VersionNotFoundError):
            json_files.get_version('{"name": "demo"}', json_files.DENO_JSON)

    def test_not_an_object(self):
        """The top level must be an object."""
        with pytest.raises(VersionedFileError, match="JSON object"):
            json_files.get_version("[]", json_files.TAURI_CONF_JSON)


class TestPubspec:
    """Tests for pubspec.yaml versions."""

    CONTENT = "name: demo\nversion: 1.2.3\nenvironment:\n  sdk: '>=3.0.0 <4.0.0'\n"

    def test_round_trip(self):
        """Only the top-level version line changes."""
        assert pubspec.get_version(self.CONTENT) == Version(1, 2, 3)
        assert pubspec.set_version(self.CONTENT, Version(1, 3, 0)) == self.CONTENT.replace("1.2.3", "1.3.0")

    def test_nested_version_ignored(self):
        """Indented `version:` keys do not count."""
        with pytest.raises(VersionNotFoundError):
            pubspec.get_version("name: demo\ndependencies:\n  version: 1.0.0\n")


class TestDispatch:
    """Tests for choosing the adapter by file name."""

    @pytest.mark.parametrize(
        "path",
        ["pyproject.toml", "crates/a/Cargo.toml", "gleam.toml", "web/package.json", "deno.json",
         "src-tauri/tauri.conf.json", "pubspec.yaml", "go.mod", "Cargo.lock", "web/package-lock.json", "deno.lock"],
    )
    def test_supported(self, path: str):
        """Supported files are recognised anywhere in the tree."""
        assert file_kind(path) == path.rsplit("/", 1)[-1]

    def test_unsupported(self):
        """Other file names are rejected, naming the file."""
        with pytest.raises(UnsupportedFileError, match="setup.py"):
            file_kind("setup.py")

    def test_get_and_set(self):
        """Module-level helpers dispatch on the path."""
        content = '{"version": "1.0.0"}'

        assert get_version("package.json", content) == Version(1, 0, 0)
        assert '"version": "2.0.0"' in set_version("package.json", content, Version(2, 0, 0))

    def test_versioned_file(self):
        """VersionedFile reads and updates its own content."""
        versioned_file = VersionedFile("Cargo.toml", '[package]\nversion = "1.0.0"\n')
        update = versioned_file.set_version(Version(1, 1, 0))

        assert versioned_file.get_version() == Version(1, 0, 0)
        assert not versioned_file.is_go_mod
        assert update.path == "Cargo.toml"
        assert update.content == '[package]\nversion = "1.1.0"\n'
        assert update.tags == []


CARGO_LOCK = """# This file is automatically @generated by Cargo.
version = 4

[[package]]
name = "demo"
version = "0.1.0"
dependencies = [
 "serde",
]

[[package]]
name = "serde"
version = "1.0.200"
"""


class TestCargoLock:
    """Tests for Cargo.lock updates."""

    def test_updates_named_crate(self):
        """Only the entry for the crate changes."""
        updated = lock_files.set_cargo_lock_version(CARGO_LOCK, Version(0, 2, 0), "demo")

        assert updated == CARGO_LOCK.replace('name = "demo"\nversion = "0.1.0"', 'name = "demo"\nversion = "0.2.0"')
        assert 'version = "1.0.200"' in updated

    def test_crate_name_from_cargo_toml(self):
        """Without a dependency, the package's crate name is used."""
        cargo_toml = VersionedFile("Cargo.toml", '[package]\nname = "demo"\nversion = "0.1.0"\n')
        lock = VersionedFile("Cargo.lock", CARGO_LOCK)

        update = lock.set_version(Version(0, 2, 0), crate_name=cargo_toml.crate_name)

        assert cargo_toml.crate_name == "demo"
        assert 'name = "demo"\nversion = "0.2.0"' in update.content

    def test_explicit_dependency(self):
        """A configured dependency wins over the crate name."""
        lock = VersionedFile("Cargo.lock", CARGO_LOCK, dependency="serde")

        update = lock.set_version(Version(1, 1, 0), crate_name="demo")

        assert 'name = "serde"\nversion = "1.1.0"' in update.content
        assert 'name = "demo"\nversion = "0.1.0"' in update.content

    def test_needs_a_crate(self):
        """Without a crate name the lock file cannot be updated."""
        with pytest.raises(VersionedFileError, match="Cannot tell which crate"):
            VersionedFile("crates/Cargo.lock", CARGO_LOCK).set_version(Version(0, 2, 0))

    def test_missing_package_array(self):
        """A lock file without [[package]] entries is rejected, naming the file."""
        with pytest.raises(VersionedFileError, match="crates/Cargo.lock"):
            lock_files.set_cargo_lock_version("version = 4\n", Version(1, 0, 0), "demo", "crates/Cargo.lock")

    def test_no_version_of_its_own(self):
        """Lock files never declare the package version."""
        lock = VersionedFile("Cargo.lock", CARGO_LOCK)

        assert lock.is_lock_file
        with pytest.raises(VersionNotFoundError):
            lock.get_version()

    def test_dependency_only_for_lock_files(self):
        """Other files cannot name a dependency."""
        with pytest.raises(VersionedFileError, match="Only lock files"):
            VersionedFile("Cargo.toml", '[package]\nversion = "1.0.0"\n', dependency="demo")


class TestPackageLockJson:
    """Tests for package-lock.json updates."""

    CONTENT = json.dumps(
        {
            "name": "web",
            "version": "1.0.0",
            "lockfileVersion": 3,
            "packages": {
                "": {"name": "web", "version": "1.0.0", "dependencies": {"shared": "2.0.0"}},
                "node_modules/shared": {"name": "shared", "version": "2.0.0"},
            },
        },
        indent=2,
    ) + "\n"

    def test_root_version(self):
        """Without a dependency, the top level and the root package are updated."""
        data = json.loads(lock_files.set_package_lock_version(self.CONTENT, Version(1, 1, 0)))

        assert data["version"] == "1.1.0"
        assert data["packages"][""]["version"] == "1.1.0"
        assert data["packages"]["node_modules/shared"]["version"] == "2.0.0"

    def test_dependency(self):
        """With a dependency, its package entry and every reference to it are updated."""
        updated = lock_files.set_package_lock_version(self.CONTENT, Version(2, 1, 0), "shared")
        data = json.loads(updated)

        assert data["version"] == "1.0.0"
        assert data["packages"]["node_modules/shared"]["version"] == "2.1.0"
        assert data["packages"][""]["dependencies"] == {"shared": "2.1.0"}
        assert updated.endswith("}\n")

    def test_invalid_json_names_path(self):
        """Broken JSON is reported against the configured path."""
        with pytest.raises(VersionedFileError, match="web/package-lock.json"):
            VersionedFile("web/package-lock.json", "{").set_version(Version(1, 0, 0))


class TestDenoLock:
    """Tests for deno.lock updates."""

    CONTENT = json.dumps(
        {
            "version": "5",
            "specifiers": {"jsr:@scope/shared@^1.0.0": "1.0.0", "jsr:@std/assert@1": "1.0.13"},
            "jsr": {
                "@scope/shared@1.0.0": {"integrity": "abc"},
                "@std/assert@1.0.13": {"integrity": "def"},
            },
        },
        indent=2,
    ) + "\n"

    def test_dependency(self):
        """Specifiers and registry keys of the dependency follow the new version."""
        updated = lock_files.set_deno_lock_version(self.CONTENT, Version(1, 1, 0), "@scope/shared")
        data = json.loads(updated)

        assert data["specifiers"]["jsr:@scope/shared@^1.0.0"] == "1.1.0"
        assert data["specifiers"]["jsr:@std/assert@1"] == "1.0.13"
        assert list(data["jsr"]) == ["@scope/shared@1.1.0", "@std/assert@1.0.13"]

    def test_without_dependency(self):
        """Nothing changes when no dependency is named."""
        assert lock_files.set_deno_lock_version(self.CONTENT, Version(1, 1, 0)) == self.CONTENT

    def test_old_lock_version(self):
        """Only version 5 lock files are supported."""
        with pytest.raises(VersionedFileError, match="only version 5"):
            lock_files.set_deno_lock_version('{"version": "3"}', Version(1, 0, 0), "@scope/shared")


class TestErrorsNamePath:
    """Errors name the configured path, not just the file name."""

    @pytest.mark.parametrize(
        ("path", "content"),
        [
            ("crates/a/Cargo.toml", "[package\n"),
            ("crates/a/Cargo.toml", "[workspace]\n"),
            ("api/pyproject.toml", "[project]\nname = 'api'\n"),
            ("web/package.json", '{"name": "web"}'),
            ("app/pubspec.yaml", "name: app\n"),
            ("game/gleam.toml", 'name = "game"\n'),
        ],
    )
    def test_read_errors(self, path: str, content: str):
        """Unreadable or missing versions mention the full path."""
        with pytest.raises(VersionedFileError, match=path):
            VersionedFile(path, content).get_version()

    def test_invalid_version_names_path(self):
        """A malformed version in a file is reported against that file."""
        versioned_file = VersionedFile("api/pyproject.toml", '[project]\nversion = "1.0"\n')

        with pytest.raises(VersionedFileError, match="api/pyproject.toml") as excinfo:
            versioned_file.get_version()

        assert isinstance(excinfo.value.__cause__, VersionParseError)
        assert excinfo.value.path == "api/pyproject.toml"

    def test_write_errors(self):
        """Writing into a file without a version names the full path."""
        with pytest.raises(VersionNotFoundError, match="tools/pubspec.yaml"):
            VersionedFile("tools/pubspec.yaml", "name: tools\n").set_version(Version(1, 0, 0))
