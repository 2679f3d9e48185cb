"""Tests for monobump.project and monobump.package."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from conftest import write_package, write_root
from monobump.exceptions import WorkspaceError
from monobump.package import Package
from monobump.project import Project


class TestProject:
    def test_fixed_version(self, workspace: Path) -> None:
        project = Project(workspace)
        assert not project.is_independent()
        assert project.version == "1.0.0"

    def test_independent(self, independent_workspace: Path) -> None:
        assert Project(independent_workspace).is_independent()

    def test_default_version(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text(
            '[tool.uv.workspace]\nmembers = ["packages/*"]\n'
        )
        assert Project(tmp_path).version == "0.0.0"

    def test_missing_manifest(self, tmp_path: Path) -> None:
        with pytest.raises(WorkspaceError):
            Project(tmp_path)

    def test_serialize_config_keeps_formatting(self, workspace: Path) -> None:
        project = Project(workspace)
        project.version = "2.0.0"

        path = asyncio.run(project.serialize_config())

        content = path.read_text()
        assert 'version = "2.0.0"' in content
        assert 'members = ["packages/*"]' in content

    def test_discover_packages(self, workspace: Path) -> None:
        packages = Project(workspace).discover_packages()
        assert [p.name for p in packages] == ["pkg-a", "pkg-b", "pkg-c"]

    def test_no_members(self, tmp_path: Path) -> None:
        write_root(tmp_path)
        with pytest.raises(WorkspaceError, match="No packages found"):
            Project(tmp_path).discover_packages()


class TestPackage:
    def test_reads_manifest(self, tmp_path: Path) -> None:
        pkg = Package(write_package(tmp_path, "My_Pkg", "1.0.0-beta.1"))
        assert pkg.name == "my-pkg"
        assert pkg.version == "1.0.0-beta.1"
        assert pkg.prerelease_id == "beta"
        assert not pkg.private

    def test_unversioned(self, tmp_path: Path) -> None:
        pkg = Package(write_package(tmp_path, "a", None))
        assert pkg.version == ""

    def test_changes_stay_in_memory_until_serialized(self, tmp_path: Path) -> None:
        pkg = Package(write_package(tmp_path, "a", "1.0.0"))
        pkg.version = "1.1.0"
        assert 'version = "1.0.0"' in pkg.manifest_location.read_text()

        asyncio.run(pkg.serialize())

        assert 'version = "1.1.0"' in pkg.manifest_location.read_text()

    def test_refresh_rereads_manifest(self, tmp_path: Path) -> None:
        pkg = Package(write_package(tmp_path, "a", "1.0.0"))
        text = pkg.manifest_location.read_text()
        pkg.manifest_location.write_text(text.replace("1.0.0", "1.0.5"))

        assert pkg.refresh().version == "1.0.5"
