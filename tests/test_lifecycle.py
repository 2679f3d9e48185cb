"""Tests for monobump.lifecycle."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from conftest import write_package
from monobump.exceptions import LifecycleError
from monobump.lifecycle import (
    LIFECYCLE_ENV,
    LifecycleRunner,
    RootLifecycle,
    is_nested_lifecycle,
)
from monobump.package import Package

SCRIPTS = """
[tool.monobump.scripts]
preversion = "echo $MONOBUMP_LIFECYCLE_EVENT $MONOBUMP_PACKAGE_NAME > pre.txt"
version = "exit 3"
"""


@pytest.fixture
def scripted_package(tmp_path: Path) -> Package:
    return Package(write_package(tmp_path, "pkg-a", "1.0.0", extra=SCRIPTS))


class TestLifecycleRunner:
    def test_runs_script_in_package_dir(self, scripted_package: Package) -> None:
        runner = LifecycleRunner(env={"PATH": "/usr/bin:/bin"})
        asyncio.run(runner.run(scripted_package, "preversion"))

        output = (scripted_package.location / "pre.txt").read_text()
        assert output.strip() == "preversion pkg-a"

    def test_missing_stage_is_noop(self, scripted_package: Package) -> None:
        asyncio.run(LifecycleRunner().run(scripted_package, "postversion"))
        assert not (scripted_package.location / "pre.txt").exists()

    def test_failure_raises_lifecycle_error(self, scripted_package: Package) -> None:
        with pytest.raises(LifecycleError) as excinfo:
            asyncio.run(LifecycleRunner().run(scripted_package, "version"))

        assert excinfo.value.package == "pkg-a"
        assert excinfo.value.stage == "version"
        assert excinfo.value.returncode == 3
        assert "pkg-a: version script failed" in str(excinfo.value)


class TestNestedLifecycle:
    @pytest.mark.parametrize("stage", ["preversion", "version", "postversion"])
    def test_version_stages_are_nested(self, stage: str) -> None:
        assert is_nested_lifecycle({LIFECYCLE_ENV: stage})

    @pytest.mark.parametrize("value", ["", "publish", "preversionx"])
    def test_other_values_are_not(self, value: str) -> None:
        assert not is_nested_lifecycle({LIFECYCLE_ENV: value})

    def test_unset(self) -> None:
        assert not is_nested_lifecycle({})


class RecordingRunner:
    def __init__(self) -> None:
        self.calls: list[str] = []

    async def run(self, target, stage: str) -> None:
        self.calls.append(stage)


class TestRootLifecycle:
    def test_runs_root_stage(self, scripted_package: Package) -> None:
        runner = RecordingRunner()
        root = RootLifecycle(runner, scripted_package, env={})

        asyncio.run(root("preversion"))

        assert runner.calls == ["preversion"]

    def test_skipped_when_nested(
        self, scripted_package: Package, capsys: pytest.CaptureFixture[str]
    ) -> None:
        runner = RecordingRunner()
        root = RootLifecycle(runner, scripted_package, env={LIFECYCLE_ENV: "version"})

        asyncio.run(root("version"))

        assert runner.calls == []
        assert "Skipping root 'version'" in capsys.readouterr().err
