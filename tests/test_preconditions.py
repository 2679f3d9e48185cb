"""Tests for monobump.preconditions."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
import tomlkit

from monobump.config import VersionConfig
from monobump.exceptions import (
    BehindUpstreamError,
    BranchNotAllowedError,
    DetachedHeadError,
    DirtyWorkingTreeError,
    MissingVersionError,
    NoCommitsError,
    NoRemoteBranchError,
)
from monobump.package import Package
from monobump.preconditions import (
    branch_allowed,
    check_repository,
    check_working_tree,
    filter_versioned,
)


@pytest.fixture
def git_state():
    """Patch every repository query with a healthy default state."""
    with (
        patch("monobump.preconditions.vcs.is_anything_committed", return_value=True),
        patch("monobump.preconditions.vcs.get_current_branch", return_value="main"),
        patch(
            "monobump.preconditions.vcs.remote_branch_exists", return_value=True
        ) as remote,
        patch(
            "monobump.preconditions.vcs.is_behind_upstream", return_value=False
        ) as behind,
        patch(
            "monobump.preconditions.vcs.working_tree_changes", return_value=[]
        ) as changes,
    ):
        yield {"remote": remote, "behind": behind, "changes": changes}


class TestCheckRepository:
    def test_healthy_returns_branch(self, git_state) -> None:
        assert check_repository(VersionConfig(ci=False)) == "main"

    def test_no_commits(self, git_state) -> None:
        with patch(
            "monobump.preconditions.vcs.is_anything_committed", return_value=False
        ):
            with pytest.raises(NoCommitsError) as excinfo:
                check_repository(VersionConfig())
        assert excinfo.value.code == "ENOCOMMIT"

    def test_detached_head(self, git_state) -> None:
        with patch("monobump.preconditions.vcs.get_current_branch", return_value="HEAD"):
            with pytest.raises(DetachedHeadError, match="ENOGIT"):
                check_repository(VersionConfig())

    def test_missing_remote_branch(self, git_state) -> None:
        git_state["remote"].return_value = False
        with pytest.raises(NoRemoteBranchError, match="ENOREMOTEBRANCH"):
            check_repository(VersionConfig())

    def test_remote_not_checked_without_push(self, git_state) -> None:
        git_state["remote"].return_value = False
        assert check_repository(VersionConfig(push=False)) == "main"
        git_state["remote"].assert_not_called()

    def test_branch_not_allowed(self, git_state) -> None:
        config = VersionConfig(allow_branch=["main"])
        with patch(
            "monobump.preconditions.vcs.get_current_branch", return_value="feature/x"
        ):
            with pytest.raises(BranchNotAllowedError) as excinfo:
                check_repository(config)
        assert excinfo.value.code == "ENOTALLOWED"

    def test_behind_upstream_interactive(self, git_state) -> None:
        git_state["behind"].return_value = True
        with pytest.raises(BehindUpstreamError, match="EBEHIND"):
            check_repository(VersionConfig(ci=False))

    def test_behind_upstream_in_ci_warns(
        self, git_state, capsys: pytest.CaptureFixture[str]
    ) -> None:
        git_state["behind"].return_value = True
        assert check_repository(VersionConfig(ci=True)) is None
        assert "behind remote upstream" in capsys.readouterr().err

    def test_upstream_not_checked_when_amending(self, git_state) -> None:
        check_repository(VersionConfig(amend=True))
        git_state["behind"].assert_not_called()

    def test_queries_run_in_workspace(self, git_state, tmp_path: Path) -> None:
        assert check_repository(VersionConfig(ci=False), tmp_path) == "main"
        git_state["remote"].assert_called_once_with("origin", "main", tmp_path)
        git_state["behind"].assert_called_once_with("origin", "main", tmp_path)


class TestBranchAllowed:
    def test_exact(self) -> None:
        assert branch_allowed("main", ["main"])
        assert not branch_allowed("feature/x", ["main"])

    def test_glob(self) -> None:
        assert branch_allowed("release/1.x", ["main", "release/*"])

    def test_star_stays_within_a_segment(self) -> None:
        assert not branch_allowed("release/1.x/hotfix", ["release/*"])
        assert not branch_allowed("feature/x", ["*"])
        assert branch_allowed("feature", ["*"])

    def test_glob_in_every_segment(self) -> None:
        assert branch_allowed("team-a/release-2", ["team-*/release-*"])
        assert not branch_allowed("team-a/feature", ["team-*/release-*"])


class TestCheckWorkingTree:
    def test_clean(self, git_state) -> None:
        check_working_tree(VersionConfig())

    def test_runs_in_workspace(self, git_state, tmp_path: Path) -> None:
        check_working_tree(VersionConfig(), tmp_path)
        git_state["changes"].assert_called_once_with(tmp_path)

    def test_dirty(self, git_state) -> None:
        git_state["changes"].return_value = [" M packages/a/pyproject.toml"]
        with pytest.raises(DirtyWorkingTreeError, match="packages/a/pyproject.toml"):
            check_working_tree(VersionConfig())

    def test_skipped_when_amending(
        self, git_state, capsys: pytest.CaptureFixture[str]
    ) -> None:
        git_state["changes"].return_value = [" M file"]
        check_working_tree(VersionConfig(amend=True))
        git_state["changes"].assert_not_called()
        assert "Skipping working tree validation" in capsys.readouterr().err


def package(name: str, version: str | None, private: bool = False) -> Package:
    lines = ["[project]", f'name = "{name}"']
    if version is not None:
        lines.append(f'version = "{version}"')
    if private:
        lines.append('classifiers = ["Private :: Do Not Upload"]')
    return Package(Path("/ws") / name, doc=tomlkit.parse("\n".join(lines)))


class TestFilterVersioned:
    def test_keeps_versioned(self) -> None:
        pkgs = [package("a", "1.0.0"), package("b", "0.1.0")]
        assert [p.name for p in filter_versioned(pkgs)] == ["a", "b"]

    def test_drops_unversioned_private(self) -> None:
        pkgs = [package("a", "1.0.0"), package("tools", None, private=True)]
        assert [p.name for p in filter_versioned(pkgs)] == ["a"]

    def test_unversioned_public_raises(self) -> None:
        with pytest.raises(MissingVersionError, match="ENOVERSION"):
            filter_versioned([package("a", None)])
