"""Repository checks that must pass before any version is chosen.

Every check fails fast with its own error kind, so a failed run is
guaranteed to have touched nothing.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path, PurePosixPath

from . import vcs
from .config import VersionConfig
from .exceptions import (
    BehindUpstreamError,
    BranchNotAllowedError,
    DetachedHeadError,
    DirtyWorkingTreeError,
    MissingVersionError,
    NoCommitsError,
    NoRemoteBranchError,
)
from .package import Package
from .shell import info, warn


def check_repository(config: VersionConfig, cwd: Path | None = None) -> str | None:
    """Validate git state for a version run in the repository at ``cwd``.

    Returns:
        The current branch name, or None when the run should stop without an
        error (a CI run whose branch is behind its upstream).

    Raises:
        NoCommitsError: The repository has no commits.
        DetachedHeadError: HEAD is not on a branch.
        NoRemoteBranchError: Pushing is enabled but the branch is not on the remote.
        BranchNotAllowedError: The branch matches none of ``allow_branch``.
        BehindUpstreamError: The branch is behind its upstream (interactive runs).
    """
    if not vcs.is_anything_committed(cwd):
        raise NoCommitsError(
            "No commits in this repository. "
            "Please commit something before using version."
        )

    branch = vcs.get_current_branch(cwd)
    if branch == "HEAD":
        raise DetachedHeadError(
            "Detached git HEAD, please checkout a branch to choose versions."
        )

    if config.push_to_remote and not vcs.remote_branch_exists(
        config.git_remote, branch, cwd
    ):
        raise NoRemoteBranchError(
            f"Branch '{branch}' doesn't exist in remote '{config.git_remote}'.\n"
            "If this is a new branch, please make sure you push it to the remote first."
        )

    if config.allow_branch and not branch_allowed(branch, config.allow_branch):
        raise BranchNotAllowedError(
            f"Branch '{branch}' is restricted from versioning "
            "due to allow_branch config.\n"
            "Please consider the reasons for this restriction "
            "before overriding the option."
        )

    if (
        config.commit_and_tag
        and config.push_to_remote
        and vcs.is_behind_upstream(config.git_remote, branch, cwd)
    ):
        message = (
            f"Local branch '{branch}' is behind remote upstream "
            f"{config.git_remote}/{branch}"
        )
        if not config.ci:
            raise BehindUpstreamError(
                f"{message}\n"
                f"Please merge remote changes into '{branch}' with 'git pull'"
            )
        # CI execution should not error, but warn & exit
        warn(f"{message}, exiting")
        return None

    return branch


def branch_allowed(branch: str, patterns: Iterable[str]) -> bool:
    """Whether the branch matches at least one glob ("release/*", "main").

    Globs apply per path segment: "release/*" matches "release/1.x" but not
    "release/1.x/hotfix", and "*" only matches branches without a slash.
    """
    path = PurePosixPath(branch)
    for pattern in patterns:
        if not pattern:
            continue
        glob = PurePosixPath(pattern)
        if len(glob.parts) == len(path.parts) and path.match(pattern):
            return True
    return False


def check_working_tree(config: VersionConfig, cwd: Path | None = None) -> None:
    """Refuse to run with uncommitted changes when a commit will be made.

    Amending a commit probably means the working tree is dirty, so the check
    is skipped in that case (and whenever no commit is made).

    Raises:
        DirtyWorkingTreeError: If ``git status`` reports changes.
    """
    if not config.commit_and_tag or config.amend:
        warn("Skipping working tree validation, proceed at your own risk")
        return

    changes = vcs.working_tree_changes(cwd)
    if changes:
        raise DirtyWorkingTreeError(
            "Working tree has uncommitted changes, please commit or remove "
            "the following changes before continuing:\n" + "\n".join(changes)
        )


def filter_versioned(updates: Iterable[Package]) -> list[Package]:
    """Drop unversioned private packages; unversioned public ones are fatal.

    Raises:
        MissingVersionError: A non-private package has no version.
    """
    versioned: list[Package] = []
    for pkg in updates:
        if pkg.version:
            versioned.append(pkg)
        elif pkg.private:
            info(f"Skipping unversioned private package {pkg.name}")
        else:
            raise MissingVersionError(
                f"A version field is required in {pkg.name}'s pyproject.toml file.\n"
                "If you wish to keep the package unversioned, it must be made private."
            )
    return versioned
