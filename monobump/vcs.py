"""Git primitives used by the version command.

Repository state queries are synchronous: they run before anything is
mutated. Staging, committing, tagging and pushing are async because they
happen inside the pipeline. Every function takes the directory to run git
in, so a workspace can be versioned from outside its repository.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from .shell import git, git_async, info


def is_anything_committed(cwd: Path | None = None) -> bool:
    """Whether HEAD points at a commit at all."""
    count = git("rev-list", "--count", "--all", check=False, cwd=cwd)
    return count.isdigit() and int(count) > 0


def get_current_branch(cwd: Path | None = None) -> str:
    """Current branch name, or "HEAD" when detached."""
    return git("rev-parse", "--abbrev-ref", "HEAD", cwd=cwd)


def repository_root(cwd: Path | None = None) -> Path:
    """Top level of the working tree containing ``cwd``."""
    return Path(git("rev-parse", "--show-toplevel", cwd=cwd))


def remote_branch_exists(remote: str, branch: str, cwd: Path | None = None) -> bool:
    return bool(git("ls-remote", "--heads", remote, branch, check=False, cwd=cwd))


def is_behind_upstream(remote: str, branch: str, cwd: Path | None = None) -> bool:
    """Fetch the remote and compare the local branch with its upstream."""
    git("fetch", remote, branch, cwd=cwd)
    counts = git(
        "rev-list",
        "--left-right",
        "--count",
        f"{remote}/{branch}...{branch}",
        cwd=cwd,
    )
    behind, _ahead = (int(n) for n in counts.split())
    return behind > 0


def working_tree_changes(cwd: Path | None = None) -> list[str]:
    """Lines of ``git status --porcelain``; empty when the tree is clean."""
    status = git("status", "--porcelain", check=False, cwd=cwd)
    return status.splitlines()


async def git_add(files: Iterable[Path], cwd: Path | None = None) -> None:
    paths = sorted(str(f) for f in files)
    if not paths:
        return
    await git_async("add", "--", *paths, cwd=str(cwd) if cwd else None)


async def git_commit(
    message: str,
    *,
    amend: bool = False,
    commit_hooks: bool = True,
    sign: bool = False,
    cwd: Path | None = None,
) -> None:
    args = ["commit"]
    if amend:
        args.extend(["--amend", "--no-edit"])
    else:
        args.extend(["-m", message])
    if not commit_hooks:
        args.append("--no-verify")
    if sign:
        args.append("--gpg-sign")
    info(f"git {' '.join(args[:2])}")
    await git_async(*args, cwd=str(cwd) if cwd else None)


async def git_tag(tag: str, *, sign: bool = False, cwd: Path | None = None) -> None:
    args = ["tag", tag, "-m", tag]
    if sign:
        args.append("--sign")
    info(f"git tag {tag}")
    await git_async(*args, cwd=str(cwd) if cwd else None)


async def git_push(remote: str, branch: str, cwd: Path | None = None) -> None:
    info(f"git push {remote} {branch}")
    await git_async(
        "push",
        "--follow-tags",
        "--no-verify",
        remote,
        branch,
        cwd=str(cwd) if cwd else None,
    )


def find_last_tag(pattern: str, cwd: Path | None = None) -> str | None:
    """Most recent tag matching a glob ("pkg-a@*", "v*"), highest version first."""
    tags = git("tag", "--list", pattern, "--sort=-v:refname", check=False, cwd=cwd)
    return tags.splitlines()[0] if tags else None


def changed_files_since(ref: str, cwd: Path | None = None) -> set[str]:
    """Files changed between ``ref`` and HEAD, relative to ``cwd``.

    Changes outside ``cwd`` are not listed.
    """
    output = git("diff", "--name-only", "--relative", ref, "HEAD", cwd=cwd)
    return set(output.splitlines())


def commit_messages(
    since: str | None, path: Path | None = None, cwd: Path | None = None
) -> list[str]:
    """Full messages of commits after ``since`` (all history when None).

    Args:
        since: Tag or ref to start after.
        path: Only include commits touching this path.
        cwd: Directory to run git in.
    """
    rev_range = f"{since}..HEAD" if since else "HEAD"
    args = ["log", "--format=%B%x1e", rev_range]
    if path is not None:
        args.extend(["--", str(path)])
    output = git(*args, check=False, cwd=cwd)
    return [m.strip() for m in output.split("\x1e") if m.strip()]
