"""Conventional commit recommendations and changelog generation.

Commit messages are read from git history since a package's last release
tag and parsed per https://www.conventionalcommits.org:

    feat(api)!: drop the v1 endpoints

    BREAKING CHANGE: clients must migrate to v2

A breaking change recommends a major bump, ``feat`` a minor bump and
anything else a patch bump. Changelogs are rendered from the same commits,
or by git-cliff when a ``changelog_preset`` (git-cliff config file) is set.
"""

from __future__ import annotations

import asyncio
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

from pydantic import BaseModel

from . import vcs
from .exceptions import ChangelogError, CommandError
from .package import Package
from .shell import run_async
from .versions import inc, parse_version

Mode = Literal["independent", "fixed", "root"]

CHANGELOG_FILE = "CHANGELOG.md"
CHANGELOG_HEADER = "# Changelog"

_HEADER_RE = re.compile(
    r"^(?P<type>\w+)(?:\((?P<scope>[^)]*)\))?(?P<bang>!)?:\s*(?P<description>.+)$"
)
_BREAKING_RE = re.compile(r"^BREAKING[ -]CHANGE:", re.MULTILINE)

TYPE_LABELS = {
    "feat": "Features",
    "fix": "Bug Fixes",
    "perf": "Performance Improvements",
    "revert": "Reverts",
    "docs": "Documentation",
    "refactor": "Code Refactoring",
}


class ParsedCommit(BaseModel):
    """A commit message split into its conventional parts."""

    commit_type: str | None = None
    scope: str | None = None
    description: str
    is_breaking: bool = False

    @property
    def is_conventional(self) -> bool:
        return self.commit_type is not None

    @classmethod
    def parse(cls, message: str) -> ParsedCommit:
        subject, _, body = message.partition("\n")
        match = _HEADER_RE.match(subject.strip())
        if not match:
            return cls(description=subject.strip())
        return cls(
            commit_type=match["type"].lower(),
            scope=match["scope"] or None,
            description=match["description"].strip(),
            is_breaking=bool(match["bang"]) or bool(_BREAKING_RE.search(body)),
        )


def parse_commits(messages: list[str]) -> list[ParsedCommit]:
    return [ParsedCommit.parse(m) for m in messages]


def calculate_bump(commits: list[ParsedCommit]) -> Literal["major", "minor", "patch"]:
    """Recommended release type for a set of commits.

    Without any feat or breaking commit the recommendation is a patch, so a
    changed package always gets a new version.
    """
    if any(c.is_breaking for c in commits):
        return "major"
    if any(c.commit_type == "feat" for c in commits):
        return "minor"
    return "patch"


def tag_pattern(pkg_name: str, mode: Mode, tag_prefix: str) -> str:
    if mode == "independent":
        return f"{pkg_name}@*"
    return f"{tag_prefix}*"


def release_tag(pkg_name: str, version: str, mode: Mode, tag_prefix: str) -> str:
    if mode == "independent":
        return f"{pkg_name}@{version}"
    return f"{tag_prefix}{version}"


async def recommend_version(
    pkg: Package, mode: Mode, *, tag_prefix: str = "v"
) -> str:
    """Next version for a package based on commits since its last release.

    Before 1.0.0 a breaking change only bumps the minor version.
    """
    cwd = Path(pkg.location)
    last_tag = await asyncio.to_thread(
        vcs.find_last_tag, tag_pattern(pkg.name, mode, tag_prefix), cwd
    )
    messages = await asyncio.to_thread(vcs.commit_messages, last_tag, cwd, cwd)
    release_type = calculate_bump(parse_commits(messages))

    if release_type == "major" and parse_version(pkg.version).major == 0:
        release_type = "minor"

    return inc(pkg.version, release_type)


def render_changelog_section(version_tag: str, commits: list[ParsedCommit]) -> str:
    """Markdown section for one release, grouped by commit type."""
    lines = [f"## {version_tag} ({datetime.now(UTC).strftime('%Y-%m-%d')})", ""]

    breaking = [c for c in commits if c.is_breaking]
    if breaking:
        lines.extend(["### ⚠ BREAKING CHANGES", ""])
        lines.extend(_format_entry(c) for c in breaking)
        lines.append("")

    for commit_type, label in TYPE_LABELS.items():
        entries = [
            c for c in commits if c.commit_type == commit_type and not c.is_breaking
        ]
        if entries:
            lines.extend([f"### {label}", ""])
            lines.extend(_format_entry(c) for c in entries)
            lines.append("")

    if len(lines) == 2:
        lines.extend(["**Note:** Version bump only", ""])

    return "\n".join(lines)


def _format_entry(commit: ParsedCommit) -> str:
    scope = f"**{commit.scope}:** " if commit.scope else ""
    return f"* {scope}{commit.description}"


def prepend_changelog(path: Path, section: str) -> None:
    """Insert a release section below the changelog header."""
    if path.exists():
        existing = path.read_text()
        body = existing.removeprefix(CHANGELOG_HEADER).lstrip("\n")
    else:
        body = ""
    content = f"{CHANGELOG_HEADER}\n\n{section.rstrip()}\n"
    if body:
        content += f"\n{body}"
    path.write_text(content)


async def update_changelog(
    target: Package,
    mode: Mode,
    *,
    root_path: Path,
    tag_prefix: str = "v",
    changelog_preset: str | None = None,
    version: str | None = None,
) -> Path:
    """Write the changelog for a released package (or the root) and return its path.

    Args:
        target: The package, or the project for mode "root".
        mode: "independent", "fixed" or "root".
        root_path: Repository root.
        tag_prefix: Tag prefix used in fixed mode.
        changelog_preset: Path to a git-cliff config; use git-cliff when set.
        version: Version to write; defaults to the target's version.
    """
    version = version or str(target.version)
    changelog_path = Path(target.location) / CHANGELOG_FILE
    path_filter = None if mode == "root" else Path(target.location)
    header_tag = release_tag(target.name, version, mode, tag_prefix)

    if changelog_preset:
        section = await _run_git_cliff(
            root_path, changelog_preset, header_tag, path_filter
        )
    else:
        cwd = Path(target.location)
        last_tag = await asyncio.to_thread(
            vcs.find_last_tag, tag_pattern(target.name, mode, tag_prefix), cwd
        )
        messages = await asyncio.to_thread(
            vcs.commit_messages, last_tag, path_filter, cwd
        )
        section = render_changelog_section(header_tag, parse_commits(messages))

    await asyncio.to_thread(prepend_changelog, changelog_path, section)
    return changelog_path


async def _run_git_cliff(
    root_path: Path, config: str, tag: str, path_filter: Path | None
) -> str:
    # git-cliff wants the top level, which may sit above the workspace root
    repo = await asyncio.to_thread(vcs.repository_root, root_path)
    args = [
        "git-cliff",
        "--repository",
        str(repo),
        "--config",
        config,
        "--tag",
        tag,
        "--unreleased",
        "--strip",
        "header",
    ]
    if path_filter is not None:
        rel = path_filter.resolve().relative_to(repo.resolve())
        args.extend(["--include-path", f"{rel.as_posix()}/**"])

    try:
        return await run_async(*args, cwd=str(root_path))
    except FileNotFoundError as exc:
        raise ChangelogError(
            "git-cliff not found. Install it with: pip install git-cliff"
        ) from exc
    except CommandError as exc:
        raise ChangelogError(f"git-cliff failed: {exc}") from exc
