"""Detecting which packages changed since their last release.

A package needs a new version if:
1. force_all is set
2. It has never been released (no matching tag)
3. Any file in its directory changed since its last release tag
4. Any of its workspace dependencies needs a new version (transitively)

Release tags are ``<name>@<version>`` in independent mode and
``<prefix><version>`` in fixed mode.
"""

from __future__ import annotations

from pathlib import Path

from .graph import PackageGraph
from .package import Package
from .shell import info, step
from .vcs import changed_files_since, find_last_tag


def find_last_tags(
    graph: PackageGraph,
    *,
    independent: bool,
    tag_prefix: str = "v",
    cwd: Path | None = None,
) -> dict[str, str | None]:
    """Find the most recent release tag for each package.

    Returns:
        Map of package name to its last tag, or None if no tag exists.
    """
    step("Finding last release tags")

    last_tags: dict[str, str | None] = {}
    fixed_tag: str | None = None
    if not independent:
        fixed_tag = find_last_tag(f"{tag_prefix}*", cwd)

    for name in graph:
        tag = find_last_tag(f"{name}@*", cwd) if independent else fixed_tag
        last_tags[name] = tag
        info(f"{name}: {tag or '<none>'}")

    return last_tags


def collect_updates(
    graph: PackageGraph,
    root: Path,
    *,
    independent: bool,
    tag_prefix: str = "v",
    force_all: bool = False,
) -> list[Package]:
    """Determine which packages need a new version.

    Args:
        graph: The workspace package graph.
        root: Workspace root. Git runs there and changed paths are relative to it.
        independent: Whether tags are per package.
        tag_prefix: Prefix of fixed-mode tags.
        force_all: Version every package regardless of changes.

    Returns:
        Changed packages, in graph order.
    """
    if force_all:
        dirty = set(graph)
        step("Detecting changes")
        info("Force version: all packages marked changed")
    else:
        last_tags = find_last_tags(
            graph, independent=independent, tag_prefix=tag_prefix, cwd=root
        )
        step("Detecting changes")
        dirty: set[str] = set()
        diffs: dict[str, set[str]] = {}

        for name in graph:
            last_tag = last_tags.get(name)
            if not last_tag:
                dirty.add(name)
                info(f"{name}: never released")
                continue

            if last_tag not in diffs:
                diffs[last_tag] = changed_files_since(last_tag, root)
            changed_files = diffs[last_tag]

            pkg_dir = graph.get(name).location.resolve().relative_to(root.resolve())
            prefix = pkg_dir.as_posix().rstrip("/") + "/"
            if any(f.startswith(prefix) for f in changed_files):
                dirty.add(name)
                info(f"{name}: changed since {last_tag}")

    # Propagate to dependents using BFS
    reverse_deps = graph.dependents()
    queue = sorted(dirty)
    while queue:
        node = queue.pop(0)
        for dependent in reverse_deps[node]:
            if dependent not in dirty:
                info(f"{dependent}: changed (depends on {node})")
                dirty.add(dependent)
                queue.append(dependent)

    return [graph.get(name) for name in graph if name in dirty]
