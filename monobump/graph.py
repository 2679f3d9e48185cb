"""Dependency graph utilities.

Provides the workspace package graph and batching for the version pipeline.
Packages must be versioned in dependency order so that when package A
depends on package B, B's new version is written before A's manifest is
rewritten to point at it.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator

from packaging.requirements import InvalidRequirement

from .deps import parse_dependency_spec
from .exceptions import CyclicDependencyError
from .package import Package
from .shell import warn


class PackageGraph:
    """All workspace packages, keyed by name, with local dependencies resolved.

    Each package's ``local_dependencies`` is filled with the requirements that
    point at other workspace packages. External requirements are ignored.
    """

    def __init__(self, packages: Iterable[Package]) -> None:
        self._packages: dict[str, Package] = {}
        for pkg in packages:
            self._packages[pkg.name] = pkg

        for pkg in self._packages.values():
            pkg.local_dependencies = {}
            for dep_str in pkg.dependency_strings():
                try:
                    spec = parse_dependency_spec(dep_str)
                except InvalidRequirement:
                    warn(f"{pkg.name}: ignoring unparsable requirement {dep_str!r}")
                    continue
                # Only track internal deps, ignore external packages
                if (
                    spec.name in self._packages
                    and spec.name != pkg.name
                    and spec.name not in pkg.local_dependencies
                ):
                    pkg.local_dependencies[spec.name] = spec

    def __len__(self) -> int:
        return len(self._packages)

    def __iter__(self) -> Iterator[str]:
        return iter(self._packages)

    def __contains__(self, name: object) -> bool:
        return name in self._packages

    def get(self, name: str) -> Package:
        return self._packages[name]

    def values(self) -> list[Package]:
        return list(self._packages.values())

    def dependents(self) -> dict[str, list[str]]:
        """Reverse dependency map: package name → names that depend on it."""
        reverse_deps: dict[str, list[str]] = {n: [] for n in self._packages}
        for name, pkg in self._packages.items():
            for dep in pkg.local_dependencies:
                reverse_deps[dep].append(name)
        return reverse_deps


def batch_packages(
    packages: Iterable[Package], reject_cycles: bool = False
) -> list[list[Package]]:
    """Group packages into batches that can be versioned concurrently.

    Layered Kahn's algorithm over the subgraph induced by ``packages``: every
    package whose local dependencies are all in earlier batches goes into the
    next batch. Within a batch, packages are sorted by name for deterministic
    output. Dependencies outside ``packages`` are ignored since they are not
    being versioned.

    When no package is ready, the remaining ones contain a cycle. With
    ``reject_cycles`` this raises; otherwise the package with the fewest
    unscheduled dependencies (ties broken by name) is scheduled alone and
    layering continues.

    Args:
        packages: Packages to version, with ``local_dependencies`` populated.
        reject_cycles: Fail instead of breaking cycles.

    Returns:
        Ordered list of batches.

    Raises:
        CyclicDependencyError: If a cycle exists and reject_cycles is set.

    Example:
        If A depends on B, and B depends on C:
        batch_packages([A, B, C]) → [[C], [B], [A]]
    """
    remaining = {pkg.name: pkg for pkg in packages}
    pending = {
        name: {d for d in pkg.local_dependencies if d in remaining and d != name}
        for name, pkg in remaining.items()
    }
    batches: list[list[Package]] = []

    while remaining:
        ready = sorted(n for n in remaining if not pending[n] & remaining.keys())

        if not ready:
            cycle = _cycle_members(remaining.keys(), pending)
            if reject_cycles:
                raise CyclicDependencyError(cycle)
            # Break the cycle at the package with the fewest unscheduled deps
            chosen = min(
                cycle, key=lambda n: (len(pending[n] & remaining.keys()), n)
            )
            warn(
                f"Dependency cycle detected involving: {', '.join(sorted(cycle))}. "
                f"Versioning {chosen} first."
            )
            ready = [chosen]

        batches.append([remaining.pop(n) for n in ready])

    return batches


def _cycle_members(names: Iterable[str], pending: dict[str, set[str]]) -> list[str]:
    """Return the names that can reach themselves through pending edges."""
    names = set(names)
    members: list[str] = []
    for start in sorted(names):
        seen: set[str] = set()
        stack = [d for d in pending[start] if d in names]
        while stack:
            node = stack.pop()
            if node == start:
                members.append(start)
                break
            if node in seen:
                continue
            seen.add(node)
            stack.extend(d for d in pending[node] if d in names)
    return members
