"""Choosing the next version of every package in a run.

The way versions are picked is a ``VersionStrategy``, selected from the
configuration in a fixed precedence order:

1. ``ExplicitLiteral``      bump is a version ("2.0.0"): everything gets it.
2. ``ExplicitIncrement``    bump is a release type ("minor"): independent
                            packages bump their own version, fixed mode bumps
                            the root version once.
3. ``ConventionalCommits``  recommended from commit history.
4. ``Interactive``          prompt per package (independent) or once (fixed).

In fixed mode a run that only touches some packages is promoted to all of
them when any of its bumps is breaking (see ``apply_breaking_cascade``).
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Literal

from .config import VersionConfig
from .conventional import recommend_version
from .exceptions import InvalidVersionError
from .graph import PackageGraph
from .models import UpdatePlan
from .package import Package
from .project import Project
from .prompt import prompt_version
from .shell import info, warn
from .versions import (
    clean,
    gt,
    inc,
    is_breaking_change,
    is_release_type,
    lt,
    prerelease_id,
    valid,
)

Scope = Literal["independent", "fixed"]
Predicate = Callable[[Package], Awaitable[str]]
PromptFn = Callable[[str, str, str], Awaitable[str]]
RecommendFn = Callable[..., Awaitable[str]]


@dataclass(frozen=True)
class ExplicitLiteral:
    version: str


@dataclass(frozen=True)
class ExplicitIncrement:
    increment: str
    scope: Scope


@dataclass(frozen=True)
class ConventionalCommits:
    scope: Scope


@dataclass(frozen=True)
class Interactive:
    scope: Scope


VersionStrategy = (
    ExplicitLiteral | ExplicitIncrement | ConventionalCommits | Interactive
)


def select_strategy(config: VersionConfig, independent: bool) -> VersionStrategy:
    """Pick the strategy for a run; the first matching rule wins.

    Raises:
        InvalidVersionError: If bump is neither a version nor a release type.
    """
    scope: Scope = "independent" if independent else "fixed"

    if config.bump:
        if valid(config.bump):
            return ExplicitLiteral(clean(config.bump))
        if is_release_type(config.bump):
            return ExplicitIncrement(config.bump, scope)
        raise InvalidVersionError(
            f"Invalid bump {config.bump!r}: expected a version or one of "
            "major, minor, patch, premajor, preminor, prepatch, prerelease"
        )
    if config.conventional_commits:
        return ConventionalCommits(scope)
    return Interactive(scope)


def make_prerelease_resolver(
    preid: str | None, increment: str = ""
) -> Callable[[str | None], str]:
    """Return a function mapping a package's existing prerelease id to the one to use.

    Order: the configured preid, then the existing id when the increment is
    itself a prerelease type, then "alpha".
    """
    is_prerelease = increment.startswith("pre")

    def resolve(existing: str | None) -> str:
        return preid or (is_prerelease and existing) or "alpha"

    return resolve


def _constant(version: str) -> Predicate:
    async def predicate(pkg: Package) -> str:
        return version

    return predicate


async def resolve_versions(
    updates: Iterable[Package], get_version: Predicate
) -> dict[str, str]:
    """Apply a predicate to each package in order, one at a time.

    Prompts must never overlap and must follow the package order, so the
    predicate is awaited sequentially.
    """
    versions: dict[str, str] = {}
    for pkg in updates:
        versions[pkg.name] = await get_version(pkg)
    return versions


async def get_versions_for_updates(
    plan: UpdatePlan,
    strategy: VersionStrategy,
    project: Project,
    config: VersionConfig,
    *,
    prompt: PromptFn = prompt_version,
    recommend: RecommendFn = recommend_version,
) -> UpdatePlan:
    """Resolve the version map for ``plan.updates`` under a strategy."""
    increment = strategy.increment if isinstance(strategy, ExplicitIncrement) else ""
    resolve_preid = make_prerelease_resolver(config.preid, increment)

    match strategy:
        case ExplicitLiteral(version=version):
            versions = await resolve_versions(plan.updates, _constant(version))
            global_version = version

        case ExplicitIncrement(increment=increment, scope="independent"):

            async def bump_own(pkg: Package) -> str:
                return inc(pkg.version, increment, resolve_preid(pkg.prerelease_id))

            versions = await resolve_versions(plan.updates, bump_own)
            global_version = None

        case ExplicitIncrement(increment=increment, scope="fixed"):
            # compute potential prerelease ID once for all fixed updates
            existing = prerelease_id(project.version)
            global_version = inc(project.version, increment, resolve_preid(existing))
            versions = await resolve_versions(plan.updates, _constant(global_version))

        case ConventionalCommits(scope=scope):
            return await recommend_versions(
                plan, project, scope, config, recommend=recommend
            )

        case Interactive(scope="independent"):

            async def ask(pkg: Package) -> str:
                return await prompt(
                    pkg.name, pkg.version, resolve_preid(pkg.prerelease_id)
                )

            versions = await resolve_versions(plan.updates, ask)
            global_version = None

        case Interactive(scope="fixed"):
            existing = prerelease_id(project.version)
            global_version = await prompt(
                "all packages", project.version, resolve_preid(existing)
            )
            versions = await resolve_versions(plan.updates, _constant(global_version))

        case _:
            raise TypeError(f"Unknown version strategy: {strategy!r}")

    return plan.model_copy(
        update={"versions": versions, "global_version": global_version}
    )


async def recommend_versions(
    plan: UpdatePlan,
    project: Project,
    scope: Scope,
    config: VersionConfig,
    *,
    recommend: RecommendFn = recommend_version,
) -> UpdatePlan:
    """Ask the conventional commit recommender for every package.

    In fixed mode the package versions are first raised to the root version
    (floor), and afterwards every package gets the highest recommendation
    (ceiling), which becomes the global version.
    """
    if scope == "fixed":
        set_global_version_floor(plan.updates, project.version)

    async def recommend_for(pkg: Package) -> str:
        return await recommend(pkg, scope, tag_prefix=config.tag_version_prefix)

    versions = await resolve_versions(plan.updates, recommend_for)

    global_version = None
    if scope == "fixed":
        global_version = set_global_version_ceiling(versions, project.version)

    return plan.model_copy(
        update={"versions": versions, "global_version": global_version}
    )


def set_global_version_floor(updates: Iterable[Package], global_version: str) -> None:
    """Raise any package version that trails the root version up to it."""
    for pkg in updates:
        if lt(pkg.version, global_version):
            warn(
                f"Overriding version of {pkg.name} "
                f"from {pkg.version} to {global_version}"
            )
            pkg.version = global_version


def set_global_version_ceiling(versions: dict[str, str], global_version: str) -> str:
    """Overwrite every entry with the highest version; return it."""
    highest = global_version
    for version in versions.values():
        if gt(version, highest):
            highest = version

    for name in versions:
        versions[name] = highest

    return highest


def apply_breaking_cascade(
    plan: UpdatePlan, graph: PackageGraph, independent: bool
) -> UpdatePlan:
    """Promote a partial fixed-mode run to every package on a breaking bump.

    Only partial fixed versions need to be checked: independent packages
    move on their own, and a run covering the whole graph is already
    complete.
    """
    if independent or len(plan.versions) == len(graph):
        return plan

    breaking = [
        name
        for name, version in plan.versions.items()
        if is_breaking_change(graph.get(name).version, version)
    ]
    if not breaking:
        return plan

    info(
        f"Breaking change in {', '.join(breaking)}: "
        f"versioning all packages at {plan.global_version}"
    )
    # _all_ packages need a major version bump whenever _any_ package does
    updates = graph.values()
    versions = {pkg.name: plan.global_version for pkg in updates}
    return plan.model_copy(update={"updates": updates, "versions": versions})
