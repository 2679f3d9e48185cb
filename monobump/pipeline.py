"""Version pipeline: check → resolve → batch → update → commit → push.

This module orchestrates a version run:
1. Validate the repository (branch, remote, upstream, working tree)
2. Collect the packages that changed since their last release
3. Resolve the next version of each one
4. In fixed mode, cascade a breaking bump to every package
5. Batch packages in dependency order and confirm the plan
6. Rewrite manifests and changelogs, batch by batch
7. Commit, tag and push

Every stage takes the current ``UpdatePlan`` and returns a new one. A
failure anywhere aborts the rest of the run. Files that were already
written stay written; nothing is rolled back.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

from .changes import collect_updates
from .config import VersionConfig
from .conventional import recommend_version, update_changelog
from .graph import PackageGraph, batch_packages
from .lifecycle import LifecycleRunner, RootLifecycle
from .models import UpdatePlan, VersionResult
from .package import Package
from .preconditions import check_repository, check_working_tree, filter_versioned
from .project import Project
from .prompt import confirm_versions, prompt_version
from .resolve import (
    PromptFn,
    RecommendFn,
    apply_breaking_cascade,
    get_versions_for_updates,
    select_strategy,
)
from .shell import info, step, success
from .vcs import git_add, git_commit, git_push, git_tag

# Upper bound on package pipelines in flight within one batch
MAX_CONCURRENCY = 100

T = TypeVar("T")
R = TypeVar("R")

ChangelogFn = Callable[..., Awaitable[Path]]
ConfirmFn = Callable[..., bool]


class ChangedFileSet:
    """Paths written during a run, for staging. Safe for concurrent adds."""

    def __init__(self) -> None:
        self._paths: set[Path] = set()
        self._lock = asyncio.Lock()

    async def add(self, path: Path) -> None:
        async with self._lock:
            self._paths.add(Path(path))

    def __iter__(self) -> Iterator[Path]:
        return iter(sorted(self._paths))

    def __len__(self) -> int:
        return len(self._paths)

    def __contains__(self, path: object) -> bool:
        return Path(path) in self._paths  # type: ignore[arg-type]


async def map_bounded(
    func: Callable[[T], Awaitable[R]], items: Iterable[T], concurrency: int
) -> list[R]:
    """Run func over items with at most ``concurrency`` calls in flight.

    The first failure cancels the calls still running and is re-raised as is.
    """
    semaphore = asyncio.Semaphore(concurrency)

    async def worker(item: T) -> R:
        async with semaphore:
            return await func(item)

    tasks = [asyncio.ensure_future(worker(item)) for item in items]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


@dataclass
class VersionContext:
    """Collaborators shared by the pipeline stages of one run."""

    project: Project
    graph: PackageGraph
    config: VersionConfig
    runner: LifecycleRunner = field(default_factory=LifecycleRunner)
    root_lifecycle: RootLifecycle | None = None
    branch: str | None = None
    changelog_writer: ChangelogFn = update_changelog

    def __post_init__(self) -> None:
        if self.root_lifecycle is None:
            self.root_lifecycle = RootLifecycle(self.runner, self.project)

    @property
    def independent(self) -> bool:
        return self.project.is_independent()

    @property
    def mode(self) -> str:
        return "independent" if self.independent else "fixed"

    def changelog_options(self) -> dict[str, Any]:
        return {
            "root_path": self.project.location,
            "tag_prefix": self.config.tag_version_prefix,
            "changelog_preset": self.config.changelog_preset,
        }


async def update_package_versions(
    plan: UpdatePlan, ctx: VersionContext
) -> ChangedFileSet:
    """Write new versions, dependency ranges and changelogs, batch by batch.

    Batches run strictly one after another since later batches depend on
    packages versioned in earlier ones. Within a batch, package pipelines run
    concurrently.

    Returns:
        Every file written, for staging.
    """
    step(f"Versioning {len(plan.updates)} packages")
    config = ctx.config
    changed = ChangedFileSet()
    write_changelog = config.conventional_commits and config.changelog

    # preversion:  Run BEFORE bumping the package version.
    # version:     Run AFTER bumping the package version, but BEFORE commit.
    # postversion: Run AFTER bumping the package version, and AFTER commit.
    await ctx.root_lifecycle("preversion")

    async def update(pkg: Package) -> Package:
        await ctx.runner.run(pkg, "preversion")

        # manifest may be mutated by any previous lifecycle
        pkg.refresh()

        pkg.version = plan.versions[pkg.name]
        for dep_name, spec in ctx.graph.get(pkg.name).local_dependencies.items():
            dep_version = plan.versions.get(dep_name)
            # don't overwrite local file: references, they only change during publish
            if dep_version and spec.spec_type != "directory":
                pkg.update_local_dependency(spec, dep_version, config.save_prefix)

        await changed.add(await pkg.serialize())
        info(f"{pkg.name}: {plan.versions[pkg.name]}")

        await ctx.runner.run(pkg, "version")

        if write_changelog:
            location = await ctx.changelog_writer(
                pkg, ctx.mode, **ctx.changelog_options()
            )
            await changed.add(location)

        return pkg

    for batch in plan.batches:
        await map_bounded(update, batch, MAX_CONCURRENCY)

    if not ctx.independent and config.changelog:
        ctx.project.version = plan.global_version

        if config.conventional_commits:
            location = await ctx.changelog_writer(
                ctx.project,
                "root",
                version=plan.global_version,
                **ctx.changelog_options(),
            )
            await changed.add(location)

        await changed.add(await ctx.project.serialize_config())

    await ctx.root_lifecycle("version")

    if config.commit_and_tag:
        await git_add(changed, cwd=ctx.project.location)

    return changed


def independent_tags(plan: UpdatePlan) -> list[str]:
    return [f"{pkg.name}@{plan.versions[pkg.name]}" for pkg in plan.updates]


def independent_commit_message(tags: list[str], message: str | None = None) -> str:
    """Subject line followed by one " - <tag>" line per tag."""
    subject = message or "Publish"
    return f"{subject}\n" + "".join(f"\n - {tag}" for tag in tags)


def fixed_tag(version: str, tag_prefix: str = "v") -> str:
    return f"{tag_prefix}{version}"


def fixed_commit_message(tag: str, version: str, message: str | None = None) -> str:
    """The tag itself, or the template with %s → tag and %v → version."""
    if not message:
        return tag
    return message.replace("%s", tag).replace("%v", version)


async def commit_and_tag_updates(plan: UpdatePlan, ctx: VersionContext) -> UpdatePlan:
    """Commit the staged files, tag the commit, then run postversion scripts."""
    step("Committing and tagging")
    config = ctx.config
    cwd = ctx.project.location

    if ctx.independent:
        tags = independent_tags(plan)
        message = independent_commit_message(tags, config.message)
    else:
        tag = fixed_tag(plan.global_version, config.tag_version_prefix)
        tags = [tag]
        message = fixed_commit_message(tag, plan.global_version, config.message)

    await git_commit(
        message,
        amend=config.amend,
        commit_hooks=config.commit_hooks,
        sign=config.sign_git_commit,
        cwd=cwd,
    )
    for tag in tags:
        await git_tag(tag, sign=config.sign_git_tag, cwd=cwd)

    # run the postversion script for each update
    await map_bounded(
        lambda pkg: ctx.runner.run(pkg, "postversion"), plan.updates, MAX_CONCURRENCY
    )
    # run postversion, if set, in the root directory
    await ctx.root_lifecycle("postversion")

    return plan.model_copy(update={"tags": tags})


async def run_version(
    config: VersionConfig,
    project: Project | None = None,
    updates: list[Package] | None = None,
    *,
    prompt: PromptFn = prompt_version,
    recommend: RecommendFn = recommend_version,
    confirm: ConfirmFn = confirm_versions,
    changelog_writer: ChangelogFn = update_changelog,
    runner: LifecycleRunner | None = None,
) -> VersionResult | None:
    """Execute a full version run.

    Args:
        config: Options for this run.
        project: Workspace root; defaults to the current directory.
        updates: Packages to version. When omitted, packages changed since
                 their last release are detected from git.
        prompt, recommend, confirm, changelog_writer, runner: Collaborators,
            replaceable for embedding and testing.

    Returns:
        The result, or None when there was nothing to do (no changes, a CI
        run behind its upstream, or a declined confirmation).
    """
    project = project or Project()
    independent = project.is_independent()
    if not independent:
        info(f"current version {project.version}")

    # git validation happens before updates are calculated and versions picked
    branch = check_repository(config, project.location)
    if branch is None:
        return None

    graph = project.package_graph()
    if updates is None:
        updates = collect_updates(
            graph,
            project.location,
            independent=independent,
            tag_prefix=config.tag_version_prefix,
            force_all=config.force_all,
        )
    else:
        updates = [graph.get(pkg.name) for pkg in updates]
    updates = filter_versioned(updates)

    if not updates:
        success("No changed packages to version")
        return None

    check_working_tree(config, project.location)

    plan = UpdatePlan(updates=updates)
    strategy = select_strategy(config, independent)
    plan = await get_versions_for_updates(
        plan, strategy, project, config, prompt=prompt, recommend=recommend
    )
    plan = apply_breaking_cascade(plan, graph, independent)
    plan = plan.model_copy(
        update={"batches": batch_packages(plan.updates, config.reject_cycles)}
    )

    if not confirm(plan.updates, plan.versions, yes=config.yes):
        info("Aborted, no versions were changed")
        return None

    ctx = VersionContext(
        project=project,
        graph=graph,
        config=config,
        runner=runner or LifecycleRunner(),
        branch=branch,
        changelog_writer=changelog_writer,
    )

    await update_package_versions(plan, ctx)

    if config.commit_and_tag:
        plan = await commit_and_tag_updates(plan, ctx)
    else:
        info("Skipping git tag/commit")

    if config.push_to_remote:
        step("Pushing commits and tags")
        await git_push(config.git_remote, branch, cwd=project.location)
    else:
        info("Skipping git push")

    success("version finished")
    return VersionResult(
        updates=[pkg.name for pkg in plan.updates],
        updates_versions=dict(plan.versions),
        tags=plan.tags,
    )
