"""CLI entry point for monobump."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from monobump.config import load_config
from monobump.exceptions import MonobumpError
from monobump.pipeline import run_version
from monobump.project import Project


@click.group()
@click.version_option(package_name="monobump")
def cli() -> None:
    """Version every package of a uv workspace together."""


@cli.command()
@click.argument("bump", required=False)
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Workspace root. (default: current directory)",
)
@click.option(
    "--conventional-commits/--no-conventional-commits",
    default=None,
    help="Pick versions from conventional commits and write changelogs.",
)
@click.option("--preid", default=None, help="Prerelease identifier (default: alpha).")
@click.option(
    "--exact/--no-exact", default=None, help="Pin internal deps with ==."
)
@click.option(
    "--allow-branch",
    multiple=True,
    help="Only version on branches matching this glob (repeatable).",
)
@click.option(
    "--reject-cycles/--no-reject-cycles",
    default=None,
    help="Fail on dependency cycles.",
)
@click.option(
    "--amend/--no-amend", default=None, help="Amend the last commit instead."
)
@click.option(
    "--commit-hooks/--no-commit-hooks",
    default=None,
    help="Run git commit hooks.",
)
@click.option("--git-remote", default=None, help="Remote to push to. (default: origin)")
@click.option(
    "--git-tag-version/--no-git-tag-version",
    default=None,
    help="Commit and tag the version changes.",
)
@click.option("--push/--no-push", default=None, help="Push the commit and tags.")
@click.option(
    "--sign-git-commit/--no-sign-git-commit", default=None, help="GPG-sign the commit."
)
@click.option(
    "--sign-git-tag/--no-sign-git-tag", default=None, help="GPG-sign the tags."
)
@click.option(
    "--tag-version-prefix", default=None, help="Fixed-mode tag prefix. (default: v)"
)
@click.option(
    "-m",
    "--message",
    default=None,
    help="Commit message. In fixed mode %s is the tag and %v the version.",
)
@click.option(
    "--changelog/--no-changelog",
    default=None,
    help="Write changelogs with --conventional-commits.",
)
@click.option(
    "--changelog-preset",
    default=None,
    help="git-cliff config file used to render changelogs.",
)
@click.option("-y", "--yes/--no-yes", default=None, help="Skip confirmation.")
@click.option(
    "--ci/--no-ci",
    default=None,
    help="CI run: a branch behind upstream exits quietly. (default: $CI is set)",
)
@click.option(
    "--force-all/--no-force-all", default=None, help="Version every package."
)
def version(
    root: Path | None, allow_branch: tuple[str, ...], **options: object
) -> None:
    """Bump versions of changed packages, then commit, tag and push.

    BUMP is a version ("2.0.0") or a release type (major, minor, patch,
    premajor, preminor, prepatch, prerelease). Without it, versions come
    from --conventional-commits or an interactive prompt.
    """
    try:
        project = Project(root)
        config = load_config(
            project.location,
            allow_branch=list(allow_branch) or None,
            **options,
        )
        result = asyncio.run(run_version(config, project))
    except MonobumpError as exc:
        raise click.ClickException(str(exc)) from exc

    if result is None:
        return

    click.echo()
    for name, new_version in result.updates_versions.items():
        click.echo(f"  {name} → {new_version}")
    for tag in result.tags:
        click.echo(f"  tagged {tag}")
