"""Interactive prompts: choosing a version and confirming the plan."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping

import click

from .package import Package
from .versions import RELEASE_TYPES, clean, inc, valid


def _validate_version(value: str) -> str:
    if not valid(value):
        raise click.BadParameter(f"{value!r} is not a valid semantic version")
    return clean(value)


def ask_version(name: str, current: str, preid: str) -> str:
    """Ask which version a package (or the whole repo) should move to."""
    choices = {rt: inc(current, rt, preid) for rt in RELEASE_TYPES}

    click.echo(f"\nSelect a new version for {name} (currently {current}):")
    for release_type, version in choices.items():
        click.echo(f"  {release_type:<11} {version}")
    click.echo(f"  {'custom':<11} enter a version")

    answer = click.prompt(
        "Version",
        type=click.Choice([*RELEASE_TYPES, "custom"]),
        default="patch",
    )
    if answer == "custom":
        return click.prompt("Enter a custom version", value_proc=_validate_version)
    return choices[answer]


async def prompt_version(name: str, current: str, preid: str) -> str:
    """Async wrapper; the caller awaits prompts one at a time."""
    return await asyncio.to_thread(ask_version, name, current, preid)


def confirm_versions(
    packages: Iterable[Package],
    versions: Mapping[str, str],
    *,
    yes: bool = False,
) -> bool:
    """Show the planned changes and ask for confirmation unless ``yes``."""
    click.echo("\nChanges:")
    for pkg in packages:
        line = f" - {pkg.name}: {pkg.version} => {versions[pkg.name]}"
        if pkg.private:
            line += f" ({click.style('private', fg='red')})"
        click.echo(line)
    click.echo()

    if yes:
        click.echo("auto-confirmed")
        return True

    return click.confirm(
        "Are you sure you want to create these versions?", default=False
    )
