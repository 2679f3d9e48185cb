"""Lifecycle scripts run around a version bump.

Scripts live in ``[tool.monobump.scripts]`` of a package's pyproject.toml
(or of the root one for root stages):

    [tool.monobump.scripts]
    preversion = "pytest -q"
    version = "python scripts/sync_version.py"
    postversion = "echo released $MONOBUMP_PACKAGE_VERSION"

preversion runs before the version is bumped, version after the bump but
before the commit, postversion after the commit.
"""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

from .exceptions import CommandError, LifecycleError
from .shell import info, run_async, warn

LIFECYCLE_ENV = "MONOBUMP_LIFECYCLE_EVENT"

_VERSION_STAGE = re.compile(r"(pre|post)?version")


class LifecycleTarget(Protocol):
    name: str
    location: Path

    @property
    def scripts(self) -> dict[str, str]: ...


class LifecycleRunner:
    """Runs a target's script for a stage, if it defines one.

    Every script gets ``MONOBUMP_LIFECYCLE_EVENT`` set to its stage, so a
    version run started from inside a script can tell it is nested.
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env = dict(os.environ if env is None else env)

    async def run(self, target: LifecycleTarget, stage: str) -> None:
        script = target.scripts.get(stage)
        if not script:
            return

        info(f"{target.name}: {stage} → {script}")
        env = {
            **self._env,
            LIFECYCLE_ENV: stage,
            "MONOBUMP_PACKAGE_NAME": target.name,
            "MONOBUMP_PACKAGE_VERSION": str(getattr(target, "version", "")),
        }
        try:
            await run_async(script, cwd=str(target.location), env=env, shell=True)
        except CommandError as exc:
            raise LifecycleError(
                target.name, stage, script, exc.returncode, exc.stderr
            ) from exc


def is_nested_lifecycle(env: Mapping[str, str] | None = None) -> bool:
    """Whether this process was started by a (pre|post)version script."""
    env = os.environ if env is None else env
    return bool(_VERSION_STAGE.fullmatch(env.get(LIFECYCLE_ENV, "")))


class RootLifecycle:
    """Runs root stages, unless we are already inside one.

    Running the root ``version`` script from a run that the root ``version``
    script itself started would recurse forever.
    """

    def __init__(
        self,
        runner: LifecycleRunner,
        root: LifecycleTarget,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.runner = runner
        self.root = root
        self.nested = is_nested_lifecycle(env)

    async def __call__(self, stage: str) -> None:
        if self.nested:
            warn(f"lifecycle: Skipping root {stage!r}, it has already been called")
            return
        await self.runner.run(self.root, stage)
