"""Shell and git utilities.

Provides simple wrappers around subprocess calls for running shell commands
and git operations, plus output formatting helpers. The async variants are
used inside the update pipeline, where every subprocess is a suspension
point for the event loop.
"""

from __future__ import annotations

import asyncio
import subprocess
import sys
from collections.abc import Mapping
from pathlib import Path

from .exceptions import CommandError


def git(*args: str, check: bool = True, cwd: Path | str | None = None) -> str:
    """Run a git command and return stdout.

    Args:
        *args: Arguments to pass to git (e.g., "status", "--short").
        check: If True (default), raise CommandError on non-zero exit. Set to
               False for commands that may legitimately fail (e.g., tag lookup).
        cwd: Directory to run git in; the process working directory when None.

    Returns:
        Stripped stdout from the git command.
    """
    result = subprocess.run(
        ["git", *args], capture_output=True, text=True, cwd=cwd
    )
    if check and result.returncode != 0:
        raise CommandError(["git", *args], result.returncode, result.stderr)
    return result.stdout.strip()


async def run_async(
    *args: str,
    cwd: str | None = None,
    env: Mapping[str, str] | None = None,
    shell: bool = False,
) -> str:
    """Run a command without blocking the event loop and return its stdout.

    Args:
        *args: Command and arguments. With ``shell=True`` a single command
               string is expected instead.
        cwd: Working directory for the command.
        env: Full environment for the child process (inherits when None).
        shell: Run through the system shell (used for lifecycle scripts).

    Raises:
        CommandError: If the command exits non-zero.
    """
    if shell:
        proc = await asyncio.create_subprocess_shell(
            args[0],
            cwd=cwd,
            env=dict(env) if env is not None else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    else:
        proc = await asyncio.create_subprocess_exec(
            *args,
            cwd=cwd,
            env=dict(env) if env is not None else None,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        command = args[0] if shell else list(args)
        raise CommandError(
            command, proc.returncode or 1, stderr.decode(errors="replace")
        )
    return stdout.decode(errors="replace").strip()


async def git_async(*args: str, cwd: str | None = None) -> str:
    """Async counterpart of git(); always checks the exit code."""
    return await run_async("git", *args, cwd=cwd)


def step(msg: str) -> None:
    """Print a visually distinct step header.

    Used to separate major phases of the version pipeline in terminal output.
    """
    print(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")


def info(msg: str) -> None:
    print(f"  {msg}")


def warn(msg: str) -> None:
    """Print a warning to stderr. The run continues."""
    print(f"WARNING: {msg}", file=sys.stderr)


def success(msg: str) -> None:
    print(f"✓ {msg}")
