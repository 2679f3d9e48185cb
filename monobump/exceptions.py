"""Exceptions raised by monobump.

Every validation failure carries a short ``code`` so callers (and the CLI)
can tell the error kinds apart without matching on message text.
"""

from __future__ import annotations


class MonobumpError(Exception):
    """Base class for all monobump errors."""


class ValidationError(MonobumpError):
    """A precondition or input check failed before anything was mutated."""

    code = "EVALIDATION"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return f"{self.code}: {self.args[0]}"


class NoCommitsError(ValidationError):
    code = "ENOCOMMIT"


class DetachedHeadError(ValidationError):
    code = "ENOGIT"


class NoRemoteBranchError(ValidationError):
    code = "ENOREMOTEBRANCH"


class BranchNotAllowedError(ValidationError):
    code = "ENOTALLOWED"


class BehindUpstreamError(ValidationError):
    code = "EBEHIND"


class DirtyWorkingTreeError(ValidationError):
    code = "EUNCOMMIT"


class MissingVersionError(ValidationError):
    code = "ENOVERSION"


class InvalidVersionError(ValidationError):
    code = "EINVALIDVERSION"


class CyclicDependencyError(ValidationError):
    """Raised when cycle rejection is enabled and the update set has a cycle.

    Attributes:
        packages: Names of the packages that take part in the cycle(s).
    """

    code = "ECYCLE"

    def __init__(self, packages: list[str]) -> None:
        self.packages = sorted(packages)
        super().__init__(
            f"Dependency cycle detected involving: {', '.join(self.packages)}"
        )


class ConfigError(ValidationError):
    code = "ECONFIG"


class WorkspaceError(ValidationError):
    code = "ENOWORKSPACE"


class CommandError(MonobumpError):
    """A subprocess (git, hook, changelog tool) exited with a failure."""

    def __init__(
        self, command: list[str] | str, returncode: int, stderr: str = ""
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stderr = stderr
        shown = command if isinstance(command, str) else " ".join(command)
        message = f"Command failed with exit code {returncode}: {shown}"
        if stderr:
            message += f"\n{stderr.strip()}"
        super().__init__(message)


class LifecycleError(CommandError):
    """A lifecycle script failed for a package."""

    def __init__(
        self, package: str, stage: str, command: str, returncode: int, stderr: str = ""
    ) -> None:
        self.package = package
        self.stage = stage
        super().__init__(command, returncode, stderr)

    def __str__(self) -> str:
        return f"{self.package}: {self.stage} script failed. {super().__str__()}"


class ChangelogError(MonobumpError):
    """A changelog could not be generated."""
