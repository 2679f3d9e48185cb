"""Configuration for a version run.

Options come from ``[tool.monobump]`` in the root pyproject.toml, and CLI
flags override them. Keys may be written in kebab-case or snake_case.

Example:
    [tool.monobump]
    version = "1.4.0"
    allow-branch = ["main", "release/*"]
    conventional-commits = true
    message = "chore(release): %s"
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .exceptions import ConfigError
from .toml import get_tool_table, load_pyproject

# Keys of [tool.monobump] that describe the project rather than a run
_PROJECT_KEYS = {"version", "independent", "scripts", "private"}


class VersionConfig(BaseModel):
    """Options recognised by the version command."""

    model_config = ConfigDict(extra="forbid")

    bump: str | None = None
    conventional_commits: bool = False
    preid: str | None = None
    allow_branch: list[str] | None = None
    exact: bool = False
    reject_cycles: bool = False
    amend: bool = False
    commit_hooks: bool = True
    git_remote: str = "origin"
    git_tag_version: bool = True
    push: bool = True
    sign_git_commit: bool = False
    sign_git_tag: bool = False
    tag_version_prefix: str = "v"
    message: str | None = None
    changelog: bool = True
    changelog_preset: str | None = None
    yes: bool = False
    ci: bool = Field(default_factory=lambda: "CI" in os.environ)
    force_all: bool = False

    @field_validator("allow_branch", mode="before")
    @classmethod
    def _coerce_branch_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @property
    def commit_and_tag(self) -> bool:
        return self.git_tag_version

    @property
    def push_to_remote(self) -> bool:
        # never automatically push to remote when amending a commit
        return self.git_tag_version and not self.amend and self.push

    @property
    def save_prefix(self) -> str:
        """Specifier operator used when rewriting internal requirements."""
        return "==" if self.exact else "~="


def load_config(root: Path | None = None, **overrides: Any) -> VersionConfig:
    """Build a VersionConfig from the root pyproject.toml and CLI overrides.

    Overrides whose value is None are ignored so that unset CLI flags do not
    clobber values from the file.

    Raises:
        ConfigError: If a key is unknown or a value has the wrong type.
    """
    root = root or Path.cwd()
    values: dict[str, Any] = {}

    pyproject = root / "pyproject.toml"
    if pyproject.exists():
        table = get_tool_table(load_pyproject(pyproject))
        for key, value in table.items():
            key = str(key).replace("-", "_")
            if key not in _PROJECT_KEYS:
                values[key] = _unwrap(value)

    values.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return VersionConfig.model_validate(values)
    except pydantic.ValidationError as exc:
        raise ConfigError(f"Invalid [tool.monobump] configuration:\n{exc}") from exc


def _unwrap(value: Any) -> Any:
    """Turn tomlkit items into plain Python values."""
    return value.unwrap() if hasattr(value, "unwrap") else value
