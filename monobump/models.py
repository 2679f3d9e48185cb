"""Data models for monobump.

These Pydantic models represent the core data structures passed between the
stages of the version pipeline.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

SpecType = Literal["version", "directory", "url"]


class DependencySpec(BaseModel):
    """How one workspace package declares a dependency on another.

    Attributes:
        name: Canonical (PEP 503) name of the depended-on package.
        range: The PEP 508 requirement string exactly as written.
        spec_type: "version" for a version range, "directory" for a local
                   ``file:`` direct reference, "url" for any other direct
                   reference. Only "version" specs are rewritten on bump.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    range: str
    spec_type: SpecType = "version"


class UpdatePlan(BaseModel):
    """Everything decided about one version run, threaded through each stage.

    Stages never mutate a plan in place; they return
    ``plan.model_copy(update={...})``.

    Attributes:
        updates: Packages that receive a new version, in a stable order.
        versions: Map of package name → next version.
        batches: Packages grouped so that each batch only depends on
                 earlier ones.
        global_version: The single shared version in fixed mode, or when a
                        breaking change cascaded to every package.
        tags: Git tags created for this run.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    updates: list[Any] = Field(default_factory=list)
    versions: dict[str, str] = Field(default_factory=dict)
    batches: list[list[Any]] = Field(default_factory=list)
    global_version: str | None = None
    tags: list[str] = Field(default_factory=list)


class VersionResult(BaseModel):
    """Outcome of a version run, for composition by a publish workflow."""

    updates: list[str]
    updates_versions: dict[str, str]
    tags: list[str] = Field(default_factory=list)
