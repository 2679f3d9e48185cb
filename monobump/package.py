"""A workspace package and its pyproject.toml manifest."""

from __future__ import annotations

import asyncio
from pathlib import Path

import tomlkit

from .deps import update_dependency
from .models import DependencySpec
from .toml import (
    get_all_dependency_strings,
    get_project_name,
    get_project_version,
    get_scripts,
    is_private,
    load_pyproject,
    save_pyproject,
)
from .versions import prerelease_id


class Package:
    """One package of the workspace.

    Holds the parsed manifest in memory. The version pipeline mutates the
    document through ``version`` and ``update_local_dependency`` and writes it
    back with ``serialize``; nothing touches disk before that.

    Attributes:
        name: Canonical package name.
        location: Directory that contains the manifest.
        local_dependencies: Map of workspace dependency name → DependencySpec,
                            filled in by PackageGraph.
    """

    def __init__(self, location: Path, doc: tomlkit.TOMLDocument | None = None) -> None:
        self.location = Path(location)
        self._doc = doc if doc is not None else load_pyproject(self.manifest_location)
        self.name = get_project_name(self._doc, self.location.name)
        self.local_dependencies: dict[str, DependencySpec] = {}

    def __repr__(self) -> str:
        return f"Package({self.name!r}, {self.version!r})"

    @property
    def manifest_location(self) -> Path:
        return self.location / "pyproject.toml"

    @property
    def doc(self) -> tomlkit.TOMLDocument:
        return self._doc

    @property
    def version(self) -> str:
        return get_project_version(self._doc)

    @version.setter
    def version(self, value: str) -> None:
        if "project" not in self._doc:
            self._doc["project"] = tomlkit.table()
        self._doc["project"]["version"] = value

    @property
    def private(self) -> bool:
        return is_private(self._doc)

    @property
    def prerelease_id(self) -> str | None:
        return prerelease_id(self.version)

    @property
    def scripts(self) -> dict[str, str]:
        return get_scripts(self._doc)

    def dependency_strings(self) -> list[str]:
        return get_all_dependency_strings(self._doc)

    def refresh(self) -> Package:
        """Re-read the manifest; a lifecycle script may have changed it."""
        self._doc = load_pyproject(self.manifest_location)
        return self

    def update_local_dependency(
        self, spec: DependencySpec, version: str, save_prefix: str
    ) -> None:
        update_dependency(self._doc, spec.name, version, save_prefix)

    async def serialize(self) -> Path:
        """Write the manifest back to disk and return its path."""
        await asyncio.to_thread(save_pyproject, self.manifest_location, self._doc)
        return self.manifest_location
