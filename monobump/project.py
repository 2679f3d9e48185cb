"""The workspace root: its pyproject.toml, version mode and member packages."""

from __future__ import annotations

import asyncio
import glob
from pathlib import Path

import tomlkit

from .exceptions import WorkspaceError
from .graph import PackageGraph
from .package import Package
from .shell import info, step
from .toml import (
    get_scripts,
    get_tool_table,
    get_workspace_member_globs,
    load_pyproject,
    save_pyproject,
    set_tool_value,
)

DEFAULT_ROOT_VERSION = "0.0.0"


class Project:
    """Root of a uv workspace managed by monobump.

    In fixed mode the shared version is recorded at
    ``[tool.monobump].version`` in the root pyproject.toml. Setting
    ``[tool.monobump].independent = true`` switches to independent mode.
    """

    def __init__(self, root: Path | None = None) -> None:
        self.location = Path(root) if root else Path.cwd()
        self.manifest_location = self.location / "pyproject.toml"
        if not self.manifest_location.exists():
            raise WorkspaceError(f"No pyproject.toml found in {self.location}")
        self.doc: tomlkit.TOMLDocument = load_pyproject(self.manifest_location)

    @property
    def name(self) -> str:
        return "root"

    @property
    def scripts(self) -> dict[str, str]:
        return get_scripts(self.doc)

    def is_independent(self) -> bool:
        return bool(get_tool_table(self.doc).get("independent", False))

    @property
    def version(self) -> str:
        return str(get_tool_table(self.doc).get("version", DEFAULT_ROOT_VERSION))

    @version.setter
    def version(self, value: str) -> None:
        set_tool_value(self.doc, "version", value)

    async def serialize_config(self) -> Path:
        """Write the root pyproject.toml and return its path."""
        await asyncio.to_thread(save_pyproject, self.manifest_location, self.doc)
        return self.manifest_location

    def discover_packages(self) -> list[Package]:
        """Scan the workspace and load every member package.

        Reads [tool.uv.workspace].members from the root pyproject.toml and
        expands the globs to package directories.

        Raises:
            WorkspaceError: If no member contains a pyproject.toml.
        """
        step("Discovering workspace packages")

        member_dirs: list[Path] = []
        for pattern in get_workspace_member_globs(self.doc):
            for match in sorted(glob.glob(str(self.location / pattern))):
                p = Path(match)
                if (p / "pyproject.toml").exists() and p not in member_dirs:
                    member_dirs.append(p)

        if not member_dirs:
            raise WorkspaceError("No packages found matching workspace members")

        packages = [Package(d) for d in member_dirs]
        for pkg in packages:
            rel = pkg.location.relative_to(self.location)
            info(f"{pkg.name} {pkg.version or '<unversioned>'} ({rel})")
        return packages

    def package_graph(self) -> PackageGraph:
        return PackageGraph(self.discover_packages())
