"""Workspace fixtures shared by the test modules."""

from __future__ import annotations

from pathlib import Path

import pytest
import tomlkit


@pytest.fixture
def tmp_pyproject(tmp_path: Path) -> Path:
    """A member manifest with internal requirements in every location."""
    path = tmp_path / "pyproject.toml"
    path.write_text(
        "[project]\n"
        'name = "test-package"\n'
        'version = "1.0.0"\n'
        'dependencies = ["requests>=2.0", "internal-dep>=1.0"]\n\n'
        "[project.optional-dependencies]\n"
        'docs = ["mkdocs>=1.5", "another-internal>=0.5"]\n\n'
        "[dependency-groups]\n"
        'lint = ["ruff>=0.4", "group-internal>=0.1"]\n'
    )
    return path


@pytest.fixture
def sample_toml_doc() -> tomlkit.TOMLDocument:
    """A root-style manifest with requirements and workspace members."""
    content = """\
[project]
name = "Release_Orchestrator"
version = "2.0.0"
dependencies = ["httpx>=0.27", "rich>=13"]

[project.optional-dependencies]
cli = ["typer>=0.12"]
docs = ["mkdocs>=1.5"]

[dependency-groups]
test = ["hypothesis>=6.0"]

[tool.uv.workspace]
members = ["packages/*", "services/*"]
"""
    return tomlkit.parse(content)


def write_package(
    root: Path,
    name: str,
    version: str | None = "1.0.0",
    deps: list[str] | None = None,
    extra: str = "",
) -> Path:
    """Write packages/<name>/pyproject.toml and return the package directory."""
    pkg_dir = root / "packages" / name
    pkg_dir.mkdir(parents=True)
    lines = ["[project]", f'name = "{name}"']
    if version is not None:
        lines.append(f'version = "{version}"')
    dep_list = ", ".join(f'"{d}"' for d in deps or [])
    lines.append(f"dependencies = [{dep_list}]")
    (pkg_dir / "pyproject.toml").write_text("\n".join(lines) + "\n" + extra)
    return pkg_dir


def write_root(root: Path, version: str = "1.0.0", independent: bool = False) -> Path:
    tool = "independent = true" if independent else f'version = "{version}"'
    (root / "pyproject.toml").write_text(
        '[tool.uv.workspace]\nmembers = ["packages/*"]\n\n'
        f"[tool.monobump]\n{tool}\n"
    )
    return root


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A fixed-mode workspace at 1.0.0.

    pkg-a has no deps, pkg-b depends on pkg-a by version range, pkg-c
    depends on pkg-b by version and on pkg-a through a file: reference.
    """
    write_root(tmp_path, "1.0.0")
    a_dir = write_package(tmp_path, "pkg-a", "1.0.0")
    write_package(tmp_path, "pkg-b", "1.0.0", ["pkg-a>=1.0.0"])
    write_package(
        tmp_path,
        "pkg-c",
        "1.0.0",
        ["pkg-b[extra]>=1.0.0", f"pkg-a @ {a_dir.as_uri()}"],
    )
    return tmp_path


@pytest.fixture
def independent_workspace(tmp_path: Path) -> Path:
    """An independent-mode workspace: A at 1.0.0 and B at 2.5.0 (B → A)."""
    write_root(tmp_path, independent=True)
    write_package(tmp_path, "a", "1.0.0")
    write_package(tmp_path, "b", "2.5.0", ["a>=1.0.0"])
    return tmp_path
