"""pyproject.toml access for workspace roots and member packages.

Documents are kept as tomlkit objects so a version bump only changes the
values it touches; comments, ordering and quoting survive the round trip.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit
from packaging.utils import canonicalize_name

from .exceptions import WorkspaceError

TOOL_NAME = "monobump"
PRIVATE_CLASSIFIER = "Private :: Do Not Upload"


def load_pyproject(path: Path) -> tomlkit.TOMLDocument:
    return tomlkit.parse(path.read_text())


def save_pyproject(path: Path, doc: tomlkit.TOMLDocument) -> None:
    path.write_text(tomlkit.dumps(doc))


def get_project_name(doc: tomlkit.TOMLDocument, fallback: str) -> str:
    """PEP 503 form of [project].name ("My_Pkg" → "my-pkg").

    ``fallback`` (usually the directory name) is used when the manifest
    declares no name.
    """
    name = doc.get("project", {}).get("name") or fallback
    return canonicalize_name(str(name))


def get_project_version(doc: tomlkit.TOMLDocument) -> str:
    """[project].version as a string; "" for an unversioned package."""
    return str(doc.get("project", {}).get("version", ""))


def get_tool_table(doc: tomlkit.TOMLDocument) -> dict[str, Any]:
    """Return the [tool.monobump] table, or an empty dict."""
    return doc.get("tool", {}).get(TOOL_NAME, {})


def is_private(doc: tomlkit.TOMLDocument) -> bool:
    """A package is private if it opts out of uploads.

    Either the PyPI "Private :: Do Not Upload" classifier or an explicit
    ``[tool.monobump] private = true`` marks it.
    """
    classifiers = doc.get("project", {}).get("classifiers", [])
    if PRIVATE_CLASSIFIER in classifiers:
        return True
    return bool(get_tool_table(doc).get("private", False))


def get_scripts(doc: tomlkit.TOMLDocument) -> dict[str, str]:
    """Lifecycle scripts from [tool.monobump.scripts]."""
    scripts = get_tool_table(doc).get("scripts", {})
    return {str(k): str(v) for k, v in scripts.items()}


def get_all_dependency_strings(doc: tomlkit.TOMLDocument) -> list[str]:
    """Every PEP 508 requirement a manifest declares.

    Runtime dependencies come first, then each optional extra, then each
    PEP 735 dependency group. ``{include-group = ...}`` entries are not
    requirements and are left out.
    """
    project = doc.get("project", {})
    requirements = [str(r) for r in project.get("dependencies", [])]
    for extra in project.get("optional-dependencies", {}).values():
        requirements.extend(str(r) for r in extra)
    for group in doc.get("dependency-groups", {}).values():
        requirements.extend(str(r) for r in group if isinstance(r, str))
    return requirements


def get_workspace_member_globs(doc: tomlkit.TOMLDocument) -> list[str]:
    """Globs under [tool.uv.workspace].members, relative to the root.

    Raises:
        WorkspaceError: If the root declares no members.
    """
    workspace = doc.get("tool", {}).get("uv", {}).get("workspace", {})
    members = workspace.get("members")
    if not members:
        raise WorkspaceError(
            "No [tool.uv.workspace] members defined in root pyproject.toml"
        )
    return [str(m) for m in members]


def set_tool_value(doc: tomlkit.TOMLDocument, key: str, value: Any) -> None:
    """Set a key in [tool.monobump], creating the tables when missing."""
    if "tool" not in doc:
        doc["tool"] = tomlkit.table(is_super_table=True)
    tool = doc["tool"]
    if TOOL_NAME not in tool:
        tool[TOOL_NAME] = tomlkit.table()
    tool[TOOL_NAME][key] = value
