"""Internal requirement handling.

A workspace package names its siblings with ordinary PEP 508 requirements.
When a sibling gets a new version, every requirement on it that pins a
version range is rewritten to ``<name><save_prefix><version>``.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import tomlkit
from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name

from .models import DependencySpec


def dep_canonical_name(dep_str: str) -> str:
    """Name a requirement refers to, PEP 503 normalized.

    Examples:
        "Flask[async]>=3" → "flask"
        "my_lib ; python_version >= '3.12'" → "my-lib"
    """
    return canonicalize_name(Requirement(dep_str).name)


def parse_dependency_spec(dep_str: str) -> DependencySpec:
    """Classify a requirement string.

    Examples:
        "pkg-a>=1.0" → spec_type "version"
        "pkg-a @ file:///repo/packages/a" → spec_type "directory"
        "pkg-a @ https://example.com/pkg_a.whl" → spec_type "url"
    """
    req = Requirement(dep_str)
    if req.url is None:
        spec_type = "version"
    elif req.url.startswith("file:"):
        spec_type = "directory"
    else:
        spec_type = "url"
    return DependencySpec(
        name=canonicalize_name(req.name), range=dep_str, spec_type=spec_type
    )


def rewrite_dep(dep_str: str, version: str, save_prefix: str) -> str:
    """Replace the specifier of a requirement with ``save_prefix + version``.

    Extras are kept (sorted) and so is the environment marker.

    Examples:
        rewrite_dep("requests>=2.0", "2.31.0", "~=") → "requests~=2.31.0"
        rewrite_dep("pkg[b,a]>=1.0", "3.0.0", "==") → "pkg[a,b]==3.0.0"
        rewrite_dep('pkg>=1; python_version<"3.12"', "2.0.0", "==")
            → 'pkg==2.0.0; python_version < "3.12"'
    """
    req = Requirement(dep_str)
    extras = f"[{','.join(sorted(req.extras))}]" if req.extras else ""
    marker = f"; {req.marker}" if req.marker else ""
    return f"{req.name}{extras}{save_prefix}{version}{marker}"


def _requirement_arrays(doc: tomlkit.TOMLDocument) -> Iterator[list[Any]]:
    """Yield each array of requirements in a manifest, in place."""
    project = doc.get("project", {})
    runtime = project.get("dependencies")
    if isinstance(runtime, list):
        yield runtime
    for table in (project.get("optional-dependencies"), doc.get("dependency-groups")):
        if isinstance(table, dict):
            yield from (arr for arr in table.values() if isinstance(arr, list))


def update_dependency(
    doc: tomlkit.TOMLDocument, dep_name: str, version: str, save_prefix: str
) -> bool:
    """Point every version-range requirement on ``dep_name`` at ``version``.

    Runtime dependencies, optional extras and dependency groups are all
    covered. Direct references (``name @ file:...`` or any other URL) are
    left alone, and so are entries that are not valid requirements.

    Returns:
        True if at least one requirement was rewritten.
    """
    changed = False
    for requirements in _requirement_arrays(doc):
        for i, entry in enumerate(requirements):
            if not isinstance(entry, str):
                continue
            try:
                spec = parse_dependency_spec(str(entry))
            except InvalidRequirement:
                continue
            if spec.name == dep_name and spec.spec_type == "version":
                requirements[i] = rewrite_dep(str(entry), version, save_prefix)
                changed = True
    return changed
