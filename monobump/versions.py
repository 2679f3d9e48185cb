"""Version parsing and bumping utilities.

Thin layer over the ``semver`` package. Increment semantics follow the
npm flavour of semver (a "major" bump of ``2.0.0-rc.1`` releases ``2.0.0``,
"prerelease" continues an existing prerelease series), which is what the
tags of most multi-package repositories already encode.
"""

from __future__ import annotations

import re

import semver

from .exceptions import InvalidVersionError

RELEASE_TYPES = (
    "major",
    "minor",
    "patch",
    "premajor",
    "preminor",
    "prepatch",
    "prerelease",
)

_CLEAN_PREFIX = re.compile(r"^[=v\s]+")


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Raises:
        InvalidVersionError: If the string is not a valid semantic version.
    """
    try:
        return semver.Version.parse(clean(version_str))
    except (TypeError, ValueError) as exc:
        raise InvalidVersionError(f"Invalid version: {version_str!r}") from exc


def clean(version_str: str) -> str:
    """Strip whitespace and a leading "v" or "=" ("v1.2.3" → "1.2.3")."""
    return _CLEAN_PREFIX.sub("", version_str.strip())


def valid(version_str: str) -> bool:
    return bool(version_str) and semver.Version.is_valid(clean(version_str))


def is_release_type(value: str) -> bool:
    return value in RELEASE_TYPES


def prerelease_id(version_str: str) -> str | None:
    """Return the first prerelease identifier ("1.0.0-beta.2" → "beta")."""
    if not valid(version_str):
        return None
    pre = parse_version(version_str).prerelease
    if not pre:
        return None
    return pre.split(".")[0]


def inc(version_str: str, release_type: str, preid: str | None = None) -> str:
    """Increment a version by a release type.

    Examples:
        inc("1.2.3", "minor") → "1.3.0"
        inc("1.2.3", "prepatch", "beta") → "1.2.4-beta.0"
        inc("1.2.4-beta.0", "prerelease", "beta") → "1.2.4-beta.1"
        inc("2.0.0-rc.1", "major") → "2.0.0"

    Raises:
        InvalidVersionError: For an invalid version or unknown release type.
    """
    if not is_release_type(release_type):
        raise InvalidVersionError(f"Unknown release type: {release_type!r}")

    v = parse_version(version_str).replace(build=None)
    preid = preid or "alpha"

    if release_type == "major":
        if v.prerelease and v.minor == 0 and v.patch == 0:
            return str(v.finalize_version())
        return str(v.bump_major())
    if release_type == "minor":
        if v.prerelease and v.patch == 0:
            return str(v.finalize_version())
        return str(v.bump_minor())
    if release_type == "patch":
        if v.prerelease:
            return str(v.finalize_version())
        return str(v.bump_patch())
    if release_type == "premajor":
        return str(v.bump_major().replace(prerelease=f"{preid}.0"))
    if release_type == "preminor":
        return str(v.bump_minor().replace(prerelease=f"{preid}.0"))
    if release_type == "prepatch":
        return str(v.bump_patch().replace(prerelease=f"{preid}.0"))

    # prerelease
    if not v.prerelease:
        return str(v.bump_patch().replace(prerelease=f"{preid}.0"))
    parts = v.prerelease.split(".")
    if parts[0] != preid:
        return str(v.replace(prerelease=f"{preid}.0"))
    if parts[-1].isdigit():
        parts[-1] = str(int(parts[-1]) + 1)
    else:
        parts.append("0")
    return str(v.replace(prerelease=".".join(parts)))


def compare(a: str, b: str) -> int:
    """Return -1, 0 or 1 as a is lower than, equal to, or higher than b."""
    return parse_version(a).compare(clean(b))


def lt(a: str, b: str) -> bool:
    return compare(a, b) < 0


def gt(a: str, b: str) -> bool:
    return compare(a, b) > 0


def diff(a: str, b: str) -> str | None:
    """Name the most significant part that differs between two versions.

    Returns "major", "minor", "patch" or "prerelease" (or the pre-prefixed
    form when the higher version is a prerelease), and None when equal.
    """
    va, vb = parse_version(a), parse_version(b)
    if va.compare(vb) == 0:
        return None
    high = va if va.compare(vb) > 0 else vb
    prefix = "pre" if high.prerelease else ""
    if va.major != vb.major:
        return prefix + "major"
    if va.minor != vb.minor:
        return prefix + "minor"
    if va.patch != vb.patch:
        return prefix + "patch"
    return "prerelease"


def is_breaking_change(current: str, next_version: str) -> bool:
    """Whether moving from current to next changes the leftmost nonzero part.

    Under 1.0.0 a minor bump is breaking, and under 0.1.0 a patch bump is.
    """
    release_type = diff(current, next_version)
    if release_type == "major":
        return True
    if release_type == "minor":
        return lt(current, "1.0.0")
    if release_type == "patch":
        return lt(current, "0.1.0")
    return False
