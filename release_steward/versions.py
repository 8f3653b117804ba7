"""Version parsing, comparison, and bumping utilities.

Handles conversion between version strings and semver objects, with tolerant
handling of the forms found in tags and registries:

- a leading marker is ignored ("v1.2.3", "release-1.2.3" → "1.2.3")
- incomplete versions are padded with zeros ("1.2" → "1.2.0")
- zero-padded parts are normalised ("2024.07.04" → "2024.7.4")
- pre-release and build metadata are kept ("1.2.3-rc.1+build.5")
"""

from __future__ import annotations

import re
from enum import Enum

import semver

from .exceptions import VersionParseError
from .models import ReleaseType

_PREFIX = re.compile(r"^[^0-9]+")
_CORE = re.compile(r"^(\d+(?:\.\d+){0,2})(.*)$")


class Comparison(int, Enum):
    """Ordering of two versions."""

    LESS = -1
    EQUAL = 0
    GREATER = 1


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Examples:
        "v1.4" → 1.4.0
        "2" → 2.0.0
        "1.2.3-rc.1" → 1.2.3-rc.1

    Raises:
        VersionParseError: If no numeric major.minor.patch core can be read.
    """
    text = _PREFIX.sub("", version_str.strip(), count=1)
    match = _CORE.match(text)
    if not match:
        raise VersionParseError(f"Invalid version: {version_str!r}")

    core, rest = match.groups()
    # Drop leading zeros ("2024.07.04" → "2024.7.4")
    parts = [str(int(p)) for p in core.split(".")]
    # Pad with zeros to ensure we have exactly 3 parts
    while len(parts) < 3:
        parts.append("0")
    try:
        return semver.Version.parse(".".join(parts) + rest)
    except ValueError as exc:
        raise VersionParseError(f"Invalid version: {version_str!r}") from exc


def compare(a: str, b: str) -> Comparison:
    """Compare two version strings by semver precedence.

    Major, minor and patch are compared numerically; a pre-release sorts
    before the same release without one. Build metadata never affects
    ordering.

    Raises:
        VersionParseError: If either side is not a valid version.
    """
    va = parse_version(a).replace(build=None)
    vb = parse_version(b).replace(build=None)
    return Comparison(va.compare(vb))


def is_newer(current: str, latest: str) -> bool:
    """Return True if latest is strictly newer than current.

    Malformed input on either side yields False, so bad registry data never
    triggers an update.
    """
    try:
        return compare(current, latest) is Comparison.LESS
    except VersionParseError:
        return False


def bump_patch(version_str: str) -> str:
    """Increment the patch version and return as a string.

    Examples:
        "1.2.3" → "1.2.4"
        "v1.0" → "1.0.1"
    """
    return str(parse_version(version_str).bump_patch())


def bump_minor(version_str: str) -> str:
    """Increment the minor version, reset patch to zero, return as a string.

    Examples:
        "1.2.3" → "1.3.0"
        "v2" → "2.1.0"
    """
    return str(parse_version(version_str).bump_minor())


def next_version(tag: str, release_type: ReleaseType) -> str:
    """Compute the version that follows tag for the given release type.

    Returns an empty string if tag is not a version; callers substitute a
    placeholder (see next_version_or_placeholder).
    """
    bump = bump_patch if release_type is ReleaseType.PATCH else bump_minor
    try:
        return bump(tag)
    except VersionParseError:
        return ""


def next_version_or_placeholder(
    tag: str, release_type: ReleaseType, placeholder: str = "next"
) -> str:
    """Like next_version, but never returns an empty string."""
    return next_version(tag, release_type) or placeholder
