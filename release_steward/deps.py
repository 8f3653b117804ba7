"""Dependency handling utilities.

Provides functions for reading declared dependency versions from PEP 508
strings and rewriting pyproject.toml files when a dependency is updated.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, cast

from packaging.requirements import InvalidRequirement, Requirement
from packaging.specifiers import Specifier
from packaging.utils import canonicalize_name

from .exceptions import ManifestError
from .models import DependencyRecord
from .shell import warn
from .toml import get_all_dependency_strings, load_pyproject, save_pyproject

# Operators that name a version the project is known to work with, in the
# order we prefer them when a requirement has several.
_DECLARING_OPERATORS = ("===", "==", "~=", ">=", ">")


def dep_canonical_name(dep_str: str) -> str:
    """Extract the canonical package name from a PEP 508 dependency string.

    Examples:
        "requests>=2.0" → "requests"
        "My_Package[extra]~=1.0" → "my-package"
    """
    return canonicalize_name(Requirement(dep_str).name)


def _declaring_specifier(req: Requirement) -> Specifier | None:
    specs = [s for s in req.specifier if s.operator in _DECLARING_OPERATORS]
    if not specs:
        return None
    return min(specs, key=lambda s: _DECLARING_OPERATORS.index(s.operator))


def declared_version(dep_str: str) -> str | None:
    """Return the version a requirement declares, or None if it has none.

    Exact pins win over compatible-release, which wins over lower bounds.
    Upper bounds and exclusions do not declare a version.

    Examples:
        "requests==2.31.0" → "2.31.0"
        "click>=8.0,<9" → "8.0"
        "rich" → None
    """
    spec = _declaring_specifier(Requirement(dep_str))
    return spec.version if spec else None


def update_requirement(dep_str: str, version: str) -> str:
    """Point a requirement at a new version, keeping its operator.

    Extras (sorted) and environment markers are preserved. Other clauses,
    such as upper bounds, are dropped since they would exclude the new
    version. A bare ">" becomes ">=".

    Examples:
        update_requirement("requests>=2.0,<3", "3.1.0") → "requests>=3.1.0"
        update_requirement("pkg[b,a]==1.0", "1.5.0") → "pkg[a,b]==1.5.0"
    """
    req = Requirement(dep_str)
    spec = _declaring_specifier(req)
    operator = spec.operator if spec else "=="
    if operator == ">":
        operator = ">="
    extras = f"[{','.join(sorted(req.extras))}]" if req.extras else ""
    marker = f"; {req.marker}" if req.marker else ""
    return f"{req.name}{extras}{operator}{version}{marker}"


def read_dependencies(pyproject_path: Path) -> list[DependencyRecord]:
    """Read every versioned dependency declared in a pyproject.toml.

    Unversioned requirements are skipped since there is nothing to compare.

    Raises:
        ManifestError: If the file cannot be read or a requirement is invalid.
    """
    doc = load_pyproject(pyproject_path)
    records: list[DependencyRecord] = []
    for dep_str in get_all_dependency_strings(doc):
        try:
            name = dep_canonical_name(dep_str)
            version = declared_version(dep_str)
        except InvalidRequirement as exc:
            raise ManifestError(f"invalid requirement {dep_str!r}: {exc}") from exc
        if version is not None:
            records.append(
                DependencyRecord(name=name, version=version, requirement=dep_str)
            )
    return records


def read_declared_versions(pyproject_path: Path) -> dict[str, str]:
    """Map canonical name → declared version; the last declaration of a name wins."""
    return {r.name: r.version for r in read_dependencies(pyproject_path)}


def rewrite_dependency(pyproject_path: Path, name: str, version: str) -> int:
    """Update every requirement for name to the given version.

    Requirements are rewritten in all locations:
    - [project].dependencies
    - [project].optional-dependencies.*
    - [dependency-groups].*

    Uses tomlkit to preserve formatting and comments.

    Returns:
        Number of requirement strings that were rewritten.
    """
    doc = load_pyproject(pyproject_path)
    project = cast(dict[str, Any], doc.get("project", {}))
    target = canonicalize_name(name)
    count = 0

    deps = project.get("dependencies")
    if isinstance(deps, list):
        count += _update_dep_list(deps, target, version)

    opt_deps = project.get("optional-dependencies")
    if isinstance(opt_deps, dict):
        for group in opt_deps.values():
            if isinstance(group, list):
                count += _update_dep_list(group, target, version)

    dep_groups = doc.get("dependency-groups")
    if isinstance(dep_groups, dict):
        for group in dep_groups.values():
            if isinstance(group, list):
                count += _update_dep_list(group, target, version)

    if count:
        save_pyproject(pyproject_path, doc)
    else:
        warn(f"{name} not found in {pyproject_path}")
    return count


def _update_dep_list(deps: list, name: str, version: str) -> int:
    """Rewrite requirements for name in a list, modifying in place."""
    count = 0
    for i, dep_str in enumerate(deps):
        if not isinstance(dep_str, str):
            continue
        if dep_canonical_name(dep_str) == name:
            deps[i] = update_requirement(dep_str, version)
            count += 1
    return count
