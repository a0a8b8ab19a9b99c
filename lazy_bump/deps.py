"""Writing bumped versions back into pyproject.toml files.

Sets the new [project].version and pins every bumped workspace dependency
to the exact version it is being released at.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import Any, cast

from packaging.requirements import Requirement
from packaging.utils import canonicalize_name

from .errors import ManifestError
from .models import PackageInfo, ReleasePlan
from .toml import load_pyproject, save_pyproject


def dep_canonical_name(dep_str: str) -> str:
    """Canonical (PEP 503) name of a PEP 508 dependency string.

    Examples:
        "requests>=2.0" → "requests"
        "My_Package[extra]~=1.0" → "my-package"
    """
    return canonicalize_name(Requirement(dep_str).name)


def pin_dep(dep_str: str, version: str) -> str:
    """Replace the specifier of a dependency with an exact pin, keeping extras.

    Examples:
        pin_dep("core>=1.0", "1.4.0") → "core==1.4.0"
        pin_dep("core[cli,async]~=1.0", "1.5.0") → "core[async,cli]==1.5.0"
    """
    req = Requirement(dep_str)
    extras = f"[{','.join(sorted(req.extras))}]" if req.extras else ""
    marker = f"; {req.marker}" if req.marker else ""
    return f"{req.name}{extras}=={version}{marker}"


def _dependency_lists(doc: Any) -> Iterator[list]:
    """Yield every dependency list of a pyproject document.

    [project].dependencies, [project].optional-dependencies.* and
    [dependency-groups].*.
    """
    project = doc.get("project", {})
    deps = project.get("dependencies")
    if isinstance(deps, list):
        yield deps
    for table in (project.get("optional-dependencies"), doc.get("dependency-groups")):
        if isinstance(table, dict):
            for group in table.values():
                if isinstance(group, list):
                    yield group


def _pin_dep_list(deps: list, versions: dict[str, str]) -> None:
    for i, dep_str in enumerate(deps):
        # include-group tables and the like are left alone
        if not isinstance(dep_str, str):
            continue
        name = dep_canonical_name(dep_str)
        if name in versions:
            deps[i] = pin_dep(dep_str, versions[name])


def rewrite_pyproject(
    pyproject_path: Path,
    new_version: str,
    internal_dep_versions: dict[str, str],
) -> None:
    """Set a package's version and pin its bumped internal dependencies.

    Formatting and comments are preserved.

    Args:
        pyproject_path: Path to the package's pyproject.toml.
        new_version: Version to write into [project].version.
        internal_dep_versions: Canonical name → new version of every bumped
            workspace package.

    Raises:
        ManifestError: If the file has no [project] table.
    """
    doc = load_pyproject(pyproject_path)
    if "project" not in doc:
        raise ManifestError(f"{pyproject_path} has no [project] table")
    project = cast(dict[str, Any], doc["project"])
    project["version"] = new_version

    if internal_dep_versions:
        for deps in _dependency_lists(doc):
            _pin_dep_list(deps, internal_dep_versions)

    save_pyproject(pyproject_path, doc)


def internal_dep_versions(pkg: PackageInfo, plan: ReleasePlan) -> dict[str, str]:
    """New versions of the bumped packages that ``pkg`` depends on."""
    declared = pkg.cascade_edges | set(pkg.peer_dependencies)
    return {b.package: b.new_version for b in plan.bumps if b.package in declared}
