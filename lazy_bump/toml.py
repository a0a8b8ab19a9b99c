"""TOML reading and writing utilities.

Uses tomlkit to preserve formatting and comments when modifying pyproject.toml
files. This is important for maintaining readable, diff-friendly files.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import tomlkit
from packaging.requirements import InvalidRequirement, Requirement
from packaging.utils import canonicalize_name
from tomlkit.exceptions import ParseError

from .errors import ManifestError

PRIVATE_CLASSIFIER = "Private :: Do Not Upload"
WORKSPACE_PROTOCOL = "workspace:"


def load_pyproject(path: Path) -> tomlkit.TOMLDocument:
    """Load and parse a pyproject.toml file.

    Returns a TOMLDocument that preserves formatting when modified and saved.

    Raises:
        ManifestError: If the file cannot be parsed.
    """
    try:
        return tomlkit.parse(path.read_text())
    except ParseError as exc:
        raise ManifestError(f"Cannot parse {path}: {exc}") from exc


def save_pyproject(path: Path, doc: tomlkit.TOMLDocument) -> None:
    """Save a TOMLDocument back to disk, preserving original formatting."""
    path.write_text(tomlkit.dumps(doc))


def _unwrap(value: Any) -> Any:
    return value.unwrap() if hasattr(value, "unwrap") else value


def get_tool_table(doc: tomlkit.TOMLDocument, tool: str) -> dict[str, Any]:
    """Return [tool.<tool>] as a plain dict (empty when absent)."""
    return _unwrap(doc.get("tool", {}).get(tool, {})) or {}


def get_project_name(doc: tomlkit.TOMLDocument, fallback: str) -> str:
    """Extract the canonical package name from [project].name.

    Names are normalized per PEP 503 (lowercase, hyphens instead of
    underscores) for consistent comparison.

    Args:
        doc: Parsed pyproject.toml document.
        fallback: Value to return if name is not specified.
    """
    return canonicalize_name(doc.get("project", {}).get("name", fallback))


def get_project_version(doc: tomlkit.TOMLDocument) -> str:
    """Extract version from [project].version, defaulting to '0.0.0'."""
    return str(doc.get("project", {}).get("version", "0.0.0"))


def is_private(doc: tomlkit.TOMLDocument, tool: str = "lazy-bump") -> bool:
    """A package is private if it opts out of uploads or sets private = true."""
    classifiers = doc.get("project", {}).get("classifiers", [])
    if PRIVATE_CLASSIFIER in classifiers:
        return True
    return bool(get_tool_table(doc, tool).get("private", False))


def get_workspace_sources(doc: tomlkit.TOMLDocument) -> set[str]:
    """Names declared as workspace members in [tool.uv.sources]."""
    sources = doc.get("tool", {}).get("uv", {}).get("sources", {})
    return {
        canonicalize_name(name)
        for name, source in sources.items()
        if isinstance(source, dict) and source.get("workspace")
    }


def _dependency_map(dep_strings: list[str], workspace: set[str]) -> dict[str, str]:
    """Map canonical name → raw specifier for a list of PEP 508 strings.

    Members of the workspace get a "workspace:" prefix; an unconstrained
    workspace dependency becomes "workspace:*".
    """
    deps: dict[str, str] = {}
    for dep_str in dep_strings:
        # Skip include-group tables and other non-string entries.
        if not isinstance(dep_str, str):
            continue
        try:
            req = Requirement(dep_str)
        except InvalidRequirement as exc:
            raise ManifestError(f"Invalid dependency {dep_str!r}: {exc}") from exc
        name = canonicalize_name(req.name)
        spec = str(req.specifier)
        if name in workspace:
            spec = f"{WORKSPACE_PROTOCOL}{spec or '*'}"
        deps[name] = spec
    return deps


def get_dependency_tables(
    doc: tomlkit.TOMLDocument,
) -> tuple[dict[str, str], dict[str, str], dict[str, str]]:
    """Collect (dependencies, dev_dependencies, peer_dependencies).

    - dependencies ← [project].dependencies
    - dev_dependencies ← every [dependency-groups].* list (PEP 735)
    - peer_dependencies ← every [project].optional-dependencies.* list
    """
    workspace = get_workspace_sources(doc)
    project = doc.get("project", {})

    runtime = list(project.get("dependencies", []))
    dev: list[str] = []
    for group_deps in doc.get("dependency-groups", {}).values():
        dev.extend(group_deps)
    optional: list[str] = []
    for group_deps in project.get("optional-dependencies", {}).values():
        optional.extend(group_deps)

    return (
        _dependency_map(runtime, workspace),
        _dependency_map(dev, workspace),
        _dependency_map(optional, workspace),
    )


def get_workspace_member_globs(doc: tomlkit.TOMLDocument) -> list[str]:
    """Extract workspace member glob patterns from [tool.uv.workspace].

    These patterns (e.g., "packages/*", "libs/*") define which directories
    contain workspace packages. Returns an empty list when none are defined.
    """
    members = doc.get("tool", {}).get("uv", {}).get("workspace", {}).get("members")
    return [str(m) for m in members] if members else []
