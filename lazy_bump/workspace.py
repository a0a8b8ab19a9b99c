"""Workspace discovery.

Finds the packages of a repository: either the members of a uv workspace
(or the configured include globs), or the single package at the root.
"""

from __future__ import annotations

import glob
import logging
from pathlib import Path

from .config import TOOL_NAME, BumpConfig
from .errors import ManifestError
from .models import PackageInfo
from .toml import (
    get_dependency_tables,
    get_project_name,
    get_project_version,
    get_workspace_member_globs,
    is_private,
    load_pyproject,
)

logger = logging.getLogger(__name__)


def read_package(directory: Path, root: Path) -> PackageInfo:
    """Read one package's manifest; its path is recorded relative to root."""
    doc = load_pyproject(directory / "pyproject.toml")
    dependencies, dev_dependencies, peer_dependencies = get_dependency_tables(doc)
    rel = directory.resolve().relative_to(root.resolve())
    return PackageInfo(
        name=get_project_name(doc, directory.name),
        version=get_project_version(doc),
        path=rel.as_posix(),
        private=is_private(doc, TOOL_NAME),
        dependencies=dependencies,
        dev_dependencies=dev_dependencies,
        peer_dependencies=peer_dependencies,
    )


def find_member_dirs(root: Path, config: BumpConfig) -> list[Path]:
    """Expand workspace member globs into package directories.

    Uses [tool.uv.workspace].members from the root pyproject.toml when
    present, otherwise the configured include globs.
    """
    patterns: list[str] = []
    root_pyproject = root / "pyproject.toml"
    if root_pyproject.exists():
        patterns = get_workspace_member_globs(load_pyproject(root_pyproject))
    if not patterns:
        patterns = config.packages.include

    member_dirs: list[Path] = []
    for pattern in patterns:
        for match in sorted(glob.glob(str(root / pattern))):
            p = Path(match)
            if (p / "pyproject.toml").exists() and p.resolve() != root.resolve():
                member_dirs.append(p)
    return member_dirs


def discover_packages(
    root: Path, config: BumpConfig, repo_root: Path | None = None
) -> list[PackageInfo]:
    """Scan the workspace and discover all member packages.

    Packages whose path or name contains an exclude pattern are skipped.
    Paths are recorded relative to repo_root (the git checkout), which
    defaults to root.

    Returns:
        Packages in discovery order; empty for a single-package repository.
    """
    packages: list[PackageInfo] = []
    seen: set[str] = set()
    for directory in find_member_dirs(root, config):
        pkg = read_package(directory, repo_root or root)
        if any(ex in pkg.path or ex in pkg.name for ex in config.packages.exclude):
            logger.debug("Excluding %s (%s)", pkg.name, pkg.path)
            continue
        if pkg.name in seen:
            continue
        seen.add(pkg.name)
        packages.append(pkg)
    return packages


def get_single_package(root: Path, repo_root: Path | None = None) -> PackageInfo:
    """Read the root pyproject.toml as the repository's only package.

    Raises:
        ManifestError: If there is no pyproject.toml at the root.
    """
    if not (root / "pyproject.toml").exists():
        raise ManifestError(
            f"No pyproject.toml found in {root}",
            suggestion="Run lazy-bump from the repository root",
        )
    return read_package(root, repo_root or root)
