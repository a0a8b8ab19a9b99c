"""Plan computation and application.

compute_plan gathers everything the engine needs (packages, override
files, published versions and commits) and builds the release plan.
apply_plan writes the result back into the pyproject.toml files.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from .config import BumpConfig
from .deps import internal_dep_versions, rewrite_pyproject
from .models import OverrideFile, PackageInfo, PackageReleaseInfo, ReleasePlan
from .overrides import consume_override_files, read_override_files
from .planner import build_release_plan
from .sources import GitCommitSource, RegistryClient, RunCache, fetch_release_infos
from .workspace import discover_packages, get_single_package

logger = logging.getLogger(__name__)


@dataclass
class PlanRun:
    """A computed plan together with the inputs needed to apply it."""

    plan: ReleasePlan
    repo_root: Path
    packages: list[PackageInfo]
    overrides: list[OverrideFile]
    monorepo: bool


async def gather_release_infos(
    root: Path, config: BumpConfig
) -> tuple[Path, list[PackageInfo], bool, list[PackageReleaseInfo]]:
    """Discover packages and fetch their baseline data.

    Returns:
        (repo root, packages, monorepo flag, release infos)
    """
    source = GitCommitSource(str(root), RunCache())
    repo_root = Path(await source.git_root())

    packages = discover_packages(root, config, repo_root)
    monorepo = bool(packages)
    if not monorepo:
        packages = [get_single_package(root, repo_root)]
    tag_format = config.tag_format if monorepo else config.single_tag_format

    async with RegistryClient(config.index_url) as registry:
        infos = await fetch_release_infos(
            packages,
            source,
            registry,
            tag_format=tag_format,
            concurrency=config.concurrency,
        )
    return repo_root, packages, monorepo, infos


def compute_plan(
    root: Path,
    config: BumpConfig,
    *,
    preid: str | None = None,
    graduate: bool = False,
) -> PlanRun:
    """Compute the release plan for the repository at ``root``.

    Raises:
        FetchError: If git or the registry cannot be read.
        ManifestError: If a pyproject.toml cannot be read.
    """
    overrides = read_override_files(root, config.override_dir)
    repo_root, packages, monorepo, infos = asyncio.run(gather_release_infos(root, config))
    logger.debug(
        "Planning %d packages with %d override files", len(packages), len(overrides)
    )

    plan = build_release_plan(
        infos,
        packages,
        overrides,
        config,
        git_root=str(repo_root),
        monorepo=monorepo,
        preid=preid,
        graduate=graduate,
    )
    return PlanRun(
        plan=plan,
        repo_root=repo_root,
        packages=packages,
        overrides=overrides,
        monorepo=monorepo,
    )


def applied_overrides(plan: ReleasePlan, overrides: list[OverrideFile]) -> list[OverrideFile]:
    """Override files that took effect and can be consumed.

    A global file is applied once anything is bumped. A scoped file is
    applied when one of its packages is bumped and none of them failed.
    """
    bumped = set(plan.bumped_names)
    failed = {f.package for f in plan.failures}
    if not bumped:
        return []

    applied: list[OverrideFile] = []
    for o in overrides:
        if o.is_global:
            applied.append(o)
            continue
        targets = {o.package} if o.package else set(o.packages or ())
        if targets & bumped and not targets & failed:
            applied.append(o)
    return applied


def apply_plan(
    repo_root: Path,
    plan: ReleasePlan,
    packages: list[PackageInfo],
    overrides: list[OverrideFile],
) -> list[OverrideFile]:
    """Write every bump into its pyproject.toml and consume applied override files.

    Args:
        repo_root: Directory that package paths are relative to.
        plan: The plan to apply.
        packages: Every package in the workspace.
        overrides: Override files that were read for the plan.

    Returns:
        The override files that were consumed.
    """
    by_name = {p.name: p for p in packages}
    for bump in plan.bumps:
        pkg = by_name[bump.package]
        pins = internal_dep_versions(pkg, plan)
        if bump.new_version == pkg.version and not pins:
            continue
        rewrite_pyproject(repo_root / pkg.path / "pyproject.toml", bump.new_version, pins)
        logger.info("%s: %s -> %s", bump.package, bump.current_version, bump.new_version)

    consumed = applied_overrides(plan, overrides)
    consume_override_files(consumed)
    return consumed
