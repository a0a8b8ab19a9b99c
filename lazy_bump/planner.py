"""Release plan builder.

Runs the configured versioning strategy over every public package, then
appends patch bumps for the packages that depend on something bumped.
"""

from __future__ import annotations

import logging

from .config import BumpConfig
from .errors import InvalidVersionError
from .graph import calculate_cascade
from .models import (
    OverrideFile,
    PackageInfo,
    PackageReleaseInfo,
    ReleasePlan,
    UpdatedDep,
    VersionBump,
)
from .strategies import failure_for, get_strategy
from .versions import bump_patch

logger = logging.getLogger(__name__)


def cascade_bumps(
    packages: list[PackageInfo],
    plan: ReleasePlan,
) -> ReleasePlan:
    """Add a patch bump for every package reached through the dependency graph.

    Packages whose own computation failed are neither bumped nor used as a
    path for propagation.
    """
    failed = {f.package for f in plan.failures}
    nodes = [p for p in packages if p.name not in failed]
    new_versions = {b.package: b.new_version for b in plan.bumps}

    bumps = list(plan.bumps)
    failures = list(plan.failures)
    for pkg in calculate_cascade(nodes, new_versions):
        try:
            new_version = bump_patch(pkg.version)
        except InvalidVersionError as exc:
            failures.append(failure_for(pkg.name, exc))
            continue
        edges = list(pkg.dependencies) + [
            d for d in pkg.dev_dependencies if d not in pkg.dependencies
        ]
        updated = [UpdatedDep(name=d, version=new_versions[d]) for d in edges if d in new_versions]
        logger.debug("%s: cascade %s -> %s", pkg.name, pkg.version, new_version)
        bumps.append(
            VersionBump(
                package=pkg.name,
                current_version=pkg.version,
                new_version=new_version,
                release_type="patch",
                updated_deps=updated,
            )
        )
        new_versions[pkg.name] = new_version

    return ReleasePlan(bumps=bumps, failures=failures)


def build_release_plan(
    infos: list[PackageReleaseInfo],
    packages: list[PackageInfo],
    overrides: list[OverrideFile],
    config: BumpConfig,
    *,
    git_root: str | None = None,
    monorepo: bool = True,
    preid: str | None = None,
    graduate: bool = False,
) -> ReleasePlan:
    """Compute the full release plan.

    Args:
        infos: Baseline data per package, fetched before planning starts.
        packages: Every package in the workspace, private ones included.
        overrides: Override files, ordered by id.
        config: Type mapping, versioning strategy and global defaults.
        git_root: Absolute repository root, for file-based commit attribution.
        monorepo: False for a single-package repository.
        preid: Pre-release channel; falls back to config.prerelease.
        graduate: Graduate 0.x packages; or-ed with config.graduate.

    Returns:
        Primary bumps in discovery order followed by cascade bumps, plus
        a failure record for every package that could not be computed.
    """
    strategy = get_strategy(config.versioning)(
        config.types,
        git_root=git_root,
        monorepo=monorepo,
        preid=preid or config.prerelease,
        graduate=graduate or config.graduate,
    )
    public = [info for info in infos if not info.package.private]
    bumps, failures = strategy.plan(public, overrides)
    plan = ReleasePlan(bumps=bumps, failures=failures)

    if not monorepo:
        return plan
    return cascade_bumps(packages, plan)
