"""Baseline reconciliation.

Decides, per package, whether the manifest version or the published
version is the baseline, and which release path applies.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Literal

from .commits import determine_release_type, filter_commits_for_package
from .models import (
    ConventionalCommit,
    OverrideFile,
    PackageReleaseInfo,
    Severity,
    VersionBump,
)
from .overrides import (
    filter_overrides_for_package,
    generate_override_changelog,
    resolve_release,
    validate_overrides,
)
from .versions import parse_version

logger = logging.getLogger(__name__)

BaselineStatus = Literal["initial", "advanced", "behind", "current"]


def classify_baseline(manifest_version: str, published_version: str | None) -> BaselineStatus:
    """Compare the manifest version against the registry.

    - "initial": nothing has been published yet
    - "advanced": the manifest is already ahead of the registry
    - "behind": the manifest is older than the registry
    - "current": both agree, so commits drive the next version

    Raises:
        InvalidVersionError: If either version is not valid semver.
    """
    if published_version is None:
        return "initial"
    local = parse_version(manifest_version)
    published = parse_version(published_version)
    if local > published:
        return "advanced"
    if local < published:
        return "behind"
    return "current"


def relevant_commits(
    info: PackageReleaseInfo, *, git_root: str | None = None, monorepo: bool = True
) -> list[ConventionalCommit]:
    """Commits attributed to the package. Outside a monorepo every commit counts."""
    if not monorepo:
        return list(info.commits)
    return filter_commits_for_package(
        info.commits, info.package.name, info.package.path, git_root
    )


def reconcile_package(
    info: PackageReleaseInfo,
    overrides: list[OverrideFile],
    types: Mapping[str, Severity | None],
    *,
    git_root: str | None = None,
    monorepo: bool = True,
    preid: str | None = None,
    graduate: bool = False,
) -> VersionBump | None:
    """Compute the bump for one package, or None when it has nothing to release.

    Raises:
        InvalidVersionError: If the manifest or published version is unparsable.
        OverrideError: If an applicable override file is malformed.
    """
    pkg = info.package
    commits = relevant_commits(info, git_root=git_root, monorepo=monorepo)
    applicable = filter_overrides_for_package(overrides, pkg.name)
    validate_overrides(applicable)
    status = classify_baseline(pkg.version, info.published_version)

    if status == "initial":
        parse_version(pkg.version)
        if not commits and not applicable:
            logger.debug("%s: unpublished with no changes, skipping", pkg.name)
            return None
        logger.info("%s: first release at %s", pkg.name, pkg.version)
        return VersionBump(
            package=pkg.name,
            current_version=pkg.version,
            new_version=pkg.version,
            release_type="initial",
            commits=commits,
            override_content=generate_override_changelog(applicable) or None,
        )

    if status == "advanced":
        logger.info(
            "%s: manifest %s is ahead of published %s",
            pkg.name,
            pkg.version,
            info.published_version,
        )
        return VersionBump(
            package=pkg.name,
            current_version=info.published_version,
            new_version=pkg.version,
            release_type="manual",
            commits=commits,
            override_content=generate_override_changelog(applicable) or None,
        )

    if status == "behind":
        logger.warning(
            "%s: manifest %s is behind published %s, skipping",
            pkg.name,
            pkg.version,
            info.published_version,
        )
        return None

    resolved = resolve_release(
        pkg.version,
        determine_release_type(commits, types),
        applicable,
        preid=preid,
        graduate=graduate,
        commits=commits,
    )
    if resolved is None:
        logger.debug("%s: no release-worthy changes", pkg.name)
        return None
    return VersionBump(
        package=pkg.name,
        current_version=pkg.version,
        new_version=resolved.new_version,
        release_type=resolved.release_type,
        commits=commits,
        override_content=resolved.override_content,
    )
