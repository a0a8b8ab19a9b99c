"""Dependency graph utilities.

Finds the packages that must be re-released because something they depend
on was bumped. When package A depends on package B and B is bumped, A gets
a patch bump too, and so on up the graph.
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import PackageInfo


def find_dependent_packages(
    packages: Iterable[PackageInfo], target_names: set[str]
) -> list[PackageInfo]:
    """Find packages outside target_names that depend on any of them.

    Only dependencies and dev-dependencies count; a peer (optional)
    dependency never obligates a re-release.
    """
    return [
        pkg
        for pkg in packages
        if pkg.name not in target_names and pkg.cascade_edges & target_names
    ]


def calculate_cascade(
    packages: list[PackageInfo], bumped_names: Iterable[str]
) -> list[PackageInfo]:
    """Compute the transitive set of packages that need a cascade bump.

    Repeatedly adds every package that depends on an already-bumped one
    until no new packages appear. Membership is set-based, so cycles
    terminate.

    Private packages are left out of the result but still join the bumped
    set, so packages depending on them are reached.

    Args:
        packages: Every package in the workspace.
        bumped_names: Names already selected for a bump.

    Returns:
        Public packages to cascade-bump, in breadth-first discovery order.

    Example:
        If C depends on B and B depends on A, bumping A cascades to [B, C].
    """
    all_bumped = set(bumped_names)
    cascade: list[PackageInfo] = []

    dependents = find_dependent_packages(packages, all_bumped)
    while dependents:
        for pkg in dependents:
            all_bumped.add(pkg.name)
            if not pkg.private:
                cascade.append(pkg)
        dependents = find_dependent_packages(packages, all_bumped)

    return cascade
