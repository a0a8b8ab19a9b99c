"""Versioning strategies.

- independent: every package is versioned on its own commits
- fixed: one shared version, driven by every commit in the repository
- synced: one shared version, driven by the highest per-package severity

All three share severity resolution (determine_release_type) and the
override merge / increment step (resolve_release).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping

from .commits import determine_release_type
from .errors import BumpError, InvalidVersionError, OverrideError
from .models import (
    ConventionalCommit,
    OverrideFile,
    PackageFailure,
    PackageReleaseInfo,
    Severity,
    VersionBump,
    VersioningStrategyName,
    max_severity,
)
from .overrides import resolve_release
from .reconcile import classify_baseline, reconcile_package, relevant_commits
from .versions import get_highest_version

StrategyResult = tuple[list[VersionBump], list[PackageFailure]]


def failure_for(package: str, exc: BumpError) -> PackageFailure:
    return PackageFailure(package=package, reason=exc.message)


class VersioningStrategy(ABC):
    """Turns per-package baseline data into primary version bumps."""

    name: VersioningStrategyName

    def __init__(
        self,
        types: Mapping[str, Severity | None],
        *,
        git_root: str | None = None,
        monorepo: bool = True,
        preid: str | None = None,
        graduate: bool = False,
    ) -> None:
        self.types = types
        self.git_root = git_root
        self.monorepo = monorepo
        self.preid = preid
        self.graduate = graduate

    def reconcile(
        self, info: PackageReleaseInfo, overrides: list[OverrideFile]
    ) -> VersionBump | None:
        return reconcile_package(
            info,
            overrides,
            self.types,
            git_root=self.git_root,
            monorepo=self.monorepo,
            preid=self.preid,
            graduate=self.graduate,
        )

    def commits_for(self, info: PackageReleaseInfo) -> list[ConventionalCommit]:
        return relevant_commits(info, git_root=self.git_root, monorepo=self.monorepo)

    @abstractmethod
    def plan(
        self, infos: list[PackageReleaseInfo], overrides: list[OverrideFile]
    ) -> StrategyResult:
        """Compute bumps for the public packages in ``infos``.

        Malformed input for a package is reported as a PackageFailure and
        never stops the other packages.
        """


class IndependentStrategy(VersioningStrategy):
    name = "independent"

    def plan(
        self, infos: list[PackageReleaseInfo], overrides: list[OverrideFile]
    ) -> StrategyResult:
        bumps: list[VersionBump] = []
        failures: list[PackageFailure] = []
        for info in infos:
            try:
                bump = self.reconcile(info, overrides)
            except (InvalidVersionError, OverrideError) as exc:
                failures.append(failure_for(info.package.name, exc))
                continue
            if bump is not None:
                bumps.append(bump)
        return bumps, failures


class SharedVersionStrategy(VersioningStrategy):
    """Base for strategies where every package moves to one shared version.

    Packages that are unpublished, already advanced or behind the registry
    are reconciled on their own; the rest form the shared pool.
    """

    @abstractmethod
    def shared_severity(self, pool: list[PackageReleaseInfo]) -> Severity | None:
        """Severity required by the pool's commits."""

    @abstractmethod
    def commits_in_bump(
        self, info: PackageReleaseInfo, pool: list[PackageReleaseInfo]
    ) -> list[ConventionalCommit]:
        """Commits listed on a package's bump."""

    def plan(
        self, infos: list[PackageReleaseInfo], overrides: list[OverrideFile]
    ) -> StrategyResult:
        # Slots keep discovery order when pooled bumps are filled in later.
        slots: list[VersionBump | PackageReleaseInfo] = []
        failures: list[PackageFailure] = []
        pool: list[PackageReleaseInfo] = []

        for info in infos:
            try:
                status = classify_baseline(info.package.version, info.published_version)
                if status == "current":
                    pool.append(info)
                    slots.append(info)
                    continue
                bump = self.reconcile(info, overrides)
            except (InvalidVersionError, OverrideError) as exc:
                failures.append(failure_for(info.package.name, exc))
                continue
            if bump is not None:
                slots.append(bump)

        shared = self._shared_bumps(pool, overrides, failures)
        bumps = [
            slot if isinstance(slot, VersionBump) else shared[slot.package.name]
            for slot in slots
            if isinstance(slot, VersionBump) or slot.package.name in shared
        ]
        return bumps, failures

    def _shared_bumps(
        self,
        pool: list[PackageReleaseInfo],
        overrides: list[OverrideFile],
        failures: list[PackageFailure],
    ) -> dict[str, VersionBump]:
        if not pool:
            return {}

        names = {info.package.name for info in pool}
        applicable = [
            o
            for o in overrides
            if o.is_global or o.package in names or names & set(o.packages or ())
        ]
        # Pool versions were already validated by classify_baseline.
        highest = get_highest_version(info.package.version for info in pool)
        all_commits = [c for info in pool for c in self.commits_for(info)]

        try:
            resolved = resolve_release(
                highest,
                self.shared_severity(pool),
                applicable,
                preid=self.preid,
                graduate=self.graduate,
                commits=all_commits,
            )
        except (InvalidVersionError, OverrideError) as exc:
            failures.extend(failure_for(info.package.name, exc) for info in pool)
            return {}

        if resolved is None:
            return {}
        return {
            info.package.name: VersionBump(
                package=info.package.name,
                current_version=info.package.version,
                new_version=resolved.new_version,
                release_type=resolved.release_type,
                commits=self.commits_in_bump(info, pool),
                override_content=resolved.override_content,
            )
            for info in pool
        }


class FixedStrategy(SharedVersionStrategy):
    name = "fixed"

    def _all_commits(self, pool: list[PackageReleaseInfo]) -> list[ConventionalCommit]:
        seen: set[str] = set()
        commits: list[ConventionalCommit] = []
        for info in pool:
            for commit in info.commits:
                if commit.hash not in seen:
                    seen.add(commit.hash)
                    commits.append(commit)
        return commits

    def shared_severity(self, pool: list[PackageReleaseInfo]) -> Severity | None:
        return determine_release_type(self._all_commits(pool), self.types)

    def commits_in_bump(
        self, info: PackageReleaseInfo, pool: list[PackageReleaseInfo]
    ) -> list[ConventionalCommit]:
        return self._all_commits(pool)


class SyncedStrategy(SharedVersionStrategy):
    name = "synced"

    def shared_severity(self, pool: list[PackageReleaseInfo]) -> Severity | None:
        return max_severity(
            *(determine_release_type(self.commits_for(info), self.types) for info in pool)
        )

    def commits_in_bump(
        self, info: PackageReleaseInfo, pool: list[PackageReleaseInfo]
    ) -> list[ConventionalCommit]:
        return self.commits_for(info)


STRATEGIES: dict[str, type[VersioningStrategy]] = {
    IndependentStrategy.name: IndependentStrategy,
    FixedStrategy.name: FixedStrategy,
    SyncedStrategy.name: SyncedStrategy,
}


def get_strategy(name: str) -> type[VersioningStrategy]:
    """Look up a strategy class by its config name.

    Raises:
        KeyError: If no strategy has that name.
    """
    return STRATEGIES[name]
