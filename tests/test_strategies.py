"""Tests for lazy_bump.strategies."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from lazy_bump.config import DEFAULT_TYPES
from lazy_bump.models import ConventionalCommit, OverrideFile, PackageInfo, PackageReleaseInfo
from lazy_bump.strategies import (
    FixedStrategy,
    IndependentStrategy,
    SyncedStrategy,
    get_strategy,
)

MakeCommit = Callable[..., ConventionalCommit]
MakePackage = Callable[..., PackageInfo]
MakeInfo = Callable[..., PackageReleaseInfo]


class TestGetStrategy:
    @pytest.mark.parametrize(
        ("name", "cls"),
        [("independent", IndependentStrategy), ("fixed", FixedStrategy), ("synced", SyncedStrategy)],
    )
    def test_lookup(self, name: str, cls: type) -> None:
        assert get_strategy(name) is cls

    def test_unknown(self) -> None:
        with pytest.raises(KeyError):
            get_strategy("chaotic")


class TestIndependentStrategy:
    def test_each_package_on_its_own(
        self, package: MakePackage, info: MakeInfo, commit: MakeCommit
    ) -> None:
        feat_a = commit("feat", hash_="1", files=("packages/a/x.py",))
        fix_b = commit("fix", hash_="2", files=("packages/b/y.py",))
        infos = [
            info(package("a", "1.0.0"), [feat_a, fix_b]),
            info(package("b", "2.0.0"), [feat_a, fix_b]),
            info(package("c", "3.0.0"), [feat_a, fix_b]),
        ]
        bumps, failures = IndependentStrategy(DEFAULT_TYPES).plan(infos, [])
        assert failures == []
        assert [(b.package, b.new_version) for b in bumps] == [("a", "1.1.0"), ("b", "2.0.1")]

    def test_failures_do_not_stop_other_packages(
        self, package: MakePackage, info: MakeInfo, commit: MakeCommit
    ) -> None:
        infos = [
            info(package("bad", "not-semver"), [commit("fix")]),
            info(package("good", "1.0.0"), [commit("fix")]),
        ]
        bumps, failures = IndependentStrategy(DEFAULT_TYPES).plan(infos, [])
        assert [b.package for b in bumps] == ["good"]
        assert [f.package for f in failures] == ["bad"]
        assert "not-semver" in failures[0].reason

    def test_bad_override_fails_only_its_package(
        self, package: MakePackage, info: MakeInfo
    ) -> None:
        infos = [info(package("a", "1.0.0")), info(package("b", "1.0.0"))]
        overrides = [
            OverrideFile(id="1", release="0.5.0", package="a"),
            OverrideFile(id="2", release="minor", package="b"),
        ]
        bumps, failures = IndependentStrategy(DEFAULT_TYPES).plan(infos, overrides)
        assert [(b.package, b.new_version) for b in bumps] == [("b", "1.1.0")]
        assert [f.package for f in failures] == ["a"]


class TestFixedStrategy:
    def test_shared_version_from_all_commits(
        self, package: MakePackage, info: MakeInfo, commit: MakeCommit
    ) -> None:
        feat_a = commit("feat", hash_="1", files=("packages/a/x.py",))
        infos = [
            info(package("a", "1.2.0"), [feat_a]),
            info(package("b", "1.3.0"), [feat_a]),
        ]
        bumps, failures = FixedStrategy(DEFAULT_TYPES).plan(infos, [])
        assert failures == []
        assert [(b.package, b.current_version, b.new_version) for b in bumps] == [
            ("a", "1.2.0", "1.4.0"),
            ("b", "1.3.0", "1.4.0"),
        ]
        assert all(len(b.commits) == 1 for b in bumps)

    def test_no_commits_no_bumps(self, package: MakePackage, info: MakeInfo) -> None:
        infos = [info(package("a")), info(package("b"))]
        assert FixedStrategy(DEFAULT_TYPES).plan(infos, []) == ([], [])

    def test_override_drives_shared_version(self, package: MakePackage, info: MakeInfo) -> None:
        infos = [info(package("a", "1.0.0")), info(package("b", "1.0.0"))]
        overrides = [OverrideFile(id="1", release="major", package="b")]
        bumps, _ = FixedStrategy(DEFAULT_TYPES).plan(infos, overrides)
        assert {b.new_version for b in bumps} == {"2.0.0"}

    def test_unpublished_package_reconciled_alone(
        self, package: MakePackage, info: MakeInfo, commit: MakeCommit
    ) -> None:
        fix = commit("fix")
        infos = [
            info(package("new", "0.1.0"), [fix], published=None),
            info(package("old", "1.0.0"), [fix]),
        ]
        bumps, _ = FixedStrategy(DEFAULT_TYPES).plan(infos, [])
        assert [(b.package, b.new_version, b.release_type) for b in bumps] == [
            ("new", "0.1.0", "initial"),
            ("old", "1.0.1", "patch"),
        ]


class TestSyncedStrategy:
    def test_max_of_per_package_severities(
        self, package: MakePackage, info: MakeInfo, commit: MakeCommit
    ) -> None:
        feat_a = commit("feat", hash_="1", files=("packages/a/x.py",))
        fix_b = commit("fix", hash_="2", files=("packages/b/y.py",))
        infos = [
            info(package("a", "1.0.0"), [feat_a, fix_b]),
            info(package("b", "1.0.0"), [feat_a, fix_b]),
            info(package("c", "1.0.0"), [feat_a, fix_b]),
        ]
        bumps, _ = SyncedStrategy(DEFAULT_TYPES).plan(infos, [])
        assert [(b.package, b.new_version) for b in bumps] == [
            ("a", "1.1.0"),
            ("b", "1.1.0"),
            ("c", "1.1.0"),
        ]
        by_name = {b.package: [c.hash for c in b.commits] for b in bumps}
        assert by_name == {"a": ["1"], "b": ["2"], "c": []}

    def test_ignores_commits_outside_packages(
        self, package: MakePackage, info: MakeInfo, commit: MakeCommit
    ) -> None:
        breaking_docs = commit("feat", breaking=True, files=("docs/index.md",))
        infos = [info(package("a", "1.0.0"), [breaking_docs])]
        assert SyncedStrategy(DEFAULT_TYPES).plan(infos, []) == ([], [])

    def test_shared_failure_marks_every_pooled_package(
        self, package: MakePackage, info: MakeInfo
    ) -> None:
        infos = [info(package("a", "1.0.0")), info(package("b", "1.0.0"))]
        overrides = [OverrideFile(id="1", release="1.0.0")]
        bumps, failures = SyncedStrategy(DEFAULT_TYPES).plan(infos, overrides)
        assert bumps == []
        assert [f.package for f in failures] == ["a", "b"]
