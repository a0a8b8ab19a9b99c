"""Tests for lazy_bump.models and lazy_bump.errors."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from lazy_bump.errors import BumpError, ConfigError, format_error
from lazy_bump.models import (
    ConventionalCommit,
    OverrideFile,
    PackageInfo,
    ReleasePlan,
    VersionBump,
    max_severity,
)


class TestMaxSeverity:
    def test_ignores_none(self) -> None:
        assert max_severity(None, "patch", None) == "patch"

    def test_ordering(self) -> None:
        assert max_severity("minor", "major", "patch") == "major"

    def test_all_none(self) -> None:
        assert max_severity(None, None) is None


class TestConventionalCommit:
    def test_frozen(self) -> None:
        commit = ConventionalCommit(hash="1", type="fix", subject="x")
        with pytest.raises(ValidationError):
            commit.type = "feat"


class TestPackageInfo:
    def test_cascade_edges_exclude_peers(self) -> None:
        pkg = PackageInfo(
            name="web",
            version="1.0.0",
            path="packages/web",
            dependencies={"core": "workspace:*"},
            dev_dependencies={"testkit": "workspace:*"},
            peer_dependencies={"plugins": ""},
        )
        assert pkg.cascade_edges == {"core", "testkit"}


class TestOverrideFile:
    def test_global(self) -> None:
        assert OverrideFile(id="a", release="patch").is_global
        assert not OverrideFile(id="a", release="patch", package="core").is_global
        assert not OverrideFile(id="a", release="patch", packages=["core"]).is_global

    def test_package_names_are_canonical(self) -> None:
        assert OverrideFile(id="a", release="patch", package="My_Pkg").package == "my-pkg"
        scoped = OverrideFile(id="a", release="patch", packages=["Core.Lib", "web"])
        assert scoped.packages == ["core-lib", "web"]


class TestReleasePlan:
    def test_bumped_names(self) -> None:
        plan = ReleasePlan(
            bumps=[
                VersionBump(package="a", current_version="1.0.0", new_version="1.0.1", release_type="patch"),
                VersionBump(package="b", current_version="1.0.0", new_version="2.0.0", release_type="major"),
            ]
        )
        assert plan.bumped_names == ["a", "b"]

    def test_release_type_is_validated(self) -> None:
        with pytest.raises(ValidationError):
            VersionBump(package="a", current_version="1.0.0", new_version="1.0.1", release_type="huge")


class TestErrors:
    def test_format_with_suggestion(self) -> None:
        error = ConfigError("Bad config", suggestion="Fix it")
        assert format_error(error) == "Bad config\n\nHint: Fix it"

    def test_format_without_suggestion(self) -> None:
        assert format_error(BumpError("Plain")) == "Plain"

    def test_str_is_message(self) -> None:
        assert str(BumpError("Plain")) == "Plain"
