"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
import tomlkit

from lazy_bump.models import ConventionalCommit, PackageInfo, PackageReleaseInfo


@pytest.fixture
def tmp_pyproject(tmp_path: Path) -> Path:
    """Create a temporary pyproject.toml file."""
    content = """\
[project]
name = "test-package"
version = "1.0.0"
dependencies = [
    "requests>=2.0",
    "internal-dep>=1.0",
]

[project.optional-dependencies]
cli = ["click>=8.0", "another-internal>=0.5"]

[dependency-groups]
test = ["pytest>=8.0", "group-internal>=0.1"]
"""
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text(content)
    return pyproject


@pytest.fixture
def sample_toml_doc() -> tomlkit.TOMLDocument:
    """Create a sample TOML document for a workspace member."""
    content = """\
[project]
name = "My_Package"
version = "2.0.0"
dependencies = ["click>=8.0", "core-lib>=1.0"]
classifiers = ["Programming Language :: Python :: 3"]

[project.optional-dependencies]
docs = ["sphinx>=7.0", "theme-lib"]

[dependency-groups]
test = ["pytest>=8.0", "test-utils"]

[tool.uv.sources]
core-lib = { workspace = true }
test-utils = { workspace = true }

[tool.uv.workspace]
members = ["packages/*", "libs/*"]
"""
    return tomlkit.parse(content)


def make_commit(
    type_: str = "fix",
    *,
    hash_: str = "abc1234",
    scope: str | None = None,
    subject: str = "change something",
    breaking: bool = False,
    graduate: bool = False,
    files: tuple[str, ...] = (),
) -> ConventionalCommit:
    return ConventionalCommit(
        hash=hash_,
        type=type_,
        scope=scope,
        subject=subject,
        breaking=breaking,
        graduate=graduate,
        files=files,
    )


def make_package(
    name: str,
    version: str = "1.0.0",
    *,
    path: str | None = None,
    private: bool = False,
    deps: tuple[str, ...] = (),
    dev: tuple[str, ...] = (),
    peer: tuple[str, ...] = (),
) -> PackageInfo:
    return PackageInfo(
        name=name,
        version=version,
        path=path or f"packages/{name}",
        private=private,
        dependencies={d: "workspace:*" for d in deps},
        dev_dependencies={d: "workspace:*" for d in dev},
        peer_dependencies={d: "workspace:*" for d in peer},
    )


def make_info(
    pkg: PackageInfo,
    commits: list[ConventionalCommit] | None = None,
    published: str | None = "same",
) -> PackageReleaseInfo:
    """Release info whose published version defaults to the manifest version."""
    return PackageReleaseInfo(
        package=pkg,
        published_version=pkg.version if published == "same" else published,
        commits=commits or [],
    )


@pytest.fixture
def commit() -> Callable[..., ConventionalCommit]:
    return make_commit


@pytest.fixture
def package() -> Callable[..., PackageInfo]:
    return make_package


@pytest.fixture
def info() -> Callable[..., PackageReleaseInfo]:
    return make_info


@pytest.fixture
def workspace(tmp_path: Path) -> Callable[..., Path]:
    """Build a uv workspace on disk.

    Call with {dir_name: pyproject_body} for each member under packages/.
    """

    def build(members: dict[str, str], root_extra: str = "") -> Path:
        (tmp_path / "pyproject.toml").write_text(
            '[tool.uv.workspace]\nmembers = ["packages/*"]\n' + root_extra
        )
        for dir_name, body in members.items():
            member = tmp_path / "packages" / dir_name
            member.mkdir(parents=True)
            (member / "pyproject.toml").write_text(body)
        return tmp_path

    return build
