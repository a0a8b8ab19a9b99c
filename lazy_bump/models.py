"""Data models for lazy-bump.

These Pydantic models are the values that flow through the release
resolution engine: parsed commits, package manifests, override files and
the resulting version bumps.
"""

from __future__ import annotations

from typing import Literal

from packaging.utils import canonicalize_name
from pydantic import BaseModel, ConfigDict, Field, field_validator

Severity = Literal["patch", "minor", "major"]

ReleaseType = Literal[
    "major",
    "minor",
    "patch",
    "premajor",
    "preminor",
    "prepatch",
    "prerelease",
    "initial",
    "manual",
]

VersioningStrategyName = Literal["independent", "fixed", "synced"]

# none < patch < minor < major; pre-release variants share the ordering.
SEVERITY_RANK: dict[str, int] = {
    "patch": 1,
    "minor": 2,
    "major": 3,
    "prepatch": 1,
    "preminor": 2,
    "premajor": 3,
}


def max_severity(*severities: Severity | None) -> Severity | None:
    """Return the highest of the given severities, ignoring None."""
    highest: Severity | None = None
    for severity in severities:
        if severity is None:
            continue
        if highest is None or SEVERITY_RANK[severity] > SEVERITY_RANK[highest]:
            highest = severity
    return highest


class RawCommit(BaseModel):
    """A commit as delivered by a commit source, before classification.

    Attributes:
        hash: Full commit hash.
        message: Subject line.
        body: Everything after the subject line.
        files: Repo-relative paths changed by the commit. Empty when the
               source does not expose changed files.
    """

    hash: str
    message: str
    body: str = ""
    files: list[str] = Field(default_factory=list)


class ConventionalCommit(BaseModel):
    """A commit parsed against the conventional-commit grammar."""

    model_config = ConfigDict(frozen=True)

    hash: str
    type: str
    scope: str | None = None
    subject: str
    body: str | None = None
    breaking: bool = False
    graduate: bool = False
    files: tuple[str, ...] = ()


class PackageInfo(BaseModel):
    """Metadata for a single package in the repository.

    Attributes:
        name: Canonical package name.
        version: Version from the package manifest.
        path: Path of the package directory relative to the repo root
              ("." for a single-package repository).
        private: Private packages are never released.
        dependencies: Runtime dependency name → raw specifier. Workspace
                      members are recorded as "workspace:<specifier>".
        dev_dependencies: Development dependency name → raw specifier.
        peer_dependencies: Optional (extra) dependency name → raw specifier.
                           Peers never trigger a cascade bump.
    """

    name: str
    version: str
    path: str
    private: bool = False
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict)
    peer_dependencies: dict[str, str] = Field(default_factory=dict)

    @property
    def cascade_edges(self) -> set[str]:
        """Names this package depends on for cascade purposes."""
        return set(self.dependencies) | set(self.dev_dependencies)


class OverrideFile(BaseModel):
    """A hand-authored release instruction read from the override directory.

    Attributes:
        id: File name without the .md extension. Files are ordered by id.
        path: Location on disk, used when consuming the file.
        release: A severity keyword or an explicit version string.
        package: Single package this file applies to, PEP 503 normalised.
        packages: Several packages this file applies to, PEP 503 normalised.
        prerelease: Pre-release channel to use (alpha, beta, rc, ...).
        content: Markdown body, carried through for changelog rendering.
    """

    id: str
    path: str = ""
    release: str
    package: str | None = None
    packages: list[str] | None = None
    prerelease: str | None = None
    content: str = ""

    @field_validator("package", mode="after")
    @classmethod
    def _canonical_package(cls, value: str | None) -> str | None:
        return canonicalize_name(value) if value else value

    @field_validator("packages", mode="after")
    @classmethod
    def _canonical_packages(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [canonicalize_name(name) for name in value]

    @property
    def is_global(self) -> bool:
        return not self.package and not self.packages


class UpdatedDep(BaseModel):
    """A dependency whose new version caused a cascade bump."""

    name: str
    version: str


class VersionBump(BaseModel):
    """Records a version change for a package.

    This is the engine's output unit; one per package that changes.
    """

    package: str
    current_version: str
    new_version: str
    release_type: ReleaseType
    commits: list[ConventionalCommit] = Field(default_factory=list)
    updated_deps: list[UpdatedDep] | None = None
    override_content: str | None = None


class PackageFailure(BaseModel):
    """A package whose bump could not be computed."""

    package: str
    reason: str


class PackageReleaseInfo(BaseModel):
    """Baseline data fetched for one package before reconciliation.

    Attributes:
        package: The package manifest data.
        published_version: Latest version on the registry, if any.
        baseline_tag: Git tag the commits were collected from.
        commits: Classified commits since the baseline, not yet filtered
                 down to this package.
    """

    package: PackageInfo
    published_version: str | None = None
    baseline_tag: str | None = None
    commits: list[ConventionalCommit] = Field(default_factory=list)


class ReleasePlan(BaseModel):
    """A best-effort plan: successful bumps plus per-package failures."""

    bumps: list[VersionBump] = Field(default_factory=list)
    failures: list[PackageFailure] = Field(default_factory=list)

    @property
    def bumped_names(self) -> list[str]:
        return [b.package for b in self.bumps]
