"""lazy-bump configuration using Pydantic.

Configuration lives in the root pyproject.toml under ``[tool.lazy-bump]``::

    [tool.lazy-bump]
    versioning = "independent"
    prerelease = "beta"

    [tool.lazy-bump.types]
    docs = "patch"

    [tool.lazy-bump.packages]
    include = ["packages/*", "libs/*"]
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError
from .models import Severity, VersioningStrategyName
from .toml import get_tool_table, load_pyproject

TOOL_NAME = "lazy-bump"

DEFAULT_TYPES: dict[str, Severity | None] = {
    "feat": "minor",
    "fix": "patch",
    "docs": None,
    "style": None,
    "refactor": "patch",
    "perf": "patch",
    "test": None,
    "build": None,
    "ci": None,
    "chore": None,
    "revert": "patch",
}


class PackagesConfig(BaseModel):
    """Where to look for packages when there is no uv workspace."""

    include: list[str] = Field(default_factory=lambda: ["packages/*"])
    exclude: list[str] = Field(default_factory=list)


class BumpConfig(BaseModel):
    """Settings for one lazy-bump run.

    Attributes:
        versioning: independent, fixed or synced.
        types: Commit type → severity; None means the type never releases.
               User entries are merged over DEFAULT_TYPES.
        prerelease: Global pre-release channel (alpha, beta, rc, ...).
        graduate: Promote 0.x packages to 1.0.0 on their next release.
        tag_format: Tag pattern for monorepo packages.
        single_tag_format: Tag pattern for a single-package repository.
        override_dir: Directory holding override files.
        index_url: Base URL of the registry JSON API.
        concurrency: Maximum number of packages fetched at once.
    """

    versioning: VersioningStrategyName = "independent"
    types: dict[str, Severity | None] = Field(default_factory=lambda: dict(DEFAULT_TYPES))
    prerelease: str | None = None
    graduate: bool = False
    tag_format: str = "{name}/v{version}"
    single_tag_format: str = "v{version}"
    override_dir: str = ".bump"
    index_url: str = "https://pypi.org/pypi"
    concurrency: int = Field(default=8, ge=1, le=64)
    packages: PackagesConfig = Field(default_factory=PackagesConfig)

    @field_validator("types", mode="before")
    @classmethod
    def _merge_default_types(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        # TOML has no null, so "none" / "" / false disable a type.
        cleaned = {
            k: (None if v in (None, False, "", "none") else v) for k, v in value.items()
        }
        return {**DEFAULT_TYPES, **cleaned}

    @field_validator("prerelease", mode="before")
    @classmethod
    def _empty_prerelease(cls, value: Any) -> Any:
        if value in (False, ""):
            return None
        return value


def load_config(root: Path) -> BumpConfig:
    """Load configuration from ``root/pyproject.toml``.

    A missing file or missing ``[tool.lazy-bump]`` table yields defaults.

    Raises:
        ConfigError: If the table fails validation.
    """
    pyproject = root / "pyproject.toml"
    if not pyproject.exists():
        return BumpConfig()

    table = get_tool_table(load_pyproject(pyproject), TOOL_NAME)
    try:
        return BumpConfig.model_validate(table)
    except ValidationError as exc:
        raise ConfigError(
            f"Invalid [tool.{TOOL_NAME}] configuration:\n{exc}",
            suggestion=f"Check the [tool.{TOOL_NAME}] table in {pyproject}",
        ) from exc
