"""lazy-bump: decide the next version of every package in a repository.

Commits, published versions, dependency edges and hand-written override
files go in; an ordered list of version bumps comes out.
"""

from __future__ import annotations

from .models import ConventionalCommit, PackageInfo, ReleasePlan, VersionBump
from .planner import build_release_plan

__all__ = [
    "ConventionalCommit",
    "PackageInfo",
    "ReleasePlan",
    "VersionBump",
    "build_release_plan",
]
