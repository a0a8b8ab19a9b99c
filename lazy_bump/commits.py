"""Conventional commit classification.

Turns raw commits into ConventionalCommit records, resolves a set of them
to a single release severity, and decides which commits are relevant to a
given package in a monorepo.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

from .models import SEVERITY_RANK, ConventionalCommit, RawCommit, Severity

# type(scope)!: subject
_HEADER_RE = re.compile(r"^(\w+)(?:\(([^)]+)\))?(!)?\s*:\s*(.+)$")
_BREAKING_FOOTERS = ("BREAKING CHANGE:", "BREAKING-CHANGE:")

# Subjects of commits produced by a release itself.
_RELEASE_SUBJECT_PATTERNS = (
    re.compile(r"^v?\d+\.\d+\.\d+$"),
    re.compile(r"^@[\w/-]+@\d+\.\d+\.\d+$"),
)


def parse_conventional_commit(commit: RawCommit) -> ConventionalCommit | None:
    """Parse a raw commit against the conventional-commit grammar.

    Returns None when the subject line does not match
    ``type(scope)!: subject``. A commit is breaking when it carries the
    ``!`` marker or its body has a BREAKING CHANGE footer.

    Examples:
        "feat(api)!: drop v1" → type="feat", scope="api", breaking=True
        "Update readme" → None
    """
    match = _HEADER_RE.match(commit.message.strip())
    if not match:
        return None

    commit_type, scope, bang, subject = match.groups()
    subject = subject.strip()
    if not subject:
        return None

    body = commit.body or ""
    breaking = bool(bang) or any(footer in body for footer in _BREAKING_FOOTERS)

    return ConventionalCommit(
        hash=commit.hash,
        type=commit_type,
        scope=scope or None,
        subject=subject,
        body=body or None,
        breaking=breaking,
        # Graduation is only requested through config or the CLI.
        graduate=False,
        files=tuple(commit.files),
    )


def is_release_commit(commit: ConventionalCommit) -> bool:
    """Check whether a commit was produced by a previous release.

    Such commits must not trigger another bump on the next run.
    """
    if commit.type == "chore" and commit.scope == "release":
        return True
    return any(p.match(commit.subject) for p in _RELEASE_SUBJECT_PATTERNS)


def classify_commits(commits: Iterable[RawCommit]) -> list[ConventionalCommit]:
    """Parse raw commits, dropping non-conventional and release commits."""
    classified: list[ConventionalCommit] = []
    for raw in commits:
        parsed = parse_conventional_commit(raw)
        if parsed is not None and not is_release_commit(parsed):
            classified.append(parsed)
    return classified


def determine_release_type(
    commits: Iterable[ConventionalCommit],
    types: Mapping[str, Severity | None],
) -> Severity | None:
    """Resolve commits to the single severity they require.

    Any breaking commit forces "major". Otherwise the highest severity
    among the commit types wins; types mapped to None, or not mapped at
    all, contribute nothing. Returns None when nothing triggers a release.
    """
    commits = list(commits)
    if any(c.breaking for c in commits):
        return "major"

    highest: Severity | None = None
    for commit in commits:
        severity = types.get(commit.type)
        if severity is None:
            continue
        if highest is None or SEVERITY_RANK[severity] > SEVERITY_RANK[highest]:
            highest = severity
    return highest


def group_commits_by_type(
    commits: Iterable[ConventionalCommit],
) -> dict[str, list[ConventionalCommit]]:
    groups: dict[str, list[ConventionalCommit]] = {}
    for commit in commits:
        groups.setdefault(commit.type, []).append(commit)
    return groups


def group_commits_by_scope(
    commits: Iterable[ConventionalCommit],
) -> dict[str, list[ConventionalCommit]]:
    """Group commits by scope; unscoped commits land under "other"."""
    groups: dict[str, list[ConventionalCommit]] = {}
    for commit in commits:
        groups.setdefault(commit.scope or "other", []).append(commit)
    return groups


def _relative_package_path(package_path: str, git_root: str | None) -> str:
    path = package_path
    if git_root and path.startswith(git_root):
        path = path[len(git_root) :]
    path = path.strip("/")
    if path.startswith("./"):
        path = path[2:]
    return path


def file_matches_package(
    file_path: str, package_path: str, git_root: str | None = None
) -> bool:
    """Check whether a repo-relative file path lies inside a package.

    Args:
        file_path: Path relative to the repository root.
        package_path: Package directory, absolute or relative to the root.
        git_root: Absolute repository root, used to relativise package_path.
    """
    rel = _relative_package_path(package_path, git_root)
    # Root package owns every file.
    if rel in ("", "."):
        return True
    return file_path == rel or file_path.startswith(rel + "/")


def filter_commits_for_package(
    commits: Iterable[ConventionalCommit],
    package_name: str,
    package_path: str | None = None,
    git_root: str | None = None,
) -> list[ConventionalCommit]:
    """Select the commits relevant to one package.

    Commits that list changed files are attributed strictly by path: they
    count only if a file lies inside the package directory. Commits without
    file data fall back to scope matching, where no scope means "affects
    everything" and the scope may be the full name or the short name after
    the last "/".
    """
    short_name = package_name.rsplit("/", 1)[-1]
    relevant: list[ConventionalCommit] = []

    for commit in commits:
        if commit.files and package_path is not None:
            if any(file_matches_package(f, package_path, git_root) for f in commit.files):
                relevant.append(commit)
            continue

        if not commit.scope or commit.scope in (package_name, short_name):
            relevant.append(commit)

    return relevant
