"""Baseline data sources: git history and the package registry.

Everything here performs I/O. The results are gathered into
PackageReleaseInfo records before any planning starts.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import httpx

from .commits import classify_commits
from .errors import FetchError
from .models import PackageInfo, PackageReleaseInfo, RawCommit
from .shell import git
from .versions import is_explicit_version, is_valid_version, parse_version

logger = logging.getLogger(__name__)

# Fields of one commit: \x01 starts a record, \x02 separates fields and
# \x03 ends the header; --name-only output follows it.
_LOG_FORMAT = "%x01%H%x02%s%x02%b%x03"


@dataclass
class RunCache:
    """Lookups shared by every package within a single run."""

    tags: list[str] | None = None
    git_root: str | None = None
    commit_logs: dict[str, list[RawCommit]] = field(default_factory=dict)


def format_tag(tag_format: str, name: str, version: str) -> str:
    """Render a tag, e.g. ("{name}/v{version}", "core", "1.2.0") → "core/v1.2.0"."""
    return tag_format.format(name=name, version=version)


def parse_tag_version(tag: str, tag_format: str, name: str) -> str | None:
    """Extract the version from a tag produced by ``tag_format`` for ``name``.

    Returns None when the tag belongs to another package or does not hold a
    valid version.
    """
    prefix, _, suffix = tag_format.partition("{version}")
    prefix = prefix.format(name=name)
    suffix = suffix.format(name=name)
    if not tag.startswith(prefix) or not tag.endswith(suffix):
        return None
    version = tag[len(prefix) : len(tag) - len(suffix)]
    return version if is_valid_version(version) else None


def find_tag_for_version(
    tags: Iterable[str], tag_format: str, name: str, version: str
) -> str | None:
    wanted = format_tag(tag_format, name, version)
    return wanted if wanted in set(tags) else None


def latest_tag_for_package(tags: Iterable[str], tag_format: str, name: str) -> str | None:
    """Return the package's tag with the highest version, if any."""
    best: tuple[Any, str] | None = None
    for tag in tags:
        version = parse_tag_version(tag, tag_format, name)
        if version is None:
            continue
        parsed = parse_version(version)
        if best is None or parsed > best[0]:
            best = (parsed, tag)
    return best[1] if best else None


def parse_git_log(output: str) -> list[RawCommit]:
    """Parse ``git log --name-only`` output produced with _LOG_FORMAT."""
    commits: list[RawCommit] = []
    for record in output.split("\x01"):
        if not record.strip():
            continue
        header, _, names = record.partition("\x03")
        parts = header.split("\x02")
        if len(parts) < 3:
            continue
        commit_hash, subject, body = parts[0], parts[1], parts[2]
        commits.append(
            RawCommit(
                hash=commit_hash.strip(),
                message=subject.strip(),
                body=body.strip(),
                files=[line.strip() for line in names.splitlines() if line.strip()],
            )
        )
    return commits


class GitCommitSource:
    """Reads tags and commit history from a local git checkout."""

    def __init__(self, cwd: str | None = None, cache: RunCache | None = None) -> None:
        self.cwd = cwd
        self.cache = cache or RunCache()

    async def _git(self, *args: str) -> str:
        try:
            return await git(*args, cwd=self.cwd)
        except subprocess.CalledProcessError as exc:
            raise FetchError(
                f"git {' '.join(args)} failed: {(exc.stderr or '').strip()}",
                suggestion="Run lazy-bump inside a git repository with at least one commit",
            ) from exc

    async def git_root(self) -> str:
        if self.cache.git_root is None:
            self.cache.git_root = await self._git("rev-parse", "--show-toplevel")
        return self.cache.git_root

    async def list_tags(self) -> list[str]:
        if self.cache.tags is None:
            output = await self._git("tag", "--list")
            self.cache.tags = [t for t in output.splitlines() if t.strip()]
        return self.cache.tags

    async def commits_since(self, ref: str | None) -> list[RawCommit]:
        """Commits reachable from HEAD but not from ``ref`` (all history if None)."""
        rev_range = f"{ref}..HEAD" if ref else "HEAD"
        if rev_range not in self.cache.commit_logs:
            output = await self._git("log", f"--format={_LOG_FORMAT}", "--name-only", rev_range)
            self.cache.commit_logs[rev_range] = parse_git_log(output)
        return self.cache.commit_logs[rev_range]


class RegistryClient:
    """Looks up published versions through the PyPI JSON API."""

    def __init__(
        self,
        index_url: str = "https://pypi.org/pypi",
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.index_url = index_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> RegistryClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def latest_version(self, name: str) -> str | None:
        """Latest published version of ``name``, or None if never published.

        Raises:
            FetchError: On any failure other than a 404.
        """
        url = f"{self.index_url}/{name}/json"
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise FetchError(f"Cannot reach {url}: {exc}") from exc

        if response.status_code == 404:
            return None
        try:
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPStatusError, ValueError) as exc:
            raise FetchError(f"Bad response from {url}: {exc}") from exc

        info = data.get("info") if isinstance(data, dict) else None
        if not isinstance(info, dict):
            raise FetchError(f"Bad response from {url}: missing project info")
        version = info.get("version")

        if not isinstance(version, str) or not is_explicit_version(version):
            logger.debug("%s: ignoring published version %r", name, version)
            return None
        return version


async def fetch_release_info(
    pkg: PackageInfo,
    source: GitCommitSource,
    registry: RegistryClient,
    tags: list[str],
    tag_format: str,
) -> PackageReleaseInfo:
    """Collect the published version, baseline tag and commits for one package."""
    if pkg.private:
        return PackageReleaseInfo(package=pkg)

    published = await registry.latest_version(pkg.name)
    tag = None
    if published is not None:
        tag = find_tag_for_version(tags, tag_format, pkg.name, published)
    if tag is None:
        tag = latest_tag_for_package(tags, tag_format, pkg.name)

    raw = await source.commits_since(tag)
    logger.debug("%s: published=%s baseline=%s commits=%d", pkg.name, published, tag, len(raw))
    return PackageReleaseInfo(
        package=pkg,
        published_version=published,
        baseline_tag=tag,
        commits=classify_commits(raw),
    )


async def fetch_release_infos(
    packages: list[PackageInfo],
    source: GitCommitSource,
    registry: RegistryClient,
    *,
    tag_format: str,
    concurrency: int = 8,
) -> list[PackageReleaseInfo]:
    """Fetch baseline data for every package, at most ``concurrency`` at a time.

    Results come back in the order of ``packages``. The first FetchError
    aborts the whole batch.
    """
    semaphore = asyncio.Semaphore(concurrency)
    tags = await source.list_tags()

    async def bounded(pkg: PackageInfo) -> PackageReleaseInfo:
        async with semaphore:
            return await fetch_release_info(pkg, source, registry, tags, tag_format)

    return list(await asyncio.gather(*(bounded(p) for p in packages)))
