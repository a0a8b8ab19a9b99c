"""Override files: hand-authored release instructions.

Override files are markdown files in the override directory (``.bump/`` by
default) with YAML frontmatter::

    ---
    release: patch | minor | major | "1.2.3"
    package: my-package        # optional
    packages:                  # optional
      - my-package
      - other-package
    prerelease: beta           # optional
    ---

    Free-form changelog text.

A file with neither ``package`` nor ``packages`` applies to every package.
Files are consumed (deleted) once a plan containing them has been applied.
"""

from __future__ import annotations

import logging
import random
import re
import time
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import yaml

from .errors import OverrideError
from .models import ConventionalCommit, OverrideFile, ReleaseType, Severity, max_severity
from .versions import increment, is_explicit_version, parse_version

logger = logging.getLogger(__name__)

SEVERITY_KEYWORDS: tuple[Severity, ...] = ("patch", "minor", "major")

_FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*(?:\n|$)(.*)$", re.DOTALL)


def parse_frontmatter(text: str) -> tuple[dict, str]:
    """Split a markdown document into (frontmatter dict, body).

    Documents without frontmatter return an empty dict and the stripped text.
    """
    match = _FRONTMATTER_RE.match(text)
    if not match:
        return {}, text.strip()
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as exc:
        raise OverrideError(f"Invalid frontmatter: {exc}") from exc
    if not isinstance(data, dict):
        return {}, text.strip()
    return data, match.group(2).strip()


def _as_str(value: object) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def parse_override_file(path: Path) -> OverrideFile | None:
    """Parse a single override file.

    Returns None when the file has no ``release`` field.
    """
    frontmatter, content = parse_frontmatter(path.read_text())
    release = _as_str(frontmatter.get("release"))
    if release is None:
        logger.debug("Ignoring %s: no release field", path.name)
        return None

    packages = frontmatter.get("packages")
    if packages is not None and not isinstance(packages, list):
        packages = [packages]

    return OverrideFile(
        id=path.stem,
        path=str(path),
        release=release,
        package=_as_str(frontmatter.get("package")),
        packages=[str(p) for p in packages] if packages else None,
        prerelease=_as_str(frontmatter.get("prerelease")),
        content=content,
    )


def read_override_files(root: Path, override_dir: str = ".bump") -> list[OverrideFile]:
    """Read every override file, ordered lexicographically by id.

    The ordering decides which pre-release channel wins when several
    files name one.
    """
    directory = root / override_dir
    if not directory.is_dir():
        return []

    overrides: list[OverrideFile] = []
    for path in sorted(directory.glob("*.md"), key=lambda p: p.stem):
        try:
            override = parse_override_file(path)
        except OverrideError as exc:
            logger.warning("Ignoring %s: %s", path.name, exc)
            continue
        if override is not None:
            overrides.append(override)
    return overrides


def _new_override_id() -> str:
    """Generate a unique id: base-36 millisecond timestamp plus random suffix."""
    digits = "0123456789abcdefghijklmnopqrstuvwxyz"
    n = int(time.time() * 1000)
    stamp = ""
    while n:
        n, r = divmod(n, 36)
        stamp = digits[r] + stamp
    suffix = "".join(random.choice(digits) for _ in range(4))
    return f"{stamp}-{suffix}"


def write_override_file(
    root: Path,
    release: str,
    *,
    packages: list[str] | None = None,
    prerelease: str | None = None,
    message: str = "",
    override_dir: str = ".bump",
) -> Path:
    """Create a new override file and return its path.

    Raises:
        OverrideError: If release is neither a severity keyword nor a version.
    """
    if release not in SEVERITY_KEYWORDS and not is_explicit_version(release):
        raise OverrideError(
            f"Invalid release: {release!r}",
            suggestion='Use patch, minor, major or an explicit version like "1.2.3"',
        )

    frontmatter: dict[str, object] = {"release": release}
    if prerelease:
        frontmatter["prerelease"] = prerelease
    if packages and len(packages) == 1:
        frontmatter["package"] = packages[0]
    elif packages:
        frontmatter["packages"] = list(packages)

    # Quote explicit versions so YAML keeps them as strings.
    header = yaml.safe_dump(frontmatter, sort_keys=False, default_style=None).strip()
    if is_explicit_version(release):
        header = header.replace(f"release: {release}", f'release: "{release}"', 1)

    directory = root / override_dir
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{_new_override_id()}.md"
    body = f"---\n{header}\n---\n\n{message}".strip() + "\n"
    path.write_text(body)
    return path


def consume_override_files(overrides: Iterable[OverrideFile]) -> None:
    """Delete override files that have been applied."""
    for override in overrides:
        if override.path:
            Path(override.path).unlink(missing_ok=True)


def filter_overrides_for_package(
    overrides: Iterable[OverrideFile], package_name: str
) -> list[OverrideFile]:
    """Select the override files that apply to a package.

    Global files apply everywhere; scoped files only where named.
    """
    return [
        o
        for o in overrides
        if o.is_global
        or o.package == package_name
        or (o.packages is not None and package_name in o.packages)
    ]


def validate_overrides(overrides: Iterable[OverrideFile]) -> None:
    """Raise OverrideError for any file whose release field is unusable."""
    for o in overrides:
        if o.release in SEVERITY_KEYWORDS:
            continue
        if is_explicit_version(o.release):
            parse_version(o.release)
            continue
        raise OverrideError(
            f"Override file {o.id!r} has invalid release {o.release!r}",
            suggestion='Use patch, minor, major or an explicit version like "1.2.3"',
        )


def get_explicit_version(overrides: Iterable[OverrideFile]) -> str | None:
    """Return the highest explicit version among the files, if any.

    When several files pin different versions the highest wins.
    """
    highest: str | None = None
    for o in overrides:
        if not is_explicit_version(o.release):
            continue
        if highest is None or parse_version(o.release) > parse_version(highest):
            highest = o.release
    return highest


def get_highest_severity(overrides: Iterable[OverrideFile]) -> Severity | None:
    severities = [o.release for o in overrides if o.release in SEVERITY_KEYWORDS]
    return max_severity(*severities)  # type: ignore[arg-type]


def get_prerelease(overrides: Iterable[OverrideFile]) -> str | None:
    """Return the first pre-release channel in file order."""
    for o in overrides:
        if o.prerelease:
            return o.prerelease
    return None


def generate_override_changelog(overrides: Iterable[OverrideFile]) -> str:
    """Join the non-empty bodies of the files, blank-line separated."""
    return "\n\n".join(o.content for o in overrides if o.content)


@dataclass(frozen=True)
class ResolvedRelease:
    """Outcome of merging commit-derived and override-derived intent."""

    new_version: str
    release_type: ReleaseType
    override_content: str | None


def resolve_release(
    current_version: str,
    commit_severity: Severity | None,
    overrides: list[OverrideFile],
    *,
    preid: str | None = None,
    graduate: bool = False,
    commits: Iterable[ConventionalCommit] = (),
) -> ResolvedRelease | None:
    """Merge override files with the commit-derived severity.

    Precedence, highest first:
    1. An explicit version in any file is used as-is ("manual").
    2. Otherwise the greater of the override severity and the commit
       severity drives the increment.
    3. With neither, there is no bump.

    The first pre-release channel named by a file takes precedence over
    ``preid``. Graduation is requested by ``graduate`` or by any commit.

    Raises:
        OverrideError: If a file is malformed or pins a version that is
            not greater than current_version.
        InvalidVersionError: If current_version is not valid semver.
    """
    validate_overrides(overrides)
    content = generate_override_changelog(overrides) or None

    explicit = get_explicit_version(overrides)
    if explicit is not None:
        if parse_version(explicit) <= parse_version(current_version):
            raise OverrideError(
                f"Explicit version {explicit} is not greater than {current_version}",
                suggestion="Remove the override file or pin a higher version",
            )
        return ResolvedRelease(explicit, "manual", content)

    severity = max_severity(get_highest_severity(overrides), commit_severity)
    if severity is None:
        return None

    channel = get_prerelease(overrides) or preid
    wants_graduation = graduate or any(c.graduate for c in commits)
    new_version, release_type = increment(
        current_version, severity, channel, wants_graduation
    )
    return ResolvedRelease(new_version, release_type, content)
