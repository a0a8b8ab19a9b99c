"""Version parsing and bumping utilities.

Handles conversion between version strings and semver objects, the
initial-development (0.x) discount, graduation to 1.0.0 and pre-release
channels.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import semver

from .errors import InvalidVersionError
from .models import ReleaseType, Severity

_EXPLICIT_VERSION_RE = re.compile(r"^\d+\.\d+\.\d+")

_PRE_RELEASE_TYPES: dict[str, ReleaseType] = {
    "major": "premajor",
    "minor": "preminor",
    "patch": "prepatch",
}


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Raises:
        InvalidVersionError: If the string is not a valid semantic version.
    """
    try:
        return semver.Version.parse(version_str)
    except (ValueError, TypeError) as exc:
        raise InvalidVersionError(
            f"Invalid version: {version_str!r}",
            suggestion="Versions must look like MAJOR.MINOR.PATCH, e.g. 1.2.3",
        ) from exc


def is_valid_version(version_str: str) -> bool:
    return semver.Version.is_valid(version_str)


def is_explicit_version(release: str) -> bool:
    """Check if a release value is a literal version ("1.2.3") rather than a keyword."""
    return bool(_EXPLICIT_VERSION_RE.match(release))


def compare_versions(a: str, b: str) -> int:
    """Compare two versions, returning -1, 0 or 1."""
    return parse_version(a).compare(parse_version(b))


def get_highest_version(versions: Iterable[str]) -> str | None:
    """Return the highest valid version, ignoring invalid entries."""
    valid = [v for v in versions if is_valid_version(v)]
    if not valid:
        return None
    return str(max(parse_version(v) for v in valid))


def adjust_for_initial_development(
    version: semver.Version, severity: Severity
) -> Severity:
    """Apply the 0.x discount: major → minor and minor → patch.

    During initial development a breaking change only bumps the minor digit
    and a feature only bumps the patch digit.

    Examples:
        (0.3.1, "major") → "minor"
        (0.3.1, "minor") → "patch"
        (1.3.1, "major") → "major"
    """
    if version.major != 0:
        return severity
    if severity == "major":
        return "minor"
    if severity == "minor":
        return "patch"
    return severity


def _base_covers(version: semver.Version, severity: Severity) -> bool:
    """Whether a pre-release's base version already includes a bump of this size.

    1.2.0-rc.1 already carries a minor bump; 2.0.0-rc.1 carries a major.
    """
    if severity == "major":
        return version.minor == 0 and version.patch == 0
    if severity == "minor":
        return version.patch == 0
    return True


def _bump_release(version: semver.Version, severity: Severity) -> semver.Version:
    # A pre-release whose base covers the bump is finalised rather than bumped.
    if version.prerelease and _base_covers(version, severity):
        return version.finalize_version()
    if severity == "major":
        return version.bump_major()
    if severity == "minor":
        return version.bump_minor()
    return version.bump_patch()


def _prerelease_counter(prerelease: str) -> int:
    last = prerelease.rsplit(".", 1)[-1]
    return int(last) if last.isdigit() else -1


def _bump_prerelease(
    version: semver.Version, severity: Severity, preid: str
) -> tuple[semver.Version, ReleaseType]:
    if version.prerelease:
        channel = version.prerelease.split(".", 1)[0]
        if _base_covers(version, severity):
            base = version.finalize_version()
            if channel == preid:
                counter = _prerelease_counter(version.prerelease) + 1
                return base.replace(prerelease=f"{preid}.{counter}"), "prerelease"
            candidate = base.replace(prerelease=f"{preid}.0")
            if candidate > version:
                return candidate, _PRE_RELEASE_TYPES[severity]

    base = _bump_release(version.finalize_version(), severity)
    return base.replace(prerelease=f"{preid}.0"), _PRE_RELEASE_TYPES[severity]


def increment(
    current_version: str,
    severity: Severity,
    preid: str | None = None,
    graduate: bool = False,
) -> tuple[str, ReleaseType]:
    """Compute the next version and the release type to report for it.

    Rules, in order:
    1. During 0.x, major/minor are discounted one level.
    2. With graduate set on a 0.x version, jump straight to 1.0.0 and
       report "major" whatever severity was asked for.
    3. Otherwise increment at the (discounted) severity. With a preid the
       result is a pre-release, continuing the counter when the current
       version is already on that channel.

    The reported release type is the requested severity (or its pre-release
    variant), not the discounted one.

    Raises:
        InvalidVersionError: If current_version is not valid semver.
    """
    version = parse_version(current_version)

    if graduate and version.major == 0:
        return "1.0.0", "major"

    effective = adjust_for_initial_development(version, severity)

    if preid:
        new, release_type = _bump_prerelease(version, effective, preid)
        if release_type != "prerelease":
            release_type = _PRE_RELEASE_TYPES[severity]
        return str(new), release_type

    return str(_bump_release(version, effective)), severity


def increment_version(
    current_version: str,
    severity: Severity,
    preid: str | None = None,
    graduate: bool = False,
) -> str:
    """Increment a version and return only the new version string.

    Examples:
        ("0.3.1", "major") → "0.4.0"
        ("1.3.1", "major") → "2.0.0"
        ("1.0.0", "minor", "beta") → "1.1.0-beta.0"
        ("1.1.0-beta.0", "minor", "beta") → "1.1.0-beta.1"
    """
    return increment(current_version, severity, preid, graduate)[0]


def bump_patch(version_str: str) -> str:
    """Increment the patch version and return as a string.

    Examples:
        "1.2.3" → "1.2.4"
        "0.0.0" → "0.0.1"
    """
    return increment_version(version_str, "patch")


def format_version_tag(version: str, prefix: str = "v") -> str:
    return f"{prefix}{version}"


def parse_version_from_tag(tag: str, prefix: str = "v") -> str | None:
    """Extract a valid version from a tag like "v1.2.3", or None."""
    version = tag[len(prefix) :] if tag.startswith(prefix) else tag
    return version if is_valid_version(version) else None
