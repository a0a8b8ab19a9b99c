"""Exception hierarchy for lazy-bump.

Per-package errors (bad versions, bad override files) are collected into the
release plan as failures. Everything else propagates to the CLI.
"""

from __future__ import annotations


class BumpError(Exception):
    """Base class for all lazy-bump errors."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion


class ConfigError(BumpError):
    """The [tool.lazy-bump] table is invalid."""


class ManifestError(BumpError):
    """A pyproject.toml could not be read or is missing required data."""


class InvalidVersionError(BumpError):
    """A version string is not valid semver or cannot be incremented."""


class OverrideError(BumpError):
    """An override file carries an unusable release instruction."""


class FetchError(BumpError):
    """A baseline lookup (git, registry) failed."""


def format_error(error: BaseException) -> str:
    """Render an error for terminal output, including any suggestion."""
    if isinstance(error, BumpError):
        message = error.message
        if error.suggestion:
            message += f"\n\nHint: {error.suggestion}"
        return message
    return str(error)
