"""Shell and git utilities.

Thin wrappers around git subprocess calls, plus output formatting helpers
used by the CLI.
"""

from __future__ import annotations

import asyncio
import subprocess

import click


async def git(*args: str, cwd: str | None = None) -> str:
    """Run a git command without blocking the event loop.

    Returns stdout with trailing whitespace stripped.

    Raises:
        subprocess.CalledProcessError: If git exits non-zero.
    """
    proc = await asyncio.create_subprocess_exec(
        "git",
        *args,
        cwd=cwd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise subprocess.CalledProcessError(
            proc.returncode or 1,
            ["git", *args],
            output=stdout.decode(),
            stderr=stderr.decode(),
        )
    return stdout.decode().rstrip()


def step(msg: str) -> None:
    """Print a visually distinct step header between phases of a run."""
    click.echo(f"\n{'─' * 60}\n{msg}\n{'─' * 60}")
