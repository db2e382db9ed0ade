"""Subprocess runner shared by the docker, nginx and certbot wrappers."""

from __future__ import annotations

import shutil
import subprocess
from collections.abc import Sequence

from decotv.errors import DependencyMissingError

TIMEOUT_RETURNCODE = 124


def has(program: str) -> bool:
    """Return True when *program* is on PATH."""
    return shutil.which(program) is not None


def run(
    cmd: Sequence[str],
    *,
    timeout: float | None = None,
    input: str | None = None,
    capture: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run *cmd* without raising on a non-zero exit.

    A missing executable raises DependencyMissingError. An expired timeout is
    reported as a completed process with exit code 124 and a "timed out"
    message on stderr, so callers handle it like any other failure.
    """
    args = list(cmd)
    try:
        return subprocess.run(  # noqa: S603
            args,
            capture_output=capture,
            text=True,
            check=False,
            timeout=timeout,
            input=input,
        )
    except FileNotFoundError as exc:
        raise DependencyMissingError(f"Required program not found: {args[0]}") from exc
    except subprocess.TimeoutExpired:
        return subprocess.CompletedProcess(
            args,
            returncode=TIMEOUT_RETURNCODE,
            stdout="",
            stderr=f"{args[0]} timed out after {timeout:.0f}s",
        )


def output_of(result: subprocess.CompletedProcess[str]) -> str:
    return (result.stderr or result.stdout or "no output").strip()
