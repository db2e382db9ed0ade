"""Exclusive file lock serialising changes to one reverse proxy."""

from __future__ import annotations

import fcntl
import json
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator

from decotv.errors import LockTimeoutError

_POLL_INTERVAL = 0.05


@dataclass
class LockHandle:
    path: Path
    wait_ms: int


@contextmanager
def proxy_lock(path: Path, timeout: float) -> Generator[LockHandle, None, None]:
    """Hold an exclusive ``flock`` on *path* for the duration of the block.

    The lock file is left behind after release; its JSON body names the last
    holder for diagnostics.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(str(path), os.O_RDWR | os.O_CREAT, 0o644)
    start = time.monotonic()
    try:
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() - start >= timeout:
                    holder = _read_holder(path)
                    raise LockTimeoutError(
                        f"Timed out after {timeout:.1f}s waiting for {path}"
                        + (f" (held by pid {holder})" if holder else "")
                    ) from None
                time.sleep(_POLL_INTERVAL)

        wait_ms = int((time.monotonic() - start) * 1000)
        metadata = {
            "pid": os.getpid(),
            "path": str(path),
            "acquired_at": datetime.now(timezone.utc).isoformat(),
        }
        os.ftruncate(fd, 0)
        os.pwrite(fd, json.dumps(metadata).encode(), 0)
        try:
            yield LockHandle(path=path, wait_ms=wait_ms)
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
    finally:
        os.close(fd)


def _read_holder(path: Path) -> int | None:
    try:
        return int(json.loads(path.read_text()).get("pid"))
    except (OSError, ValueError, TypeError, AttributeError):
        return None
