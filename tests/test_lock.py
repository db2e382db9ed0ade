"""Tests for the proxy lock."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from decotv.errors import LockTimeoutError
from decotv.services.lock import proxy_lock


class TestProxyLock:
    def test_acquire_writes_metadata(self, tmp_path: Path):
        lock_path = tmp_path / "run" / "decotv-proxy.lock"
        with proxy_lock(lock_path, timeout=1.0) as handle:
            assert handle.path == lock_path
            assert handle.wait_ms >= 0
            data = json.loads(lock_path.read_text())
            assert data["pid"] == os.getpid()
            assert data["path"] == str(lock_path)
        assert lock_path.exists()

    def test_contention_times_out(self, tmp_path: Path):
        lock_path = tmp_path / "decotv-proxy.lock"
        with proxy_lock(lock_path, timeout=1.0):
            with pytest.raises(LockTimeoutError, match=f"held by pid {os.getpid()}"):
                with proxy_lock(lock_path, timeout=0.1):
                    pass

    def test_released_after_block(self, tmp_path: Path):
        lock_path = tmp_path / "decotv-proxy.lock"
        with proxy_lock(lock_path, timeout=1.0):
            pass
        with proxy_lock(lock_path, timeout=0.1) as handle:
            assert handle.path == lock_path

    def test_released_on_error(self, tmp_path: Path):
        lock_path = tmp_path / "decotv-proxy.lock"
        with pytest.raises(RuntimeError):
            with proxy_lock(lock_path, timeout=1.0):
                raise RuntimeError("boom")
        with proxy_lock(lock_path, timeout=0.1):
            pass
