"""Tests for OS detection."""

from __future__ import annotations

from pathlib import Path

import pytest

from decotv.errors import DependencyMissingError, UnsupportedOSError
from decotv.services.system import detect_os, read_os_release


def _os_release(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "os-release"
    path.write_text(content)
    return path


class TestDetectOs:
    def test_ubuntu(self, tmp_path: Path):
        path = _os_release(tmp_path, 'NAME="Ubuntu"\nID=ubuntu\nVERSION_ID="22.04"\n')
        assert detect_os(path) == "ubuntu"
        assert read_os_release(path)["VERSION_ID"] == "22.04"

    def test_derivative(self, tmp_path: Path):
        path = _os_release(tmp_path, 'ID=linuxmint\nID_LIKE="ubuntu debian"\n')
        assert detect_os(path) == "linuxmint"

    def test_unsupported(self, tmp_path: Path):
        path = _os_release(tmp_path, 'ID="centos"\nID_LIKE="rhel fedora"\n')
        with pytest.raises(UnsupportedOSError, match="centos"):
            detect_os(path)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(UnsupportedOSError):
            detect_os(tmp_path / "missing")

    def test_unsupported_is_dependency_error(self):
        assert issubclass(UnsupportedOSError, DependencyMissingError)
