"""Tests for the docker wrappers."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from decotv.errors import DependencyMissingError, DockerError
from decotv.services import docker


def _completed(code: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess([], returncode=code, stdout=stdout, stderr=stderr)


@pytest.fixture(autouse=True)
def _clear_compose_cache():
    docker.compose_command.cache_clear()
    yield
    docker.compose_command.cache_clear()


class TestComposeCommand:
    def test_plugin(self):
        with patch("decotv.services.docker.has", return_value=True), \
             patch("decotv.services.docker.run", return_value=_completed(0)):
            assert docker.compose_command() == ("docker", "compose")

    def test_standalone(self):
        with patch("decotv.services.docker.has", side_effect=lambda p: p == "docker-compose"):
            assert docker.compose_command() == ("docker-compose",)

    def test_missing(self):
        with patch("decotv.services.docker.has", return_value=False):
            with pytest.raises(DependencyMissingError):
                docker.compose_command()


class TestDockerCommands:
    def test_compose_up(self):
        with patch("decotv.services.docker.compose_command", return_value=("docker", "compose")), \
             patch("decotv.services.docker.run", return_value=_completed(0)) as mock_run:
            docker.compose_up(Path("/opt/decotv/docker-compose.yml"))
        assert mock_run.call_args[0][0] == [
            "docker", "compose", "-f", "/opt/decotv/docker-compose.yml", "up", "-d", "--remove-orphans",
        ]

    def test_failure_raises(self):
        with patch("decotv.services.docker.run", return_value=_completed(1, stderr="no such network")):
            with pytest.raises(DockerError, match="no such network"):
                docker.ensure_network("decotv-net")

    def test_ensure_network_existing(self):
        with patch("decotv.services.docker.run", return_value=_completed(0)) as mock_run:
            assert docker.ensure_network("decotv-net") is False
        assert mock_run.call_count == 1

    def test_ps_matching(self):
        output = "decotv-app\tUp 2 hours\t127.0.0.1:3000->3000/tcp\nother\tUp\t\ndecotv-kv\tUp 2 hours\t\n"
        with patch("decotv.services.docker.run", return_value=_completed(0, stdout=output)):
            rows = docker.ps_matching("decotv-")
        assert [r["name"] for r in rows] == ["decotv-app", "decotv-kv"]
        assert rows[0]["ports"] == "127.0.0.1:3000->3000/tcp"
