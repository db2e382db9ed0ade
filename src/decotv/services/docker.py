"""Docker and Docker Compose subprocess wrappers."""

from __future__ import annotations

import subprocess
from functools import lru_cache
from pathlib import Path

from decotv.config import get_config
from decotv.errors import DependencyMissingError, DockerError
from decotv.services.process import has, output_of, run


@lru_cache(maxsize=1)
def compose_command() -> tuple[str, ...]:
    """Return the compose entry point: the v2 plugin, else docker-compose v1."""
    if has("docker") and run(["docker", "compose", "version"]).returncode == 0:
        return ("docker", "compose")
    if has("docker-compose"):
        return ("docker-compose",)
    raise DependencyMissingError("Neither 'docker compose' nor 'docker-compose' is available")


def _run(cmd: list[str], *, check: bool = True) -> subprocess.CompletedProcess[str]:
    result = run(cmd, timeout=get_config().command_timeout)
    if check and result.returncode != 0:
        raise DockerError(f"Command failed: {' '.join(cmd)}\nstderr: {output_of(result)}")
    return result


def _compose(compose_file: Path, *args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
    return _run([*compose_command(), "-f", str(compose_file), *args], check=check)


def compose_up(compose_file: Path) -> None:
    _compose(compose_file, "up", "-d", "--remove-orphans")


def compose_pull(compose_file: Path) -> None:
    _compose(compose_file, "pull")


def compose_down(compose_file: Path, *, volumes: bool = False) -> None:
    args = ["down"]
    if volumes:
        args.append("-v")
    _compose(compose_file, *args)


def compose_ps(compose_file: Path) -> str:
    return _compose(compose_file, "ps").stdout


def ps_matching(prefix: str) -> list[dict[str, str]]:
    """List containers whose name starts with *prefix*."""
    result = _run(["docker", "ps", "-a", "--format", "{{.Names}}\t{{.Status}}\t{{.Ports}}"])
    rows: list[dict[str, str]] = []
    for line in result.stdout.strip().splitlines():
        parts = line.split("\t")
        if not parts or not parts[0].startswith(prefix):
            continue
        parts += [""] * (3 - len(parts))
        rows.append({"name": parts[0], "status": parts[1], "ports": parts[2]})
    return rows


def network_exists(name: str) -> bool:
    result = _run(["docker", "network", "inspect", name], check=False)
    return result.returncode == 0


def ensure_network(name: str) -> bool:
    """Create the network if missing. Returns True when it was created."""
    if network_exists(name):
        return False
    _run(["docker", "network", "create", name])
    return True


def network_remove(name: str) -> None:
    _run(["docker", "network", "rm", name], check=False)


def container_remove(*names: str) -> None:
    _run(["docker", "rm", "-f", *names], check=False)


def container_running(name: str) -> bool:
    result = _run(
        ["docker", "inspect", "-f", "{{.State.Running}}", name],
        check=False,
    )
    return result.returncode == 0 and result.stdout.strip() == "true"
