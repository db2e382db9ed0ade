"""Host package management: OS detection and apt-based installs."""

from __future__ import annotations

import os
import platform
from pathlib import Path

from decotv.errors import DependencyMissingError, UnsupportedOSError
from decotv.services.process import has, output_of, run

SUPPORTED_OS = ("debian", "ubuntu")
BASE_PACKAGES = ["ca-certificates", "curl", "jq", "iproute2"]
COMPOSE_FALLBACK_VERSION = "v2.25.0"
COMPOSE_FALLBACK_PATH = Path("/usr/local/bin/docker-compose")
_OS_RELEASE = Path("/etc/os-release")


def read_os_release(path: Path = _OS_RELEASE) -> dict[str, str]:
    if not path.exists():
        return {}
    data: dict[str, str] = {}
    for line in path.read_text().splitlines():
        key, sep, value = line.partition("=")
        if sep:
            data[key.strip()] = value.strip().strip('"')
    return data


def detect_os(path: Path = _OS_RELEASE) -> str:
    """Return the distro ID. Raises UnsupportedOSError outside Debian/Ubuntu."""
    info = read_os_release(path)
    if not info:
        raise UnsupportedOSError(f"Cannot identify the OS ({path} missing)")
    os_id = info.get("ID", "unknown")
    if os_id not in SUPPORTED_OS and not any(
        like in SUPPORTED_OS for like in info.get("ID_LIKE", "").split()
    ):
        raise UnsupportedOSError(f"Automatic installation supports Debian/Ubuntu only (found: {os_id})")
    return os_id


def require_root() -> None:
    if os.geteuid() != 0:
        raise DependencyMissingError("This operation must run as root")


def apt_install(*packages: str, timeout: float = 600.0) -> None:
    """Install *packages* non-interactively. Raises on unsupported OS or apt failure."""
    detect_os()
    env_prefix = ["env", "DEBIAN_FRONTEND=noninteractive"]
    update = run([*env_prefix, "apt-get", "update", "-y"], timeout=timeout)
    if update.returncode != 0:
        raise DependencyMissingError(f"apt-get update failed:\n{output_of(update)}")
    result = run(
        [*env_prefix, "apt-get", "install", "-y", "--no-install-recommends", *packages],
        timeout=timeout,
    )
    if result.returncode != 0:
        raise DependencyMissingError(f"apt-get install {' '.join(packages)} failed:\n{output_of(result)}")


def ensure_program(program: str, package: str) -> bool:
    """Install *package* when *program* is missing. Returns True if installed now."""
    if has(program):
        return False
    apt_install(package)
    if not has(program):
        raise DependencyMissingError(f"{program} still missing after installing {package}")
    return True


def ensure_docker(timeout: float = 900.0) -> bool:
    """Install Docker Engine via get.docker.com when absent."""
    if has("docker"):
        return False
    detect_os()
    result = run(["sh", "-c", "curl -fsSL https://get.docker.com | sh"], timeout=timeout, capture=False)
    if result.returncode != 0:
        raise DependencyMissingError("Docker installation via get.docker.com failed")
    run(["systemctl", "enable", "--now", "docker"], timeout=120)
    return True


def ensure_compose(timeout: float = 600.0) -> str:
    """Make a compose implementation available; returns how it was satisfied."""
    if has("docker") and run(["docker", "compose", "version"], timeout=60).returncode == 0:
        return "plugin"
    try:
        apt_install("docker-compose-plugin", timeout=timeout)
        return "plugin-installed"
    except DependencyMissingError:
        pass
    if has("docker-compose"):
        return "standalone"
    url = (
        "https://github.com/docker/compose/releases/download/"
        f"{COMPOSE_FALLBACK_VERSION}/docker-compose-{platform.system()}-{platform.machine()}"
    )
    result = run(["curl", "-fsSL", url, "-o", str(COMPOSE_FALLBACK_PATH)], timeout=timeout)
    if result.returncode != 0:
        raise DependencyMissingError(f"Could not download docker-compose:\n{output_of(result)}")
    COMPOSE_FALLBACK_PATH.chmod(0o755)
    return "standalone-installed"
