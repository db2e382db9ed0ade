"""Application deployment: compose/env files and container lifecycle."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from decotv.config import DecotvConfig
from decotv.constants import APP_CONTAINER, KV_CONTAINER
from decotv.errors import DeploymentNotFoundError, DockerError
from decotv.models import Deployment, Manifest
from decotv.services import docker, renderer


def write_files(cfg: DecotvConfig, deployment: Deployment) -> tuple[Path, Path]:
    """Write docker-compose.yml and the owner-only .env holding the credentials."""
    cfg.base_dir.mkdir(parents=True, exist_ok=True)
    cfg.compose_file.write_text(renderer.render_compose(deployment, cfg.docker_network))

    fd = os.open(str(cfg.env_file), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as f:
        f.write(renderer.render_env(deployment))
    cfg.env_file.chmod(0o600)
    return cfg.compose_file, cfg.env_file


def require_compose(cfg: DecotvConfig) -> Path:
    if not cfg.compose_file.exists():
        raise DeploymentNotFoundError(f"{cfg.compose_file} not found; run 'decotv deploy' first")
    return cfg.compose_file


def deploy(cfg: DecotvConfig, deployment: Deployment) -> None:
    docker.ensure_network(cfg.docker_network)
    write_files(cfg, deployment)
    manifest = Manifest.load(cfg.manifest_path)
    manifest.app_port = deployment.app_port
    manifest.expose = deployment.expose
    manifest.save(cfg.manifest_path)
    docker.compose_up(cfg.compose_file)


def update(cfg: DecotvConfig) -> None:
    compose = require_compose(cfg)
    docker.compose_pull(compose)
    docker.compose_up(compose)


def start(cfg: DecotvConfig) -> None:
    docker.compose_up(require_compose(cfg))


def stop(cfg: DecotvConfig) -> None:
    docker.compose_down(require_compose(cfg))


def health_check(port: int, timeout: float = 5.0) -> bool:
    """True when the app answers on 127.0.0.1:*port* with a non-5xx status."""
    try:
        resp = httpx.get(f"http://127.0.0.1:{port}", timeout=timeout, follow_redirects=True)
    except httpx.HTTPError:
        return False
    return resp.status_code < 500


@dataclass
class TeardownReport:
    removed: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def teardown(cfg: DecotvConfig) -> TeardownReport:
    """Remove only this project's containers, volumes, network and directory."""
    report = TeardownReport()

    if cfg.compose_file.exists():
        try:
            docker.compose_down(cfg.compose_file, volumes=True)
            report.removed.append("containers and volumes")
        except DockerError as exc:
            report.warnings.append(f"compose down failed: {exc}")

    docker.container_remove(APP_CONTAINER, KV_CONTAINER)
    docker.network_remove(cfg.docker_network)
    report.removed.append(f"network {cfg.docker_network}")

    if cfg.base_dir.exists():
        shutil.rmtree(cfg.base_dir)
        report.removed.append(str(cfg.base_dir))
    return report
