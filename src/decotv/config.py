"""Central configuration: DecotvConfig resolved once at startup."""

from __future__ import annotations

import os
import socket
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field

from decotv.constants import (
    ACME_WEBROOT,
    APP_PORT,
    AUDIT_DB_PATH,
    AUDIT_JSONL_PATH,
    BASE_DIR,
    CERTBOT_EMAIL,
    COMMAND_TIMEOUT,
    DOCKER_NETWORK,
    ISSUE_TIMEOUT,
    LETSENCRYPT_DIR,
    LOCK_PATH,
    LOCK_TIMEOUT,
    LOG_DIR,
    LOOKUP_TIMEOUT,
    NGINX_CONF_DIR,
    NGINX_SCAN_DIRS,
)


def _env_path(name: str, default: Path) -> Path:
    value = os.environ.get(name)
    return Path(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    return float(value) if value else default


def _default_scan_dirs() -> list[Path]:
    env = os.environ.get("DECOTV_NGINX_SCAN_DIRS")
    if env:
        return [Path(p) for p in env.split(":") if p]
    return list(NGINX_SCAN_DIRS)


class DecotvConfig(BaseModel):
    """Runtime configuration resolved once at startup."""

    base_dir: Path = Field(default_factory=lambda: _env_path("DECOTV_BASE_DIR", BASE_DIR))
    host_id: str = Field(default_factory=lambda: os.environ.get("DECOTV_HOST_ID") or socket.gethostname())
    docker_network: str = Field(default=DOCKER_NETWORK)
    app_port: int = Field(default=APP_PORT)

    nginx_bin: str = Field(default_factory=lambda: os.environ.get("DECOTV_NGINX_BIN", "nginx"))
    nginx_conf_dir: Path = Field(default_factory=lambda: _env_path("DECOTV_NGINX_CONF_DIR", NGINX_CONF_DIR))
    nginx_scan_dirs: list[Path] = Field(default_factory=_default_scan_dirs)
    acme_webroot: Path = Field(default_factory=lambda: _env_path("DECOTV_ACME_WEBROOT", ACME_WEBROOT))
    letsencrypt_dir: Path = Field(default_factory=lambda: _env_path("DECOTV_LETSENCRYPT_DIR", LETSENCRYPT_DIR))
    certbot_email: str = Field(default_factory=lambda: os.environ.get("DECOTV_CERTBOT_EMAIL", CERTBOT_EMAIL))

    lock_path: Path = Field(default_factory=lambda: _env_path("DECOTV_LOCK_PATH", LOCK_PATH))
    lock_timeout: float = Field(default_factory=lambda: _env_float("DECOTV_LOCK_TIMEOUT", LOCK_TIMEOUT))
    command_timeout: float = Field(default=COMMAND_TIMEOUT)
    issue_timeout: float = Field(default=ISSUE_TIMEOUT)
    lookup_timeout: float = Field(default=LOOKUP_TIMEOUT)

    log_dir: Path = Field(default_factory=lambda: _env_path("DECOTV_LOG_DIR", LOG_DIR))
    audit_jsonl_path: Path = Field(default_factory=lambda: _env_path("DECOTV_AUDIT_JSONL", AUDIT_JSONL_PATH))
    audit_db_path: Path = Field(default_factory=lambda: _env_path("DECOTV_AUDIT_DB", AUDIT_DB_PATH))

    @property
    def compose_file(self) -> Path:
        return self.base_dir / "docker-compose.yml"

    @property
    def env_file(self) -> Path:
        return self.base_dir / ".env"

    @property
    def manifest_path(self) -> Path:
        return self.base_dir / "manifest.json"

    @property
    def renewal_hook_dir(self) -> Path:
        return self.letsencrypt_dir / "renewal-hooks" / "deploy"


@lru_cache(maxsize=1)
def get_config() -> DecotvConfig:
    """Return the global DecotvConfig (resolved once, cached)."""
    return DecotvConfig()
