"""Shared test fixtures."""

from __future__ import annotations

import re
import shutil
from pathlib import Path

import pytest

from decotv.config import DecotvConfig
from decotv.errors import InvalidConfigError, IssuanceFailedError, NginxError
from decotv.models import Certificate
from decotv.services.network import DnsCheck, PortOwner, PortStatus
from decotv.services.nginx import parse_server_names
from decotv.services.provisioner import SiteProvisioner

HOST_IP = "203.0.113.10"
_CERT_RE = re.compile(r"^\s*ssl_certificate(?:_key)?\s+(\S+);", re.MULTILINE)


@pytest.fixture
def tmp_config(tmp_path: Path) -> DecotvConfig:
    """Return a DecotvConfig pointing at temp directories."""
    (tmp_path / "nginx" / "conf.d").mkdir(parents=True)
    (tmp_path / "nginx" / "sites-enabled").mkdir(parents=True)
    return DecotvConfig(
        base_dir=tmp_path / "opt" / "decotv",
        host_id="test-host",
        nginx_conf_dir=tmp_path / "nginx" / "conf.d",
        nginx_scan_dirs=[tmp_path / "nginx" / "conf.d", tmp_path / "nginx" / "sites-enabled"],
        acme_webroot=tmp_path / "www" / "acme",
        letsencrypt_dir=tmp_path / "letsencrypt",
        certbot_email="ops@example.com",
        lock_path=tmp_path / "run" / "decotv-proxy.lock",
        lock_timeout=1.0,
        log_dir=tmp_path / "log",
        audit_jsonl_path=tmp_path / "log" / "audit.jsonl",
        audit_db_path=tmp_path / "lib" / "audit.db",
    )


class FakeNginx:
    """Stands in for the nginx binary; "validates" the files in conf_dir."""

    def __init__(self, conf_dir: Path, installed: bool = True):
        self.conf_dir = conf_dir
        self.installed = installed
        self.started = False
        self.tests = 0
        self.reloads = 0
        self.reject_domains: set[str] = set()
        self.reject_tls = False
        self.fail_reload = False

    def is_installed(self) -> bool:
        return self.installed

    def start(self) -> None:
        self.started = True

    def test_config(self) -> None:
        self.tests += 1
        for conf in sorted(self.conf_dir.glob("*.conf")):
            content = conf.read_text()
            if content.count("{") != content.count("}"):
                raise InvalidConfigError(f"unbalanced braces in {conf}")
            if self.reject_tls and "listen 443" in content:
                raise InvalidConfigError(f"cannot load certificate in {conf}")
            if self.reject_domains & set(parse_server_names(content)):
                raise InvalidConfigError(f"rejected {conf}")
            # Packaged NGINX on Debian/Ubuntu predates the standalone http2 directive
            if "http2 on;" in content:
                raise InvalidConfigError(f'unknown directive "http2" in {conf}')
            for match in _CERT_RE.finditer(content):
                if not Path(match.group(1)).exists():
                    raise InvalidConfigError(f'cannot load certificate "{match.group(1)}" in {conf}')

    def reload(self) -> None:
        if self.fail_reload:
            raise NginxError("reload failed")
        self.reloads += 1


class FakeCertbot:
    """Writes placeholder PEM files instead of talking to an ACME CA."""

    def __init__(self, letsencrypt_dir: Path):
        self.letsencrypt_dir = letsencrypt_dir
        self.fail_reason: str | None = None
        self.issued: list[str] = []
        self.deleted: list[str] = []

    def is_installed(self) -> bool:
        return True

    def live_dir(self, domain: str) -> Path:
        return self.letsencrypt_dir / "live" / domain

    def has_cert(self, domain: str) -> bool:
        return (self.live_dir(domain) / "fullchain.pem").exists()

    def issue(self, domain: str, webroot: Path, email: str) -> None:
        if self.fail_reason:
            raise IssuanceFailedError(f"certbot failed for {domain}", reason=self.fail_reason)
        live = self.live_dir(domain)
        live.mkdir(parents=True, exist_ok=True)
        (live / "fullchain.pem").write_text("CERT")
        (live / "privkey.pem").write_text("KEY")
        self.issued.append(domain)

    def install(self, domain: str) -> Certificate:
        live = self.live_dir(domain)
        return Certificate(domain=domain, cert_path=live / "fullchain.pem", key_path=live / "privkey.pem")

    def delete(self, domain: str) -> bool:
        shutil.rmtree(self.live_dir(domain), ignore_errors=True)
        self.deleted.append(domain)
        return True


class FakeScheduler:
    def __init__(self):
        self.scheduled = 0
        self.unscheduled = 0

    def install_hook(self) -> None:
        pass

    def schedule(self) -> str:
        self.scheduled += 1
        return "systemd"

    def unschedule(self) -> None:
        self.unscheduled += 1


class HostState:
    """Mutable probe results shared by a provisioner under test."""

    def __init__(self):
        self.port_owner = PortOwner.PROXY
        self.port_processes = ["nginx"]
        self.dns_addresses = [HOST_IP]
        self.installed_packages: list[str] = []

    def port_probe(self, port: int) -> PortStatus:
        return PortStatus(port=port, owner=self.port_owner, processes=list(self.port_processes))

    def dns_probe(self, domain: str, timeout: float) -> DnsCheck:
        return DnsCheck(domain=domain, public_ip=HOST_IP, addresses=list(self.dns_addresses))


@pytest.fixture
def host() -> HostState:
    return HostState()


@pytest.fixture
def fake_nginx(tmp_config: DecotvConfig) -> FakeNginx:
    return FakeNginx(tmp_config.nginx_conf_dir)


@pytest.fixture
def fake_certbot(tmp_config: DecotvConfig) -> FakeCertbot:
    return FakeCertbot(tmp_config.letsencrypt_dir)


@pytest.fixture
def fake_scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def make_provisioner(tmp_config, fake_nginx, fake_certbot, fake_scheduler, host):
    """Factory so a test can build a second instance with its own manifest."""

    def _make(**overrides) -> SiteProvisioner:
        def install(package: str) -> None:
            host.installed_packages.append(package)
            if package == "nginx":
                fake_nginx.installed = True

        params = dict(
            nginx=fake_nginx,
            certbot=fake_certbot,
            scheduler=fake_scheduler,
            port_probe=host.port_probe,
            dns_probe=host.dns_probe,
            listen_probe=lambda port: True,
            install_package=install,
        )
        params.update(overrides)
        return SiteProvisioner.from_config(tmp_config, **params)

    return _make


@pytest.fixture
def provisioner(make_provisioner) -> SiteProvisioner:
    return make_provisioner()
