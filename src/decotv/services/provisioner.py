"""Site provisioner: bind a domain to a local upstream behind NGINX, with optional TLS.

Every change to the live NGINX directory follows the same transaction:

1. take the proxy lock
2. render the new config to a dot-file next to the target (never included by nginx)
3. snapshot the current target bytes and mode, then ``os.replace`` the staged file in
4. ``nginx -t``; on failure put the snapshot back byte-for-byte
5. ``nginx -s reload``; on failure the same rollback

A failed TLS attempt therefore always ends on the last known-good HTTP config.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generator

from decotv.config import DecotvConfig
from decotv.constants import SITE_FILE_PREFIX
from decotv.errors import (
    DecotvError,
    DomainConflictError,
    InvalidConfigError,
    IssuanceFailedError,
    NginxError,
    PortUnavailableError,
    SiteNotFoundError,
)
from decotv.models import Manifest, Site, TlsState
from decotv.services import network, renderer, system
from decotv.services.certbot import Certbot
from decotv.services.lock import proxy_lock
from decotv.services.network import DnsCheck, PortOwner, PortStatus
from decotv.services.nginx import Nginx, find_domain
from decotv.services.renewal import RenewalScheduler
from decotv.validators import validate_domain, validate_email, validate_port

HTTP_PORT = 80

_Snapshot = tuple[bytes, int] | None


def _noop(message: str) -> None:
    pass


@dataclass
class UnbindResult:
    domain: str
    removed_files: list[Path] = field(default_factory=list)
    cert_deleted: bool = False
    warnings: list[str] = field(default_factory=list)


@dataclass
class SiteProvisioner:
    """Owns the ``decotv-<domain>.conf`` files listed in one deployment's manifest."""

    conf_dir: Path
    scan_dirs: list[Path]
    webroot: Path
    manifest_path: Path
    lock_path: Path
    nginx: Nginx
    certbot: Certbot
    scheduler: RenewalScheduler
    lock_timeout: float = 30.0
    lookup_timeout: float = 5.0
    port_probe: Callable[[int], PortStatus] = network.port_status
    dns_probe: Callable[[str, float], DnsCheck] = network.check_dns
    listen_probe: Callable[[int], bool] = network.is_listening
    install_package: Callable[[str], None] = system.apt_install
    warn: Callable[[str], None] = _noop

    @classmethod
    def from_config(cls, cfg: DecotvConfig, **overrides) -> "SiteProvisioner":
        params = dict(
            conf_dir=cfg.nginx_conf_dir,
            scan_dirs=list(cfg.nginx_scan_dirs),
            webroot=cfg.acme_webroot,
            manifest_path=cfg.manifest_path,
            lock_path=cfg.lock_path,
            lock_timeout=cfg.lock_timeout,
            lookup_timeout=cfg.lookup_timeout,
            nginx=Nginx(nginx_bin=cfg.nginx_bin, timeout=cfg.command_timeout),
            certbot=Certbot(letsencrypt_dir=cfg.letsencrypt_dir, timeout=cfg.issue_timeout),
            scheduler=RenewalScheduler(hook_dir=cfg.renewal_hook_dir, nginx_bin=cfg.nginx_bin),
        )
        params.update(overrides)
        return cls(**params)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def config_path_for(self, domain: str) -> Path:
        return self.conf_dir / f"{SITE_FILE_PREFIX}{domain}.conf"

    def load_manifest(self) -> Manifest:
        return Manifest.load(self.manifest_path)

    def sites(self) -> list[Site]:
        return sorted(self.load_manifest().sites.values(), key=lambda s: s.domain)

    def get_site(self, domain: str) -> Site:
        site = self.load_manifest().get(validate_domain(domain))
        if site is None:
            raise SiteNotFoundError(f"{domain} is not bound by this deployment")
        return site

    # ------------------------------------------------------------------
    # Port policy
    # ------------------------------------------------------------------

    def check_http_port(self) -> PortStatus:
        """Make sure port 80 is served by an NGINX we can manage.

        Held by nginx: nothing to do. Held by anything else: PortUnavailableError,
        the port is never seized. Free: install NGINX if needed and start it.
        """
        status = self.port_probe(HTTP_PORT)
        if status.owner == PortOwner.OTHER:
            raise PortUnavailableError(
                f"Cannot use the reverse proxy: {status.describe()}", port=HTTP_PORT,
                owner=", ".join(status.processes),
            )
        if status.owner == PortOwner.FREE:
            if not self.nginx.is_installed():
                self.warn("NGINX not found, installing it")
                self.install_package("nginx")
            self.nginx.start()
        return status

    # ------------------------------------------------------------------
    # bind
    # ------------------------------------------------------------------

    def bind(self, domain: str, upstream_port: int) -> Site:
        """Serve *domain* over HTTP, proxying to ``127.0.0.1:upstream_port``."""
        domain = validate_domain(domain)
        validate_port(upstream_port)

        with self._locked():
            manifest = self.load_manifest()
            self._check_conflict(domain, manifest)
            self.check_http_port()

            if not self.listen_probe(upstream_port):
                self.warn(f"Nothing is listening on 127.0.0.1:{upstream_port} yet; binding anyway")

            previous = manifest.get(domain)
            site = Site(domain=domain, upstream_port=upstream_port, config_path=self.config_path_for(domain))
            if (
                previous is not None
                and previous.tls_state == TlsState.ACTIVE
                and previous.certificate is not None
                and previous.certificate.cert_path.exists()
            ):
                site.tls_state = TlsState.ACTIVE
                site.certificate = previous.certificate

            self.webroot.mkdir(parents=True, exist_ok=True)
            content = renderer.render_vhost(site, self.webroot, tls=site.tls_state == TlsState.ACTIVE)
            self._activate(site.config_path, content)

            manifest.put(site)
            manifest.save(self.manifest_path)
            return site

    def _check_conflict(self, domain: str, manifest: Manifest) -> None:
        ours = self.config_path_for(domain)
        dirs = [self.conf_dir, *[d for d in self.scan_dirs if d != self.conf_dir]]
        for hit in find_domain(dirs, domain):
            if hit.resolve() != ours.resolve():
                raise DomainConflictError(
                    f"{domain} is already served by {hit}, which decotv does not manage; "
                    "refusing to take it over"
                )
        if ours.exists() and not manifest.owns(domain):
            raise DomainConflictError(
                f"{ours} exists but {domain} is not in this deployment's manifest "
                f"({self.manifest_path}); it belongs to another decotv instance"
            )

    # ------------------------------------------------------------------
    # enable_tls
    # ------------------------------------------------------------------

    def enable_tls(self, domain: str, contact_email: str) -> Site:
        """Issue a certificate and switch the site to HTTPS, or stay on HTTP."""
        domain = validate_domain(domain)
        contact_email = validate_email(contact_email) if contact_email else ""

        with self._locked():
            manifest = self.load_manifest()
            site = manifest.get(domain)
            if site is None:
                raise SiteNotFoundError(f"{domain} is not bound; run 'decotv site bind' first")
            if site.tls_state == TlsState.ACTIVE:
                return site

            self.check_http_port()
            if not self.certbot.is_installed():
                self.warn("certbot not found, installing it")
                self.install_package("certbot")

            dns = self.dns_probe(domain, self.lookup_timeout)
            if not dns.matches:
                self.warn(dns.describe())

            site.tls_state = TlsState.PENDING
            manifest.put(site)
            manifest.save(self.manifest_path)
            try:
                return self._issue_and_activate(manifest, site, contact_email, dns)
            finally:
                if site.tls_state == TlsState.PENDING:
                    site.tls_state = TlsState.NONE
                    manifest.put(site)
                    manifest.save(self.manifest_path)

    def _issue_and_activate(self, manifest: Manifest, site: Site, email: str, dns: DnsCheck) -> Site:
        self.webroot.mkdir(parents=True, exist_ok=True)
        try:
            self.certbot.issue(site.domain, self.webroot, email)
        except IssuanceFailedError as exc:
            reason = "DNS mismatch" if dns.conclusive and not dns.matches else exc.reason
            raise IssuanceFailedError(
                f"HTTPS failed for {site.domain} ({reason}); "
                f"site still reachable over HTTP at http://{site.domain}/\n{exc}",
                reason=reason,
            ) from exc

        candidate = site.model_copy(
            update={"tls_state": TlsState.ACTIVE, "certificate": self.certbot.install(site.domain)}
        )
        try:
            self._activate(candidate.config_path, renderer.render_https_vhost(candidate, self.webroot))
        except (InvalidConfigError, NginxError) as exc:
            raise type(exc)(
                f"HTTPS config for {site.domain} was rejected and rolled back; "
                f"site still reachable over HTTP.\n{exc}"
            ) from exc

        site.tls_state = TlsState.ACTIVE
        site.certificate = candidate.certificate
        manifest.put(site)
        manifest.save(self.manifest_path)

        try:
            mode = self.scheduler.schedule()
        except DecotvError as exc:
            self.warn(f"HTTPS is active but renewal could not be scheduled: {exc}")
        else:
            if mode == "cron":
                self.warn("certbot.timer not available; installed a daily cron job for renewal")
        return site

    # ------------------------------------------------------------------
    # unbind
    # ------------------------------------------------------------------

    def unbind(self, domain: str) -> UnbindResult:
        """Remove exactly this domain's config and certificate."""
        domain = validate_domain(domain)

        with self._locked():
            manifest = self.load_manifest()
            site = manifest.get(domain)
            if site is None:
                raise SiteNotFoundError(f"{domain} is not bound by this deployment")

            result = UnbindResult(domain=domain)
            path = site.config_path
            left_in_place = False
            if path.exists():
                if renderer.is_managed(path.read_text(errors="replace")):
                    path.unlink()
                    result.removed_files.append(path)
                else:
                    left_in_place = True
                    result.warnings.append(f"{path} no longer carries the decotv marker; left in place")
            self._staging_path(path).unlink(missing_ok=True)

            has_cert = site.certificate is not None or self.certbot.has_cert(domain)
            if has_cert and left_in_place:
                # The edited file may still reference this certificate.
                result.warnings.append(
                    f"certificate for {domain} kept because {path} may still use it; "
                    f"remove it with 'certbot delete --cert-name {domain}' once the file is gone"
                )
            elif has_cert:
                result.cert_deleted = self.certbot.delete(domain)
                if not result.cert_deleted:
                    result.warnings.append(f"certbot could not delete the certificate for {domain}")

            manifest.remove(domain)
            manifest.save(self.manifest_path)

            if not self._tls_configs_remain():
                try:
                    self.scheduler.unschedule()
                except DecotvError as exc:
                    result.warnings.append(f"Renewal schedule not removed: {exc}")

            try:
                self.nginx.test_config()
                self.nginx.reload()
            except (InvalidConfigError, NginxError) as exc:
                result.warnings.append(f"NGINX not reloaded after removal: {exc}")
            return result

    # ------------------------------------------------------------------
    # Transaction helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _locked(self) -> Generator[None, None, None]:
        with proxy_lock(self.lock_path, self.lock_timeout):
            yield

    @staticmethod
    def _staging_path(path: Path) -> Path:
        return path.with_name(f".{path.name}.staging")

    def _activate(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        snapshot = self._snapshot(path)
        staged = self._staging_path(path)
        staged.write_text(content)
        staged.chmod(0o644)
        os.replace(staged, path)

        try:
            self.nginx.test_config()
        except InvalidConfigError as exc:
            self._restore(path, snapshot)
            raise InvalidConfigError(f"{exc}\nRolled back {path}; previous configuration kept.") from exc

        try:
            self.nginx.reload()
        except NginxError as exc:
            self._restore(path, snapshot)
            raise NginxError(f"{exc}\nRolled back {path}; previous configuration kept.") from exc

    @staticmethod
    def _snapshot(path: Path) -> _Snapshot:
        if not path.exists():
            return None
        return path.read_bytes(), path.stat().st_mode & 0o7777

    def _restore(self, path: Path, snapshot: _Snapshot) -> None:
        if snapshot is None:
            path.unlink(missing_ok=True)
            return
        data, mode = snapshot
        staged = self._staging_path(path)
        staged.write_bytes(data)
        staged.chmod(mode)
        os.replace(staged, path)

    def _tls_configs_remain(self) -> bool:
        """True while any decotv site file in conf_dir, from any instance, still serves HTTPS."""
        for conf in self.conf_dir.glob(f"{SITE_FILE_PREFIX}*.conf"):
            try:
                if "ssl_certificate" in conf.read_text(errors="replace"):
                    return True
            except OSError:
                continue
        return False
